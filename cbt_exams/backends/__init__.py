"""
All supporting grading backends
"""

from django.apps import apps


def get_grading_backend(test=None, name=None):
    """
    Returns an instance of the configured grading backend
    Passing in a test will return the backend for that test
    Passing in a name will return the named backend
    """
    if test and test.get('grading_backend'):
        name = test['grading_backend']
    return apps.get_app_config('cbt_exams').get_backend(name=name)
