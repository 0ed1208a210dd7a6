"""
Monkeypatches the default backends
"""

import contextlib

import rules


def setup_test_backends():
    """
    Sets up the backend entrypoints required for testing.
    """
    # pylint: disable=import-outside-toplevel
    from django.apps import apps
    config = apps.get_app_config('cbt_exams')
    from cbt_exams.backends.null import NullGradingBackend
    from cbt_exams.backends.objective import ObjectiveGradingBackend
    from cbt_exams.backends.tests.test_backend import TestGradingBackend
    config.backends['objective'] = ObjectiveGradingBackend()
    config.backends['null'] = NullGradingBackend()
    config.backends['test'] = TestGradingBackend()


@contextlib.contextmanager
def mock_perm(perm='cbt_exams.can_take_exam'):
    """
    Context manager for mocking a specific permission to return False inside the block
    """
    original = rules.permissions.permissions[perm]
    try:
        rules.set_perm(perm, rules.always_false)
        yield
    finally:
        rules.set_perm(perm, original)


setup_test_backends()
