"""
Implementation of a grading backend, which grades nothing
"""

from cbt_exams.backends.backend import GradingBackend


class NullGradingBackend(GradingBackend):
    """
    Implementation of the GradingBackend that leaves every answer to an examiner
    """
    verbose_name = 'Null Backend'

    def grade_answer(self, question, answer):
        """
        Called for each answer of a finished session
        """
        return None

    def requires_manual_grading(self, question):
        return True
