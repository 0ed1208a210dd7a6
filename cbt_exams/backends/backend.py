"""
Defines the abstract base class that all grading backends should derive from
"""

import abc


class GradingBackend(metaclass=abc.ABCMeta):
    """
    The base abstract class for all answer scorers
    """
    verbose_name = 'Unknown'

    @abc.abstractmethod
    def grade_answer(self, question, answer):
        """
        Scores one answer.

        question is the serialized question (question_type, correct_answer,
        max_marks, ...) and answer the raw answer text. Returns the score,
        or None when the answer has to be graded by an examiner.
        """
        raise NotImplementedError()

    def requires_manual_grading(self, question):  # pylint: disable=unused-argument
        """
        Returns whether answers to this question are left for an examiner
        """
        return False
