"""
Grading backend that auto-scores the objective question types
"""

import logging

from cbt_exams.backends.backend import GradingBackend
from cbt_exams.statuses import QuestionType

log = logging.getLogger(__name__)


def _normalize(value):
    return (value or '').strip().lower()


def _normalize_selection(value):
    return {part.strip().lower() for part in (value or '').split(',') if part.strip()}


class ObjectiveGradingBackend(GradingBackend):
    """
    Full marks for an exact match, nothing otherwise.

    Comparisons ignore case and surrounding whitespace. Multiple select
    answers are comma separated and compared as sets, so the order of the
    selected options does not matter. Essays are left for an examiner.
    """
    verbose_name = 'Objective Grading'

    def __init__(self, partial_credit=False):
        """
        partial_credit awards multiple select answers marks in proportion to
        the correct options picked, provided no wrong option was picked.
        """
        self.partial_credit = partial_credit

    def requires_manual_grading(self, question):
        return QuestionType.requires_manual_grading(question['question_type'])

    def grade_answer(self, question, answer):
        question_type = question['question_type']
        max_marks = question['max_marks']

        if self.requires_manual_grading(question):
            return None

        if question_type == QuestionType.multiple_select:
            return self._grade_selection(question, answer)

        if question_type in (QuestionType.multiple_choice, QuestionType.true_false,
                             QuestionType.fill_in_the_blank):
            if _normalize(answer) and _normalize(answer) == _normalize(question['correct_answer']):
                return max_marks
            return 0

        log.warning(
            'Unknown question type %(question_type)s for question_id=%(question_id)s, scoring 0',
            {'question_type': question_type, 'question_id': question.get('id')}
        )
        return 0

    def _grade_selection(self, question, answer):
        """
        Scores a multiple select answer
        """
        expected = _normalize_selection(question['correct_answer'])
        selected = _normalize_selection(answer)
        if not selected:
            return 0
        if selected == expected:
            return question['max_marks']
        if self.partial_credit and expected and selected < expected:
            return round(question['max_marks'] * len(selected) / len(expected), 2)
        return 0
