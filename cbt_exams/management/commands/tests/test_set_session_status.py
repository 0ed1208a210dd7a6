"""
Tests for the set_session_status management command
"""

from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError

from cbt_exams.api import get_exam_session_by_id, start_exam
from cbt_exams.exceptions import ExamSessionIllegalStatusTransition
from cbt_exams.statuses import ExamSessionStatus
from cbt_exams.tests.utils import CbtExamsTestCase


class SetSessionStatusTests(CbtExamsTestCase):
    """
    Coverage of the set_session_status.py file
    """

    def setUp(self):
        """
        Build up test data
        """
        super().setUp()
        self.session_id = start_exam(self.student_id, self.test_id, self.now)['session_id']

    def test_run_command(self):
        """
        Run the management command
        """
        out = StringIO()
        call_command(
            'set_session_status', session_id=self.session_id, to_status=ExamSessionStatus.submitted, stdout=out
        )
        # handing in by hand closes and grades the session like the student would have
        session = get_exam_session_by_id(self.session_id)
        self.assertEqual(session['status'], ExamSessionStatus.fully_graded)
        self.assertTrue(session['completed'])
        self.assertIsNotNone(session['end_time'])
        self.assertIn(f'is now {ExamSessionStatus.fully_graded}', out.getvalue())

        call_command('set_session_status', session_id=self.session_id, to_status=ExamSessionStatus.under_review)
        self.assertEqual(get_exam_session_by_id(self.session_id)['status'], ExamSessionStatus.under_review)

    def test_bad_status(self):
        """
        Try passing a bad status
        """
        with self.assertRaises(CommandError):
            call_command('set_session_status', session_id=self.session_id, to_status='bad')

    def test_illegal_transition(self):
        with self.assertRaises(ExamSessionIllegalStatusTransition):
            call_command('set_session_status', session_id=self.session_id, to_status=ExamSessionStatus.graded)
        self.assertEqual(get_exam_session_by_id(self.session_id)['status'], ExamSessionStatus.in_progress)
