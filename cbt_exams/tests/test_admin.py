"""
Tests for the admin actions
"""

from mock import Mock, patch

from django.contrib.admin.sites import AdminSite
from django.core.cache import cache
from django.test import RequestFactory

from cbt_exams.admin import RefreshTokenAdmin, StudentExamAdmin, SystemConfigAdmin, TestAdmin
from cbt_exams.api import get_exam_session_by_id, start_exam
from cbt_exams.config import ConfigService
from cbt_exams.models import RefreshToken, StudentExam, SystemConfig, Test
from cbt_exams.statuses import ExamSessionStatus

from .factories import RefreshTokenFactory
from .utils import CbtExamsTestCase


class CbtExamsAdminTests(CbtExamsTestCase):
    """
    Tests for the admin panels
    """

    def setUp(self):
        super().setUp()
        cache.clear()
        self.addCleanup(cache.clear)
        self.site = AdminSite()
        self.request = RequestFactory().post('/admin/')
        self.request.user = self.examiner

    def test_time_out_sessions(self):
        session_id = start_exam(self.student_id, self.test_id, self.now)['session_id']
        model_admin = StudentExamAdmin(StudentExam, self.site)
        with patch.object(model_admin, 'message_user') as mock_message:
            model_admin.time_out_sessions(self.request, StudentExam.objects.all())
            model_admin.time_out_sessions(self.request, StudentExam.objects.all())
        self.assertEqual(get_exam_session_by_id(session_id)['status'], ExamSessionStatus.fully_graded)
        # the second run warns about the session that already ended
        self.assertEqual(mock_message.call_count, 3)
        self.assertFalse(model_admin.has_add_permission(self.request))
        self.assertFalse(model_admin.has_delete_permission(self.request))

    def test_revoke_tokens(self):
        RefreshTokenFactory()
        RefreshTokenFactory(revoked=True)
        model_admin = RefreshTokenAdmin(RefreshToken, self.site)
        with patch.object(model_admin, 'message_user'):
            model_admin.revoke_tokens(self.request, RefreshToken.objects.all())
        self.assertFalse(RefreshToken.objects.filter(revoked=False).exists())

    def test_test_author_is_recorded(self):
        model_admin = TestAdmin(Test, self.site)
        test = Test(title='Admin made', duration_minutes=10)
        model_admin.save_model(self.request, test, Mock(), False)
        self.assertEqual(Test.objects.get(id=test.id).created_by, self.examiner)

    def test_config_changes_invalidate_cache(self):
        config = ConfigService()
        config.update('LIMIT', 1)
        self.assertEqual(config.get('LIMIT'), '1')

        model_admin = SystemConfigAdmin(SystemConfig, self.site)
        row = SystemConfig.objects.get(key='LIMIT')
        row.value = '2'
        model_admin.save_model(self.request, row, Mock(changed_data=['value']), True)
        self.assertEqual(config.get('LIMIT'), '2')

        model_admin.delete_model(self.request, row)
        self.assertIsNone(config.get('LIMIT'))
