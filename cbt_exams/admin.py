"""
Django Admin pages
"""
# pylint: disable=no-self-argument, no-member

from django.contrib import admin, messages
from django.utils.translation import gettext_lazy as _

from cbt_exams.api import time_out_exam
from cbt_exams.config import ConfigService
from cbt_exams.exceptions import StateViolation
from cbt_exams.models import Enrollment, Question, RefreshToken, StudentExam, SystemConfig, Test, UserRole
from cbt_exams.statuses import ExamSessionStatus


class QuestionInline(admin.TabularInline):
    """
    Questions edited on their test's page
    """
    model = Question
    extra = 0
    fields = ['order', 'question_type', 'text', 'correct_answer', 'max_marks']


class TestAdmin(admin.ModelAdmin):
    """
    The admin panel for Tests
    """
    list_display = ['title', 'published', 'scheduled_start_time', 'scheduled_end_time', 'time_enforcement']
    list_filter = ['published', 'time_enforcement']
    search_fields = ['title']
    readonly_fields = ['created_by']
    inlines = [QuestionInline]

    def save_model(self, request, obj, form, change):
        """
        Override callback so that we can inject the user_id that created the test
        """
        if not change:
            obj.created_by = request.user
        obj.save()


class StudentExamStatusFilter(admin.SimpleListFilter):
    """
    Quick filter to allow admins to see sessions that are still being taken
    """

    title = _('open sessions')

    parameter_name = 'open'

    def lookups(self, request, model_admin):
        """
        List of values to allow admin to select
        """
        return (
            ('in_progress', _('In progress')),
            ('awaiting_grading', _('Awaiting an examiner')),
        )

    def queryset(self, request, queryset):
        """
        Return the filtered queryset
        """
        if self.value() == 'in_progress':
            return queryset.filter(status=ExamSessionStatus.in_progress)
        if self.value() == 'awaiting_grading':
            return queryset.filter(status__in=[ExamSessionStatus.partially_graded, ExamSessionStatus.under_review])
        return queryset


class StudentExamAdmin(admin.ModelAdmin):
    """
    The admin panel for exam sessions. Sessions are never deleted.
    """
    list_display = ['id', 'student', 'test', 'status', 'start_time', 'end_time', 'score', 'percentage']
    list_filter = [StudentExamStatusFilter, 'status']
    search_fields = ['student__username', 'test__title']
    readonly_fields = [
        'student', 'test', 'start_time', 'end_time', 'completed', 'score', 'percentage', 'graded',
        'status', 'time_spent_seconds',
    ]
    actions = ['time_out_sessions']

    def has_add_permission(self, request):
        """Don't allow adds"""
        return False

    def has_delete_permission(self, request, obj=None):
        """Don't allow deletes"""
        return False

    @admin.action(description=_('Time out selected sessions'))
    def time_out_sessions(self, request, queryset):
        """
        Ends the selected in progress sessions through the status workflow
        """
        timed_out = 0
        for session in queryset:
            try:
                time_out_exam(session.id)
                timed_out += 1
            except StateViolation as exc:
                self.message_user(request, str(exc), level=messages.WARNING)
        self.message_user(request, _('{count} sessions timed out.').format(count=timed_out))


class RefreshTokenAdmin(admin.ModelAdmin):
    """
    The admin panel for refresh tokens. The hash is never shown.
    """
    list_display = ['id', 'username', 'created', 'expiry_date', 'revoked', 'ip_address', 'last_used_at']
    list_filter = ['revoked']
    search_fields = ['username']
    exclude = ['token_hash']
    readonly_fields = ['username', 'expiry_date', 'ip_address', 'user_agent', 'last_used_at']
    actions = ['revoke_tokens']

    def has_add_permission(self, request):
        """Tokens are only issued through the API"""
        return False

    @admin.action(description=_('Revoke selected tokens'))
    def revoke_tokens(self, request, queryset):
        """
        Revokes the selected tokens
        """
        count = queryset.filter(revoked=False).update(revoked=True)
        self.message_user(request, _('{count} tokens revoked.').format(count=count))


class SystemConfigAdmin(admin.ModelAdmin):
    """
    The admin panel for runtime configuration
    """
    list_display = ['key', 'value', 'modified']
    search_fields = ['key']

    def save_model(self, request, obj, form, change):
        """
        Drop the cached values of the changed keys
        """
        obj.save()
        config = ConfigService()
        config.invalidate_on_commit(obj.key)
        if change and 'key' in form.changed_data:
            config.invalidate_on_commit(form.initial['key'])

    def delete_model(self, request, obj):
        obj.delete()
        ConfigService().invalidate_on_commit(obj.key)


class EnrollmentAdmin(admin.ModelAdmin):
    """
    The admin panel for enrollments
    """
    list_display = ['test', 'student', 'created']
    search_fields = ['student__username', 'test__title']
    raw_id_fields = ['student']


class UserRoleAdmin(admin.ModelAdmin):
    """
    The admin panel for the identity directory
    """
    list_display = ['user', 'role']
    list_filter = ['role']
    search_fields = ['user__username']


admin.site.register(Test, TestAdmin)
admin.site.register(StudentExam, StudentExamAdmin)
admin.site.register(RefreshToken, RefreshTokenAdmin)
admin.site.register(SystemConfig, SystemConfigAdmin)
admin.site.register(UserRole, UserRoleAdmin)
admin.site.register(Enrollment, EnrollmentAdmin)
