"""
Data models for the CBT exams subsystem
"""

# pylint: disable=model-missing-unicode

from model_utils.models import TimeStampedModel
from simple_history.models import HistoricalRecords

from django.contrib.auth import get_user_model
from django.db import models
from django.db.models import Q

from cbt_exams.statuses import ExamSessionStatus, QuestionType, TimeEnforcementMode, UserRoles

USER_MODEL = get_user_model()


class Test(TimeStampedModel):
    """
    An exam definition: schedule, duration, scoring and delivery options.

    .. no_pii:
    """

    title = models.CharField(max_length=255)

    description = models.TextField(blank=True, default='')

    # Time limit (in minutes) that a student has once the exam is started.
    duration_minutes = models.PositiveIntegerField()

    # Maximum score; 0 means "sum of the question marks".
    total_marks = models.FloatField(default=0)

    passing_score = models.FloatField(null=True, blank=True)

    # Unpublished tests are drafts, whatever their schedule.
    published = models.BooleanField(default=False)

    scheduled_start_time = models.DateTimeField(null=True, blank=True)
    scheduled_end_time = models.DateTimeField(null=True, blank=True)

    # Widen the window on either side of the schedule.
    start_buffer_minutes = models.PositiveIntegerField(default=0)
    end_buffer_minutes = models.PositiveIntegerField(default=0)

    time_enforcement = models.CharField(
        max_length=16, choices=TimeEnforcementMode.choices, default=TimeEnforcementMode.strict
    )

    # null or 0 is unlimited
    max_attempts = models.PositiveIntegerField(null=True, blank=True)

    # Comma separated addresses, CIDR ranges or trailing-wildcard patterns.
    allowed_ips = models.TextField(blank=True, default='')

    secure_browser = models.BooleanField(default=False)

    randomize_questions = models.BooleanField(default=False)
    shuffle_choices = models.BooleanField(default=False)

    # Serve only this many questions per session; null serves all of them.
    number_of_questions = models.PositiveIntegerField(null=True, blank=True)

    # override the platform default grading backend
    grading_backend = models.CharField(max_length=255, null=True, blank=True, default=None)

    created_by = models.ForeignKey(
        USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='cbt_tests'
    )

    # This is the reference to the SimpleHistory table
    history = HistoricalRecords(table_name='cbt_testhistory')

    class Meta:
        """ Meta class for this Django model """
        db_table = 'cbt_test'

    def __str__(self):
        """ String representation """
        published = 'published' if self.published else 'draft'
        return f'{self.title} ({published})'

    @classmethod
    def get_test_by_id(cls, test_id):
        """
        Returns the Test if found else returns None,
        Given test_id (PK)
        """
        try:
            test = cls.objects.get(id=test_id)
        except cls.DoesNotExist:  # pylint: disable=no-member
            test = None
        return test


class Question(TimeStampedModel):
    """
    A question that belongs to a test.

    .. no_pii:
    """

    test = models.ForeignKey(Test, related_name='questions', on_delete=models.CASCADE)

    text = models.TextField()

    question_type = models.CharField(max_length=32, choices=QuestionType.choices)

    choices = models.JSONField(default=list, blank=True)

    # Comma separated for multiple select, empty for essays.
    correct_answer = models.TextField(blank=True, default='')

    max_marks = models.FloatField(default=1)

    order = models.PositiveIntegerField(default=0)

    class Meta:
        """ Meta class for this Django model """
        db_table = 'cbt_question'
        ordering = ('order', 'id')

    def __str__(self):
        """ String representation """
        return f'Question {self.order} of test {self.test_id} ({self.question_type})'


class EnrollmentManager(models.Manager):
    """
    Custom manager for enrollments
    """
    def is_enrolled(self, student_id, test_id):
        """
        Returns whether the student is enrolled in the test
        """
        return self.filter(student_id=student_id, test_id=test_id).exists()

    def get_enrolled_student_ids(self, test_id):
        """
        Returns the ids of the students enrolled in a test
        """
        return list(self.filter(test_id=test_id).order_by('student_id').values_list('student_id', flat=True))


class Enrollment(TimeStampedModel):
    """
    Admits a student to a test. Only enrolled students can start it.

    .. pii: Links a student to a test
    .. pii_types: id
    .. pii_retirement: retained
    """

    objects = EnrollmentManager()

    test = models.ForeignKey(Test, related_name='enrollments', on_delete=models.CASCADE)

    student = models.ForeignKey(USER_MODEL, related_name='cbt_enrollments', on_delete=models.CASCADE)

    class Meta:
        """ Meta class for this Django model """
        db_table = 'cbt_enrollment'
        unique_together = (('test', 'student'),)

    def __str__(self):
        """ String representation """
        return f'Enrollment of {self.student_id} in test {self.test_id}'


class StudentExamManager(models.Manager):
    """
    Custom manager
    """
    def get_active_session(self, student_id, test_id):
        """
        Returns the open (not completed) session for the student and test, or None
        """
        return self.filter(student_id=student_id, test_id=test_id, completed=False).first()

    def get_completed_session_count(self, student_id, test_id):
        """
        Returns the number of completed sessions, cancelled ones included
        """
        return self.filter(student_id=student_id, test_id=test_id, completed=True).count()

    def get_sessions_for_student(self, student_id, test_id=None):
        """
        Returns all sessions of a student, newest first
        """
        filtered_query = Q(student_id=student_id)
        if test_id is not None:
            filtered_query = filtered_query & Q(test_id=test_id)
        return self.filter(filtered_query).order_by('-created')

    def get_in_progress_sessions(self):
        """
        Returns every session that is currently being taken
        """
        return self.filter(status=ExamSessionStatus.in_progress).select_related('test')

    def get_ungraded_sessions(self):
        """
        Returns ended sessions that have not been through grading yet
        """
        return self.filter(status__in=[
            ExamSessionStatus.completed, ExamSessionStatus.submitted, ExamSessionStatus.timed_out,
        ])


class StudentExam(TimeStampedModel):
    """
    One attempt of a student at a test.

    .. pii: Links a student to their answers and score
    .. pii_types: id
    .. pii_retirement: retained
    """

    objects = StudentExamManager()

    student = models.ForeignKey(USER_MODEL, db_index=True, on_delete=models.CASCADE, related_name='cbt_sessions')

    test = models.ForeignKey(Test, db_index=True, on_delete=models.CASCADE, related_name='sessions')

    start_time = models.DateTimeField(null=True)

    end_time = models.DateTimeField(null=True)

    # True once the student's part of the session is over
    completed = models.BooleanField(default=False, db_index=True)

    score = models.FloatField(null=True)

    percentage = models.FloatField(null=True)

    graded = models.BooleanField(default=False)

    status = models.CharField(
        max_length=32, choices=ExamSessionStatus.choices, default=ExamSessionStatus.not_started
    )

    time_spent_seconds = models.PositiveIntegerField(null=True)

    current_question_index = models.PositiveIntegerField(default=0)

    class Meta:
        """ Meta class for this Django model """
        db_table = 'cbt_studentexam'
        verbose_name = 'exam session'
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'test'],
                condition=Q(completed=False),
                name='cbt_one_active_session_per_student_test',
            ),
        ]

    def __str__(self):
        """ String representation """
        return f'Session {self.id}: {self.student_id} on test {self.test_id} ({self.status})'


class StudentExamQuestion(models.Model):
    """
    The question order and choice order a session was served, fixed when it starts.

    .. no_pii:
    """

    session = models.ForeignKey(StudentExam, related_name='session_questions', on_delete=models.CASCADE)

    question = models.ForeignKey(Question, related_name='+', on_delete=models.CASCADE)

    order = models.PositiveIntegerField()

    choices = models.JSONField(default=list, blank=True)

    answered = models.BooleanField(default=False)

    class Meta:
        """ Meta class for this Django model """
        db_table = 'cbt_studentexamquestion'
        unique_together = (('session', 'question'),)
        ordering = ('order',)


class StudentAnswer(TimeStampedModel):
    """
    The latest answer of a student to one question of a session.

    .. no_pii:
    """

    session = models.ForeignKey(StudentExam, related_name='answers', on_delete=models.CASCADE)

    question = models.ForeignKey(Question, related_name='answers', on_delete=models.CASCADE)

    answer = models.TextField(blank=True, default='')

    # null until scored, either by a grading backend or by an examiner
    score = models.FloatField(null=True)

    submitted_late = models.BooleanField(default=False)

    # scored by an examiner, grading backends leave the score alone
    manually_graded = models.BooleanField(default=False)

    graded_by = models.ForeignKey(
        USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )

    class Meta:
        """ Meta class for this Django model """
        db_table = 'cbt_studentanswer'
        unique_together = (('session', 'question'),)


class RefreshTokenModelManager(models.Manager):
    """
    Custom manager for refresh tokens
    """
    def get_active_tokens(self, username, now):
        """
        Returns unrevoked, unexpired tokens of a user, oldest first
        """
        return self.filter(username=username, revoked=False, expiry_date__gt=now).order_by('created', 'id')

    def get_stale_tokens(self, now):
        """
        Returns the tokens a cleanup run removes
        """
        return self.filter(Q(expiry_date__lt=now) | Q(revoked=True))


class RefreshToken(TimeStampedModel):
    """
    A long lived credential used to obtain new access tokens. Only a hash of
    the raw value is stored.

    .. pii: Stores the client address and user agent of a login
    .. pii_types: ip, other
    .. pii_retirement: local_api
    """

    objects = RefreshTokenModelManager()

    username = models.CharField(max_length=255, db_index=True)

    token_hash = models.CharField(max_length=64, unique=True)

    expiry_date = models.DateTimeField()

    revoked = models.BooleanField(default=False)

    ip_address = models.GenericIPAddressField(null=True, blank=True)

    user_agent = models.CharField(max_length=512, blank=True, default='')

    last_used_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        """ Meta class for this Django model """
        db_table = 'cbt_refreshtoken'

    def __str__(self):
        """ String representation """
        state = 'revoked' if self.revoked else 'active'
        return f'RefreshToken {self.id} for {self.username} ({state})'


class SystemConfig(TimeStampedModel):
    """
    Runtime configuration values that can be changed without a deploy.

    .. no_pii:
    """

    key = models.CharField(max_length=255, unique=True)

    value = models.TextField(blank=True, default='')

    class Meta:
        """ Meta class for this Django model """
        db_table = 'cbt_systemconfig'
        verbose_name = 'system configuration'

    def __str__(self):
        """ String representation """
        return f'{self.key}={self.value}'


class UserRole(TimeStampedModel):
    """
    The single role a user holds in the exam system.

    .. no_pii:
    """

    user = models.OneToOneField(USER_MODEL, related_name='cbt_role', on_delete=models.CASCADE)

    role = models.CharField(max_length=32, choices=UserRoles.choices)

    class Meta:
        """ Meta class for this Django model """
        db_table = 'cbt_userrole'

    def __str__(self):
        """ String representation """
        return f'{self.user.username}: {self.role}'
