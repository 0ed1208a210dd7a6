"""Defines serializers used by the CBT exams API."""

from rest_framework import serializers

from django.contrib.auth import get_user_model
from django.forms.models import model_to_dict

from cbt_exams.models import Question, RefreshToken, StudentAnswer, StudentExam, StudentExamQuestion, Test
from cbt_exams.statuses import ExamSessionStatus, QuestionType, TestStatus, TimeEnforcementMode
from cbt_exams.utils import TEST_WINDOW_FIELDS, compute_test_status

User = get_user_model()


class TestSerializer(serializers.ModelSerializer):
    """
    Serializer for the Test Model.

    current_status and currently_accessible are computed from the clock
    every time a test is serialized.
    """
    id = serializers.IntegerField(required=False)  # pylint: disable=invalid-name
    title = serializers.CharField(required=True)
    duration_minutes = serializers.IntegerField(required=True, min_value=1)
    scheduled_start_time = serializers.DateTimeField(required=False, allow_null=True, format=None)
    scheduled_end_time = serializers.DateTimeField(required=False, allow_null=True, format=None)
    time_enforcement = serializers.ChoiceField(choices=TimeEnforcementMode.choices, required=False)
    created_by = serializers.PrimaryKeyRelatedField(read_only=True)

    current_status = serializers.SerializerMethodField()
    currently_accessible = serializers.SerializerMethodField()

    class Meta:
        """
        Meta Class
        """
        model = Test

        fields = (
            "id", "title", "description", "duration_minutes", "total_marks", "passing_score",
            "published", "scheduled_start_time", "scheduled_end_time", "start_buffer_minutes",
            "end_buffer_minutes", "time_enforcement", "max_attempts", "allowed_ips", "secure_browser",
            "randomize_questions", "shuffle_choices", "number_of_questions", "grading_backend",
            "created_by", "current_status", "currently_accessible",
        )

    def get_current_status(self, obj):
        """ Availability of the test right now """
        return compute_test_status(model_to_dict(obj, fields=TEST_WINDOW_FIELDS))

    def get_currently_accessible(self, obj):
        """ Whether the test can be started right now """
        return self.get_current_status(obj) == TestStatus.active

    def validate(self, attrs):
        start = attrs.get('scheduled_start_time')
        end = attrs.get('scheduled_end_time')
        if start and end and start > end:
            raise serializers.ValidationError('scheduled_start_time must not be after scheduled_end_time')
        return attrs


class QuestionSerializer(serializers.ModelSerializer):
    """
    Serializer for the Question Model, including the answer key.
    """
    id = serializers.IntegerField(required=False)  # pylint: disable=invalid-name
    test_id = serializers.IntegerField(source='test.id', read_only=True)
    question_type = serializers.ChoiceField(choices=QuestionType.choices)

    class Meta:
        """
        Meta Class
        """
        model = Question

        fields = (
            "id", "test_id", "text", "question_type", "choices", "correct_answer", "max_marks", "order",
        )


class StudentExamQuestionSerializer(serializers.ModelSerializer):
    """
    A question as one student sees it: served order and choices, no answer key.
    """
    question_id = serializers.IntegerField(source='question.id')
    text = serializers.CharField(source='question.text')
    question_type = serializers.CharField(source='question.question_type')
    max_marks = serializers.FloatField(source='question.max_marks')

    class Meta:
        """
        Meta Class
        """
        model = StudentExamQuestion

        fields = (
            "question_id", "order", "text", "question_type", "choices", "max_marks", "answered",
        )


class StudentAnswerSerializer(serializers.ModelSerializer):
    """
    Serializer for the StudentAnswer Model.
    """
    session_id = serializers.IntegerField(source='session.id')
    question_id = serializers.IntegerField(source='question.id')
    question_type = serializers.CharField(source='question.question_type')
    max_marks = serializers.FloatField(source='question.max_marks')
    graded_by = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        """
        Meta Class
        """
        model = StudentAnswer

        fields = (
            "id", "session_id", "question_id", "question_type", "answer", "score", "max_marks",
            "submitted_late", "manually_graded", "graded_by", "modified",
        )


class StudentExamSerializer(serializers.ModelSerializer):
    """
    Serializer for the StudentExam Model.
    """
    id = serializers.IntegerField(required=False)  # pylint: disable=invalid-name
    student_id = serializers.IntegerField(source='student.id')
    test_id = serializers.IntegerField(source='test.id')
    start_time = serializers.DateTimeField(format=None)
    end_time = serializers.DateTimeField(format=None)
    status = serializers.ChoiceField(choices=ExamSessionStatus.choices)

    class Meta:
        """
        Meta Class
        """
        model = StudentExam

        fields = (
            "id", "student_id", "test_id", "start_time", "end_time", "completed", "score",
            "percentage", "graded", "status", "time_spent_seconds", "current_question_index",
            "created", "modified",
        )


class RefreshTokenSerializer(serializers.ModelSerializer):
    """
    A refresh token as shown to its owner, without the hash.
    """

    class Meta:
        """
        Meta Class
        """
        model = RefreshToken

        fields = (
            "id", "created", "expiry_date", "ip_address", "user_agent", "last_used_at",
        )


class EssayScoreSerializer(serializers.Serializer):  # pylint: disable=abstract-method
    """
    An examiner's score for one answer of a session.
    """
    question_id = serializers.IntegerField()
    score = serializers.FloatField()


class EnrollmentSerializer(serializers.Serializer):  # pylint: disable=abstract-method
    """
    The students to enroll in a test.
    """
    student_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
