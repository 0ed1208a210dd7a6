"""
Model factories for tests
"""

from datetime import datetime, timedelta

import pytz
from factory import LazyFunction, Sequence, SubFactory
from factory.django import DjangoModelFactory

from django.contrib.auth import get_user_model

from cbt_exams.models import RefreshToken, StudentExam, Test
from cbt_exams.statuses import ExamSessionStatus


class UserFactory(DjangoModelFactory):
    class Meta:
        model = get_user_model()

    username = Sequence(lambda n: 'user_%d' % n)
    email = Sequence(lambda n: 'user_%d@example.com' % n)


class TestFactory(DjangoModelFactory):
    class Meta:
        model = Test

    title = Sequence(lambda n: 'Test %d' % n)
    duration_minutes = 30
    published = True


class StudentExamFactory(DjangoModelFactory):
    class Meta:
        model = StudentExam

    student = SubFactory(UserFactory)
    test = SubFactory(TestFactory)
    status = ExamSessionStatus.in_progress
    start_time = LazyFunction(lambda: datetime.now(pytz.UTC))


class RefreshTokenFactory(DjangoModelFactory):
    class Meta:
        model = RefreshToken

    username = 'tester'
    token_hash = Sequence(lambda n: '%064x' % n)
    expiry_date = LazyFunction(lambda: datetime.now(pytz.UTC) + timedelta(days=7))
