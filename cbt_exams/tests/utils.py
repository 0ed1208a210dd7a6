# pylint: disable=invalid-name

"""
Subclasses Django test client to allow for easy login
"""

from datetime import datetime, timedelta
from importlib import import_module

import pytz

from django.conf import settings
from django.contrib.auth import get_user_model, login
from django.http import HttpRequest
from django.test import TestCase
from django.test.client import Client

from cbt_exams.api import add_question, create_test, set_user_role
from cbt_exams.models import Enrollment
from cbt_exams.statuses import QuestionType, TimeEnforcementMode, UserRoles

User = get_user_model()


class TestClient(Client):
    """
    Allows for 'fake logins' of a user so we don't need to expose a 'login' HTTP endpoint
    """
    def login_user(self, user):
        """
        Login as specified user, does not depend on auth backend (hopefully)

        This is based on Client.login() with a small hack that does not
        require the call to authenticate()
        """
        user.backend = "django.contrib.auth.backends.ModelBackend"
        engine = import_module(settings.SESSION_ENGINE)

        # Create a fake request to store login details.
        request = HttpRequest()

        request.session = engine.SessionStore()
        login(request, user)

        # Set the cookie to represent the session.
        session_cookie = settings.SESSION_COOKIE_NAME
        self.cookies[session_cookie] = request.session.session_key
        cookie_data = {
            'max-age': None,
            'path': '/',
            'domain': settings.SESSION_COOKIE_DOMAIN,
            'secure': settings.SESSION_COOKIE_SECURE or None,
            'expires': None,
        }
        self.cookies[session_cookie].update(cookie_data)

        # Save the session values.
        request.session.save()


class LoggedInTestCase(TestCase):
    """
    Base class for tests that act as a logged in student
    """

    def setUp(self):
        """
        Setup for tests
        """
        super().setUp()
        self.client = TestClient()
        self.user = User(username='tester', email='tester@test.com')
        self.user.save()
        set_user_role(self.user.id, UserRoles.student)
        self.client.login_user(self.user)


class CbtExamsTestCase(LoggedInTestCase):
    """
    Harness with an examiner and a currently open test with four questions
    """

    def setUp(self):
        """
        Build out test harnessing
        """
        super().setUp()
        self.now = datetime.now(pytz.UTC)
        self.examiner = User.objects.create(username='examiner', email='examiner@test.com')
        set_user_role(self.examiner.id, UserRoles.examiner)
        self.student_id = self.user.id
        self.duration_minutes = 30

        self.test_id = self._create_test()
        self.mc_question_id = add_question(
            self.test_id, 'Capital of France?', QuestionType.multiple_choice,
            choices=['Lyon', 'Paris', 'Nice'], correct_answer='Paris', max_marks=2, order=0,
        )
        self.tf_question_id = add_question(
            self.test_id, 'The earth is flat.', QuestionType.true_false,
            choices=['True', 'False'], correct_answer='False', max_marks=1, order=1,
        )
        self.ms_question_id = add_question(
            self.test_id, 'Pick the primes.', QuestionType.multiple_select,
            choices=['2', '3', '4'], correct_answer='2,3', max_marks=3, order=2,
        )
        self.essay_question_id = add_question(
            self.test_id, 'Discuss.', QuestionType.essay, max_marks=4, order=3,
        )

    def _create_test(self, **kwargs):
        """
        Calls the api's create_test to create a published test that is open
        for an hour either side of now, with the harness student enrolled
        """
        options = {
            'published': True,
            'scheduled_start_time': self.now - timedelta(hours=1),
            'scheduled_end_time': self.now + timedelta(hours=1),
            'time_enforcement': TimeEnforcementMode.strict,
            'total_marks': 10,
            'passing_score': 5,
        }
        options.update(kwargs)
        test_id = create_test(
            title=options.pop('title', 'Midterm'),
            duration_minutes=options.pop('duration_minutes', self.duration_minutes),
            created_by_id=self.examiner.id,
            **options
        )
        Enrollment.objects.get_or_create(test_id=test_id, student_id=self.student_id)
        return test_id
