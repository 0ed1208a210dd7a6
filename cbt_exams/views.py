"""
CBT Exams HTTP-based API endpoints
"""

import logging

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from cbt_exams import constants
from cbt_exams.api import (
    add_question,
    create_test,
    enroll_students,
    get_enrolled_student_ids,
    get_exam_session_by_id,
    get_session_grading_status,
    get_session_questions,
    get_session_time_remaining,
    get_test_by_id,
    get_test_status,
    grade_essay_answer,
    save_answer,
    start_exam,
    submit_exam,
    unenroll_student,
    update_exam_session,
    update_test
)
from cbt_exams.exceptions import CbtExamsBaseException, CbtExamsPermissionDenied, ClientNotAllowed
from cbt_exams.serializers import (
    EnrollmentSerializer,
    EssayScoreSerializer,
    QuestionSerializer,
    RefreshTokenSerializer,
    TestSerializer
)
from cbt_exams.tokens import RefreshTokenManager
from cbt_exams.utils import (
    AuthenticatedAPIView,
    get_client_ip,
    get_user_agent,
    is_client_ip_allowed,
    is_secure_browser
)

LOG = logging.getLogger("cbt_exams.views")


def handle_cbt_exams_exception(exc, name=None):  # pylint: disable=inconsistent-return-statements
    """
    Converts CBT exams exceptions into standard restframework responses
    """
    if isinstance(exc, CbtExamsBaseException):
        LOG.exception(name)
        return Response(status=exc.http_status, data={'detail': str(exc)})


class ExamsAPIView(AuthenticatedAPIView):
    """
    Overrides AuthenticatedAPIView to handle CBT exams exceptions
    """
    def handle_exception(self, exc):
        """
        Converts CBT exams exceptions into standard restframework responses
        """
        resp = handle_cbt_exams_exception(exc, name=self.__class__.__name__)
        if not resp:
            resp = super().handle_exception(exc)
        return resp

    def require_perm(self, perm, obj=None):
        """
        Raises CbtExamsPermissionDenied unless the requesting user holds perm
        """
        if not self.request.user.has_perm(perm, obj):
            raise CbtExamsPermissionDenied(
                f'user_id={self.request.user.id} does not have permission {perm}.'
            )


class TestStatusView(ExamsAPIView):
    """
    Endpoint for the availability of a test.

    cbt_exams/v1/test/{test_id}/status

    Supports:
        HTTP GET:
            {
                "test_id": 1,
                "status": "ACTIVE",
                "accessible": true
            }
    """
    def get(self, request, test_id):  # pylint: disable=unused-argument
        """
        HTTP GET handler.
        """
        return Response(get_test_status(test_id))


class TestView(ExamsAPIView):
    """
    Endpoint for authoring tests
    cbt_exams/v1/test
    cbt_exams/v1/test/{test_id}

    Supports:
        HTTP POST: Creates a new test.
        HTTP PUT: Updates an existing test.
        HTTP GET: Returns an existing test.

    HTTP POST
    Creates a new test.
    Expected POST data: {
        "title": "Midterm",
        "duration_minutes": 90,
        "published": true,
        "scheduled_start_time": "2026-06-01T09:00:00Z",
        ...
    }
    **POST data Parameters**
        * title: Display name of the test.
        * duration_minutes: Minutes a student has once the test is started.
        * any other option of the test.

    **Response Values**
        * {'test_id': ##}, will be the id of the test created.
    """
    def get(self, request, test_id):  # pylint: disable=unused-argument
        """
        HTTP GET handler.
        """
        return Response(get_test_by_id(test_id))

    def post(self, request):
        """
        HTTP POST handler. To create a test.
        """
        self.require_perm('cbt_exams.can_create_test')
        serializer = TestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data.pop('id', None)
        test_id = create_test(created_by_id=request.user.id, **data)
        return Response({'test_id': test_id}, status=status.HTTP_201_CREATED)

    def put(self, request, test_id):
        """
        HTTP PUT handler. To update a test.
        """
        self.require_perm('cbt_exams.can_manage_test', get_test_by_id(test_id))
        serializer = TestSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data.pop('id', None)
        update_test(test_id, **data)
        return Response({'test_id': test_id})


class TestQuestionView(ExamsAPIView):
    """
    Endpoint for adding questions to a test
    cbt_exams/v1/test/{test_id}/question

    HTTP POST
    Expected POST data: {
        "text": "2 + 2 = ?",
        "question_type": "MULTIPLE_CHOICE",
        "choices": ["3", "4", "5"],
        "correct_answer": "4",
        "max_marks": 2
    }
    """
    def post(self, request, test_id):
        """
        HTTP POST handler. To add a question.
        """
        self.require_perm('cbt_exams.can_manage_test', get_test_by_id(test_id))
        serializer = QuestionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data.pop('id', None)
        question_id = add_question(test_id, **data)
        return Response({'question_id': question_id}, status=status.HTTP_201_CREATED)


class TestEnrollmentView(ExamsAPIView):
    """
    Endpoint for the students admitted to a test
    cbt_exams/v1/test/{test_id}/enrollment
    cbt_exams/v1/test/{test_id}/enrollment/{student_id}

    Supports:
        HTTP GET: the ids of the enrolled students.
        HTTP POST: enroll students.
        HTTP DELETE: withdraw one student.

    HTTP POST
    Expected POST data: {
        "student_ids": [3, 4]
    }

    **Response Values**
        * {'enrolled': [3]}, the students that were not enrolled before.
    """
    def get(self, request, test_id, student_id=None):  # pylint: disable=unused-argument
        """
        HTTP GET handler.
        """
        self.require_perm('cbt_exams.can_manage_test', get_test_by_id(test_id))
        return Response({'test_id': test_id, 'student_ids': get_enrolled_student_ids(test_id)})

    def post(self, request, test_id, student_id=None):  # pylint: disable=unused-argument
        """
        HTTP POST handler.
        """
        self.require_perm('cbt_exams.can_manage_test', get_test_by_id(test_id))
        serializer = EnrollmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        enrolled = enroll_students(test_id, serializer.validated_data['student_ids'])
        return Response({'enrolled': enrolled}, status=status.HTTP_201_CREATED)

    def delete(self, request, test_id, student_id):
        """
        HTTP DELETE handler.
        """
        self.require_perm('cbt_exams.can_manage_test', get_test_by_id(test_id))
        if not unenroll_student(test_id, student_id):
            return Response(status=status.HTTP_404_NOT_FOUND, data={'detail': 'Student is not enrolled.'})
        return Response(status=status.HTTP_204_NO_CONTENT)


class ExamStartView(ExamsAPIView):
    """
    Endpoint for starting or resuming a session
    cbt_exams/v1/exam/start

    HTTP POST
    Expected POST data: {
        "test_id": 1
    }

    **Response Values**
        {
            "session_id": 12,
            "resumed": false,
            "status": "IN_PROGRESS",
            "question_ids": [4, 2, 7]
        }
    """
    def post(self, request):
        """
        HTTP POST handler. To start a session.
        """
        self.require_perm('cbt_exams.can_take_exam')
        test_id = request.data.get('test_id')
        test = get_test_by_id(test_id)

        client_ip = get_client_ip(request)
        if not is_client_ip_allowed(test['allowed_ips'], client_ip):
            raise ClientNotAllowed(f'Access to test_id={test_id} is not allowed from {client_ip}.')
        if test['secure_browser'] and not is_secure_browser(
                get_user_agent(request), constants.SECURE_BROWSER_USER_AGENT_MARKERS):
            raise ClientNotAllowed(f'test_id={test_id} must be taken in the secure browser.')

        result = start_exam(request.user.id, test_id)
        response_status = status.HTTP_200_OK if result['resumed'] else status.HTTP_201_CREATED
        return Response(result, status=response_status)


class ExamSessionView(ExamsAPIView):
    """
    Endpoint for a session
    cbt_exams/v1/exam/{session_id}

    Supports:
        HTTP GET: the session, its questions as served and the time left.
        HTTP PUT: update the current question index.
    """
    def get(self, request, session_id):  # pylint: disable=unused-argument
        """
        HTTP GET handler.
        """
        session = get_exam_session_by_id(session_id)
        self.require_perm('cbt_exams.can_view_session', session)
        session['questions'] = get_session_questions(session_id)
        session['time_remaining_seconds'] = get_session_time_remaining(session_id)
        return Response(session)

    def put(self, request, session_id):
        """
        HTTP PUT handler.
        """
        session = get_exam_session_by_id(session_id)
        if session['student_id'] != request.user.id:
            raise CbtExamsPermissionDenied(f'session_id={session_id} does not belong to user_id={request.user.id}.')
        update_exam_session(session_id, **dict(request.data.items()))
        return Response(get_exam_session_by_id(session_id))


class ExamAnswerView(ExamsAPIView):
    """
    Endpoint for saving an answer
    cbt_exams/v1/exam/{session_id}/answer

    HTTP POST
    Expected POST data: {
        "question_id": 4,
        "answer": "B"
    }
    """
    def post(self, request, session_id):
        """
        HTTP POST handler.
        """
        session = get_exam_session_by_id(session_id)
        if session['student_id'] != request.user.id:
            raise CbtExamsPermissionDenied(f'session_id={session_id} does not belong to user_id={request.user.id}.')
        result = save_answer(session_id, request.data.get('question_id'), request.data.get('answer'))
        return Response(result)


class ExamSubmitView(ExamsAPIView):
    """
    Endpoint for handing in a session
    cbt_exams/v1/exam/{session_id}/submit
    """
    def post(self, request, session_id):
        """
        HTTP POST handler.
        """
        session = get_exam_session_by_id(session_id)
        if session['student_id'] != request.user.id:
            raise CbtExamsPermissionDenied(f'session_id={session_id} does not belong to user_id={request.user.id}.')
        return Response(submit_exam(session_id))


class ExamGradingView(ExamsAPIView):
    """
    Endpoint for examiners grading a session
    cbt_exams/v1/exam/{session_id}/grade

    Supports:
        HTTP GET: the grading progress of the session.
        HTTP POST: score one answer.

    HTTP POST
    Expected POST data: {
        "question_id": 9,
        "score": 7.5
    }
    """
    def get(self, request, session_id):
        """
        HTTP GET handler.
        """
        session = get_exam_session_by_id(session_id)
        self.require_perm('cbt_exams.can_view_session', session)
        return Response(get_session_grading_status(session_id))

    def post(self, request, session_id):
        """
        HTTP POST handler.
        """
        self.require_perm('cbt_exams.can_grade_session', get_exam_session_by_id(session_id))
        serializer = EssayScoreSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = grade_essay_answer(
            session_id,
            serializer.validated_data['question_id'],
            serializer.validated_data['score'],
            graded_by_id=request.user.id,
        )
        return Response(result)


class RefreshTokenIssueView(ExamsAPIView):
    """
    Endpoint issuing a refresh token to the logged in user
    cbt_exams/v1/auth/token

    **Response Values**
        {"refresh_token": "..."}
    """
    def post(self, request):
        """
        HTTP POST handler.
        """
        raw_token = RefreshTokenManager().issue(
            request.user.username,
            ip_address=get_client_ip(request),
            user_agent=get_user_agent(request),
        )
        return Response({'refresh_token': raw_token}, status=status.HTTP_201_CREATED)


class RefreshTokenRotateView(ExamsAPIView):
    """
    Endpoint exchanging a refresh token for a new one. The presented token
    cannot be used again.
    cbt_exams/v1/auth/refresh

    HTTP POST
    Expected POST data: {
        "refresh_token": "..."
    }

    **Response Values**
        {"username": "student1", "refresh_token": "..."}
    """
    authentication_classes = ()
    permission_classes = (AllowAny,)

    def post(self, request):
        """
        HTTP POST handler.
        """
        username, raw_token = RefreshTokenManager().verify_and_rotate(
            request.data.get('refresh_token') or '',
            ip_address=get_client_ip(request),
            user_agent=get_user_agent(request),
        )
        return Response({'username': username, 'refresh_token': raw_token})


class RefreshTokenRevokeView(ExamsAPIView):
    """
    Endpoint for logging out a refresh token
    cbt_exams/v1/auth/logout

    HTTP POST
    Expected POST data: {
        "refresh_token": "..."
    }
    """
    authentication_classes = ()
    permission_classes = (AllowAny,)

    def post(self, request):
        """
        HTTP POST handler.
        """
        revoked = RefreshTokenManager().revoke(request.data.get('refresh_token') or '')
        return Response({'revoked': revoked})


class RefreshTokenSessionsView(ExamsAPIView):
    """
    Endpoint for the logged in devices of the user
    cbt_exams/v1/auth/sessions
    cbt_exams/v1/auth/sessions/{token_id}

    Supports:
        HTTP GET: the active refresh tokens of the user.
        HTTP DELETE: revoke one of them.
    """
    def get(self, request, token_id=None):  # pylint: disable=unused-argument
        """
        HTTP GET handler.
        """
        tokens = RefreshTokenManager().get_active_tokens(request.user.username)
        return Response(RefreshTokenSerializer(tokens, many=True).data)

    def delete(self, request, token_id):
        """
        HTTP DELETE handler.
        """
        if not RefreshTokenManager().revoke_by_id(token_id, username=request.user.username):
            return Response(status=status.HTTP_404_NOT_FOUND, data={'detail': 'No such session.'})
        return Response(status=status.HTTP_204_NO_CONTENT)
