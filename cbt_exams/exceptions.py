"""
Specialized exceptions for the CBT exams subsystem
"""
from rest_framework import status


class CbtExamsBaseException(Exception):
    """
    A common base class for all exceptions
    """
    http_status = status.HTTP_400_BAD_REQUEST


class AccessDenied(CbtExamsBaseException):
    """
    Base class for refusals to let a user into an exam
    """
    http_status = status.HTTP_403_FORBIDDEN


class StateViolation(CbtExamsBaseException):
    """
    Base class for operations that do not fit the current state of an exam session
    """
    http_status = status.HTTP_409_CONFLICT


class AuthFailure(CbtExamsBaseException):
    """
    Base class for refresh token failures
    """
    http_status = status.HTTP_401_UNAUTHORIZED


class NotFound(CbtExamsBaseException):
    """
    Base class for failed look ups
    """
    http_status = status.HTTP_404_NOT_FOUND


class TestNotFoundException(NotFound):
    """
    Raised when a look up of a test fails.
    """


class ExamSessionNotFoundException(NotFound):
    """
    Raised when a look up of an exam session fails.
    """


class QuestionNotInSession(NotFound):
    """
    Raised when an answer targets a question that is not part of the session.
    """


class UserNotFoundException(NotFound):
    """
    Raised when the user not found.
    """


class TestNotAccessible(AccessDenied):
    """
    Raised when a test is outside of its availability window.
    """
    def __init__(self, message, reason):
        """ Init method of exception """
        super().__init__(message)
        self.reason = reason


class StudentNotEnrolled(AccessDenied):
    """
    Raised when a student who is not enrolled in a test tries to start it.
    """


class MaxAttemptsExceeded(AccessDenied):
    """
    Raised when the student has used up all attempts for a test.
    """


class ClientNotAllowed(AccessDenied):
    """
    Raised when the request does not come from an allowed address or browser.
    """


class CbtExamsPermissionDenied(AccessDenied):
    """
    Raised when the calling user does not have access to the requested object.
    """


class ExamSessionAlreadyActive(StateViolation):
    """
    Raised when a student already has an open session for a test
    """
    def __init__(self, message, session_id):
        """ Init method of exception """
        super().__init__(message)
        self.session_id = session_id


class SessionNotActive(StateViolation):
    """
    Raised when answering in a session that is not in progress.
    """


class SessionAlreadyTerminal(StateViolation):
    """
    Raised when ending a session that has already ended.
    """


class TimeExpired(StateViolation):
    """
    Raised when an answer arrives after the duration of a strictly timed test.
    """


class ExamSessionIllegalStatusTransition(StateViolation):
    """
    Raised if a state transition is not allowed, e.g. going from graded to in progress
    """


class EssaysPendingGrading(StateViolation):
    """
    Raised when finalizing a grade while essay answers are still ungraded
    """


class RefreshTokenInvalid(AuthFailure):
    """
    Raised when a presented refresh token is unknown.
    """


class RefreshTokenRevoked(AuthFailure):
    """
    Raised when a presented refresh token has been revoked.
    """


class RefreshTokenExpired(AuthFailure):
    """
    Raised when a presented refresh token is past its expiry date.
    """


class InvalidTestConfiguration(CbtExamsBaseException):
    """
    Raised when test settings are inconsistent, e.g. a schedule that ends before it starts
    """


class InvalidScore(CbtExamsBaseException):
    """
    Raised when a manual score is outside of the question's range
    """


class UserRoleNotAssigned(CbtExamsBaseException):
    """
    Raised when a user exists but has no role in the directory
    """
