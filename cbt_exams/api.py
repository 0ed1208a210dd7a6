# pylint: disable=too-many-lines

"""
In-Proc API (aka Library) for the cbt_exams subsystem. This is not to be confused with a HTTP REST
API which is in the views.py file
"""

import logging
import random
from collections import namedtuple
from datetime import datetime

import pytz

from django.apps import apps
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from cbt_exams import constants
from cbt_exams.backends import get_grading_backend
from cbt_exams.exceptions import (
    CbtExamsPermissionDenied,
    EssaysPendingGrading,
    ExamSessionAlreadyActive,
    ExamSessionIllegalStatusTransition,
    ExamSessionNotFoundException,
    InvalidScore,
    InvalidTestConfiguration,
    MaxAttemptsExceeded,
    QuestionNotInSession,
    SessionAlreadyTerminal,
    SessionNotActive,
    StateViolation,
    StudentNotEnrolled,
    TestNotAccessible,
    TestNotFoundException,
    TimeExpired,
    UserNotFoundException,
    UserRoleNotAssigned
)
from cbt_exams.models import (
    Enrollment,
    Question,
    StudentAnswer,
    StudentExam,
    StudentExamQuestion,
    Test,
    UserRole
)
from cbt_exams.serializers import (
    QuestionSerializer,
    StudentAnswerSerializer,
    StudentExamQuestionSerializer,
    StudentExamSerializer,
    TestSerializer
)
from cbt_exams.signals import exam_session_graded_signal, exam_session_status_signal
from cbt_exams.statuses import ExamSessionStatus, QuestionType, TestStatus, TimeEnforcementMode
from cbt_exams.utils import (
    compute_test_status,
    get_time_remaining_for_session,
    has_duration_elapsed
)

log = logging.getLogger(__name__)

USER_MODEL = get_user_model()

Identity = namedtuple('Identity', ['role', 'user_id'])

# fields create_test and update_test accept besides title and duration_minutes
TEST_OPTION_FIELDS = [
    'description',
    'total_marks',
    'passing_score',
    'published',
    'scheduled_start_time',
    'scheduled_end_time',
    'start_buffer_minutes',
    'end_buffer_minutes',
    'time_enforcement',
    'max_attempts',
    'allowed_ips',
    'secure_browser',
    'randomize_questions',
    'shuffle_choices',
    'number_of_questions',
    'grading_backend',
]


def _now(now=None):
    return now if now is not None else datetime.now(pytz.UTC)


def _validate_test_configuration(test_obj):
    """
    Raises InvalidTestConfiguration if the settings of a test contradict each other
    """
    if not test_obj.duration_minutes or test_obj.duration_minutes <= 0:
        raise InvalidTestConfiguration(
            f'duration_minutes must be positive, got {test_obj.duration_minutes} for test "{test_obj.title}".'
        )
    start = test_obj.scheduled_start_time
    end = test_obj.scheduled_end_time
    if start and end and start > end:
        raise InvalidTestConfiguration(
            f'Test "{test_obj.title}" is scheduled to end ({end}) before it starts ({start}).'
        )
    if test_obj.time_enforcement not in dict(TimeEnforcementMode.choices):
        raise InvalidTestConfiguration(f'Unknown time enforcement mode "{test_obj.time_enforcement}".')
    if (test_obj.start_buffer_minutes or 0) < 0 or (test_obj.end_buffer_minutes or 0) < 0:
        raise InvalidTestConfiguration('Schedule buffers cannot be negative.')
    backends = apps.get_app_config('cbt_exams').backends
    if test_obj.grading_backend and test_obj.grading_backend not in backends:
        raise InvalidTestConfiguration(
            f'No grading backend named "{test_obj.grading_backend}" is configured. Available: {list(backends)}'
        )


def create_test(title, duration_minutes, created_by_id=None, **kwargs):
    """
    Creates a new Test entity.

    Any of TEST_OPTION_FIELDS may be passed as keyword arguments.

    Returns: id (PK)
    """
    for key in kwargs:
        if key not in TEST_OPTION_FIELDS:
            raise InvalidTestConfiguration(f'Tests have no option named {key}.')

    test_obj = Test(title=title, duration_minutes=duration_minutes, created_by_id=created_by_id, **kwargs)
    _validate_test_configuration(test_obj)
    test_obj.save()

    log.info(
        ('Created test (test_id=%(test_id)s) with parameters: title=%(title)s, '
         'duration_minutes=%(duration_minutes)s, created_by_id=%(created_by_id)s, options=%(options)s'),
        {
            'test_id': test_obj.id,
            'title': title,
            'duration_minutes': duration_minutes,
            'created_by_id': created_by_id,
            'options': kwargs,
        }
    )
    return test_obj.id


def update_test(test_id, **kwargs):
    """
    Given a Django ORM id, update the existing record, otherwise raise exception if not found.
    Only the fields passed in are changed.

    Returns: id
    """
    log.info(
        'Updating test_id=%(test_id)s with parameters %(parameters)s',
        {'test_id': test_id, 'parameters': kwargs}
    )

    test_obj = Test.get_test_by_id(test_id)
    if test_obj is None:
        raise TestNotFoundException(f'Attempted to update test_id={test_id}, but this test does not exist.')

    for key, value in kwargs.items():
        if key not in TEST_OPTION_FIELDS + ['title', 'duration_minutes']:
            raise InvalidTestConfiguration(f'Tests have no option named {key}.')
        setattr(test_obj, key, value)

    _validate_test_configuration(test_obj)
    test_obj.save()
    return test_obj.id


def get_test_by_id(test_id):
    """
    Looks up test by the Primary Key. Raises exception if not found.

    Returns dictionary version of the Django ORM object
    e.g.
    {
        "id": 1,
        "title": "Midterm",
        "duration_minutes": 90,
        "published": true,
        "current_status": "ACTIVE",
        "currently_accessible": true,
        ...
    }
    """
    test_obj = Test.get_test_by_id(test_id)
    if test_obj is None:
        raise TestNotFoundException(f'Attempted to get test_id={test_id}, but this test does not exist.')
    return TestSerializer(test_obj).data


def get_all_tests(published_only=False, created_by_id=None):
    """
    Returns all tests, optionally only published ones or those of one author
    """
    tests = Test.objects.all().order_by('id')
    if published_only:
        tests = tests.filter(published=True)
    if created_by_id is not None:
        tests = tests.filter(created_by_id=created_by_id)
    return [TestSerializer(test_obj).data for test_obj in tests]


def get_available_tests(now=None):
    """
    Returns the published tests that can be started at this instant
    """
    now = _now(now)
    return [
        test for test in get_all_tests(published_only=True)
        if compute_test_status(test, now) == TestStatus.active
    ]


def get_test_status(test_id, now=None):
    """
    Returns the availability of a test at the given instant, e.g.
    {
        "test_id": 1,
        "status": "SCHEDULED",
        "accessible": false
    }
    """
    test = get_test_by_id(test_id)
    status = compute_test_status(test, _now(now))
    return {
        'test_id': test['id'],
        'status': status,
        'accessible': status == TestStatus.active,
    }


def add_question(test_id, text, question_type, choices=None, correct_answer='', max_marks=1, order=None):
    """
    Adds a question to a test

    Returns: id (PK)
    """
    test_obj = Test.get_test_by_id(test_id)
    if test_obj is None:
        raise TestNotFoundException(f'Attempted to add a question to test_id={test_id}, but this test does not exist.')
    if question_type not in dict(QuestionType.choices):
        raise InvalidTestConfiguration(f'Unknown question type "{question_type}".')
    if max_marks is None or max_marks < 0:
        raise InvalidTestConfiguration('max_marks cannot be negative.')

    if order is None:
        order = test_obj.questions.count()

    question = Question.objects.create(
        test=test_obj,
        text=text,
        question_type=question_type,
        choices=list(choices or []),
        correct_answer=correct_answer or '',
        max_marks=max_marks,
        order=order,
    )
    log.info(
        'Added question_id=%(question_id)s of type %(question_type)s to test_id=%(test_id)s',
        {'question_id': question.id, 'question_type': question_type, 'test_id': test_id}
    )
    return question.id


def get_questions_for_test(test_id):
    """
    Returns the questions of a test, answer keys included, in authoring order
    """
    return [
        QuestionSerializer(question).data
        for question in Question.objects.filter(test_id=test_id)
    ]


def enroll_students(test_id, student_ids):
    """
    Enrolls students in a published test. Students who are already enrolled
    are left alone.

    Returns the ids of the newly enrolled students
    """
    test_obj = Test.get_test_by_id(test_id)
    if test_obj is None:
        raise TestNotFoundException(f'Attempted to enroll students in test_id={test_id}, but this test does not exist.')
    if not test_obj.published:
        raise InvalidTestConfiguration(f'Cannot enroll students in test_id={test_id}, it is not published.')

    student_ids = list(dict.fromkeys(student_ids))
    known_ids = set(USER_MODEL.objects.filter(id__in=student_ids).values_list('id', flat=True))
    unknown_ids = [student_id for student_id in student_ids if student_id not in known_ids]
    if unknown_ids:
        raise UserNotFoundException(f'No users with ids {unknown_ids} exist.')

    enrolled_ids = []
    with transaction.atomic():
        for student_id in student_ids:
            __, created = Enrollment.objects.get_or_create(test=test_obj, student_id=student_id)
            if created:
                enrolled_ids.append(student_id)

    log.info(
        'Enrolled %(count)s students in test_id=%(test_id)s: %(student_ids)s',
        {'count': len(enrolled_ids), 'test_id': test_id, 'student_ids': enrolled_ids}
    )
    return enrolled_ids


def unenroll_student(test_id, student_id):
    """
    Removes a student from a test. Sessions already taken are kept.

    Returns False when the student was not enrolled
    """
    deleted, __ = Enrollment.objects.filter(test_id=test_id, student_id=student_id).delete()
    if deleted:
        log.info(
            'Unenrolled user_id=%(user_id)s from test_id=%(test_id)s',
            {'user_id': student_id, 'test_id': test_id}
        )
    return bool(deleted)


def is_student_enrolled(student_id, test_id):
    return Enrollment.objects.is_enrolled(student_id, test_id)


def get_enrolled_student_ids(test_id):
    """
    Returns the ids of the students enrolled in a test
    """
    if Test.get_test_by_id(test_id) is None:
        raise TestNotFoundException(f'Attempted to list enrollments of test_id={test_id}, but it does not exist.')
    return Enrollment.objects.get_enrolled_student_ids(test_id)


def _get_session_obj(session_id, for_update=False):
    """
    Returns the session ORM object or raises ExamSessionNotFoundException
    """
    queryset = StudentExam.objects.select_related('test')
    if for_update:
        queryset = queryset.select_for_update()
    session = queryset.filter(id=session_id).first()
    if session is None:
        raise ExamSessionNotFoundException(
            f'Tried to look up exam session by session_id={session_id}, but this session does not exist.'
        )
    return session


def _session_window(session):
    """
    Returns the session and test fields the exam clock works on
    """
    test_obj = session.test
    return (
        {'start_time': session.start_time},
        {'duration_minutes': test_obj.duration_minutes, 'time_enforcement': test_obj.time_enforcement},
    )


def _is_overdue(session, now):
    session_info, test_info = _session_window(session)
    return has_duration_elapsed(session_info, test_info, now)


def can_start_exam(student_id, test_id, now=None):
    """
    Checks whether a student may start a new session of a test. Returns True,
    or raises the reason why not:

    * StudentNotEnrolled when the student is not enrolled in the test
    * TestNotAccessible when the test is outside of its window
    * ExamSessionAlreadyActive when an open session exists, which callers
      should resume instead
    * MaxAttemptsExceeded when all attempts have been used up

    An open session is always reported before the attempt cap.
    """
    test = get_test_by_id(test_id)
    if not is_student_enrolled(student_id, test_id):
        raise StudentNotEnrolled(f'user_id={student_id} is not enrolled in test_id={test_id}.')

    status = compute_test_status(test, _now(now))
    if status != TestStatus.active:
        raise TestNotAccessible(
            f'test_id={test_id} is not accessible, it is {status}.',
            reason=status,
        )

    active_session = StudentExam.objects.get_active_session(student_id, test_id)
    if active_session is not None:
        raise ExamSessionAlreadyActive(
            f'user_id={student_id} already has session_id={active_session.id} open for test_id={test_id}.',
            session_id=active_session.id,
        )

    max_attempts = test['max_attempts']
    if max_attempts:
        used_attempts = StudentExam.objects.get_completed_session_count(student_id, test_id)
        if used_attempts >= max_attempts:
            raise MaxAttemptsExceeded(
                f'user_id={student_id} has used {used_attempts} of {max_attempts} attempts on test_id={test_id}.'
            )
    return True


def _snapshot_questions(session, test_obj):
    """
    Fixes the questions, their order and their choice order for a new session
    """
    questions = list(test_obj.questions.all())
    if test_obj.randomize_questions:
        random.shuffle(questions)
    if test_obj.number_of_questions and test_obj.number_of_questions < len(questions):
        questions = questions[:test_obj.number_of_questions]

    snapshot = []
    for order, question in enumerate(questions):
        choices = list(question.choices or [])
        if test_obj.shuffle_choices and QuestionType.has_choices(question.question_type):
            random.shuffle(choices)
        snapshot.append(StudentExamQuestion(session=session, question=question, order=order, choices=choices))
    StudentExamQuestion.objects.bulk_create(snapshot)
    return [question.id for question in questions]


def _resume_session(session_id):
    """
    Returns the start result for an already open session
    """
    session = _get_session_obj(session_id)
    question_ids = list(
        StudentExamQuestion.objects.filter(session=session).order_by('order').values_list('question_id', flat=True)
    )
    log.info(
        'Resuming session_id=%(session_id)s for user_id=%(user_id)s on test_id=%(test_id)s',
        {'session_id': session.id, 'user_id': session.student_id, 'test_id': session.test_id}
    )
    return {
        'session_id': session.id,
        'resumed': True,
        'status': session.status,
        'question_ids': question_ids,
    }


def start_exam(student_id, test_id, now=None):
    """
    Starts a session of a test for a student, or resumes the one already open.

    Returns a dictionary like
    {
        "session_id": 12,
        "resumed": false,
        "status": "IN_PROGRESS",
        "question_ids": [4, 2, 7]
    }
    """
    now = _now(now)
    try:
        can_start_exam(student_id, test_id, now)
    except ExamSessionAlreadyActive as exc:
        return _resume_session(exc.session_id)

    test_obj = Test.objects.get(id=test_id)
    try:
        with transaction.atomic():
            session = StudentExam.objects.create(
                student_id=student_id,
                test=test_obj,
                status=ExamSessionStatus.not_started,
            )
            question_ids = _snapshot_questions(session, test_obj)
            session.start_time = now
            session.current_question_index = 0
            _update_session_status(session, ExamSessionStatus.in_progress)
    except IntegrityError:
        # a concurrent start for the same student and test won the race
        active_session = StudentExam.objects.get_active_session(student_id, test_id)
        if active_session is None:
            raise
        return _resume_session(active_session.id)

    log.info(
        'Started session_id=%(session_id)s for user_id=%(user_id)s on test_id=%(test_id)s',
        {'session_id': session.id, 'user_id': student_id, 'test_id': test_id}
    )
    return {
        'session_id': session.id,
        'resumed': False,
        'status': session.status,
        'question_ids': question_ids,
    }


def _update_session_status(session, to_status):
    """
    Moves a session ORM object to to_status and saves it.
    Raises ExamSessionIllegalStatusTransition if the move is not allowed.
    """
    from_status = session.status

    log.info(
        ('Updating exam session status for session_id=%(session_id)s (test_id=%(test_id)s, '
         'user_id=%(user_id)s) from status "%(from_status)s" to "%(to_status)s"'),
        {
            'session_id': session.id,
            'test_id': session.test_id,
            'user_id': session.student_id,
            'from_status': from_status,
            'to_status': to_status,
        }
    )

    if not ExamSessionStatus.is_state_transition_legal(from_status, to_status):
        raise ExamSessionIllegalStatusTransition(
            f'A status transition from "{from_status}" to "{to_status}" was attempted '
            f'on session_id={session.id} for user_id={session.student_id}. This is not allowed!'
        )

    session.status = to_status
    session.save()

    exam_session_status_signal.send(
        sender='cbt_exams',
        session_id=session.id,
        student_id=session.student_id,
        test_id=session.test_id,
        from_status=from_status,
        to_status=to_status,
    )
    return session


def update_session_status(session_id, to_status):
    """
    Moves a session to to_status, for administrative use. Workflow code
    uses the dedicated operations (submit_exam, grade_exam_session, ...).

    Ending an open session this way closes it the same as those operations
    do, and grades it unless it was cancelled.

    Returns the status the session ends up in
    """
    if not ExamSessionStatus.is_valid_status(to_status):
        raise ExamSessionIllegalStatusTransition(f'"{to_status}" is not a valid exam session status.')
    with transaction.atomic():
        session = _get_session_obj(session_id, for_update=True)
        ends_session = not session.completed and ExamSessionStatus.is_ended_status(to_status)
        if ends_session:
            _end_session(session, to_status, _now())
        else:
            _update_session_status(session, to_status)

    if ends_session and to_status != ExamSessionStatus.cancelled:
        return grade_exam_session(session_id)['status']
    return to_status


def _end_session(session, to_status, now):
    """
    Closes the student's part of a session
    """
    session.end_time = now
    session.completed = True
    if session.start_time is not None:
        session.time_spent_seconds = max(int((now - session.start_time).total_seconds()), 0)
    else:
        session.time_spent_seconds = 0
    _update_session_status(session, to_status)


def save_answer(session_id, question_id, answer, now=None):
    """
    Stores the answer of a student to one question of an in progress session.
    Saving the same question again overwrites the previous answer.

    When the duration has elapsed, a STRICT test times the session out and
    raises TimeExpired, a LENIENT test accepts the answer and flags it as late.

    Returns
    {
        "answer_id": 3,
        "submitted_late": false
    }
    """
    now = _now(now)
    if isinstance(answer, (list, tuple)):
        answer = ','.join(str(value) for value in answer)
    answer = '' if answer is None else str(answer)

    timed_out = False
    with transaction.atomic():
        session = _get_session_obj(session_id, for_update=True)
        if not ExamSessionStatus.is_in_progress_status(session.status):
            raise SessionNotActive(
                f'Cannot save an answer on session_id={session_id}, its status is {session.status}.'
            )

        overdue = _is_overdue(session, now)
        if overdue and session.test.time_enforcement == TimeEnforcementMode.strict:
            _end_session(session, ExamSessionStatus.timed_out, now)
            timed_out = True
        else:
            session_question = StudentExamQuestion.objects.filter(
                session=session, question_id=question_id
            ).first()
            if session_question is None:
                raise QuestionNotInSession(
                    f'question_id={question_id} is not part of session_id={session_id}.'
                )

            student_answer, created = StudentAnswer.objects.update_or_create(
                session=session,
                question_id=question_id,
                defaults={
                    'answer': answer,
                    'submitted_late': overdue,
                    'score': None,
                    'manually_graded': False,
                    'graded_by': None,
                },
            )
            if not session_question.answered:
                session_question.answered = True
                session_question.save()

    if timed_out:
        log.info(
            'Rejected answer on session_id=%(session_id)s, the time limit has passed',
            {'session_id': session_id}
        )
        grade_exam_session(session_id)
        raise TimeExpired(f'The time limit of session_id={session_id} has passed.')

    if overdue:
        log.info(
            'Accepted late answer for question_id=%(question_id)s on session_id=%(session_id)s',
            {'question_id': question_id, 'session_id': session_id}
        )
    log.debug(
        '%(action)s answer_id=%(answer_id)s on session_id=%(session_id)s',
        {'action': 'Created' if created else 'Overwrote', 'answer_id': student_answer.id, 'session_id': session_id}
    )
    return {
        'answer_id': student_answer.id,
        'submitted_late': student_answer.submitted_late,
    }


def _finish_session(session_id, to_status, now=None):
    """
    Common path of submit, complete, time out and cancel.
    Returns the status the session ended in.
    """
    now = _now(now)
    with transaction.atomic():
        session = _get_session_obj(session_id, for_update=True)
        if session.completed:
            raise SessionAlreadyTerminal(
                f'session_id={session_id} has already ended with status {session.status}.'
            )
        if not ExamSessionStatus.is_in_progress_status(session.status):
            raise SessionNotActive(
                f'Cannot end session_id={session_id}, its status is {session.status}.'
            )

        hands_in = to_status in (ExamSessionStatus.submitted, ExamSessionStatus.completed)
        if hands_in and session.test.time_enforcement == TimeEnforcementMode.strict and _is_overdue(session, now):
            log.info(
                ('Session_id=%(session_id)s will not be updated to "%(to_status)s" because the time '
                 'limit has passed. Instead the session status will be updated to "%(timed_out)s"'),
                {'session_id': session_id, 'to_status': to_status, 'timed_out': ExamSessionStatus.timed_out}
            )
            to_status = ExamSessionStatus.timed_out

        _end_session(session, to_status, now)
    return to_status


def submit_exam(session_id, now=None):
    """
    Hands in a session and grades it. A strict test handed in after its
    duration is timed out instead, and graded all the same.

    Returns the session dictionary.
    """
    _finish_session(session_id, ExamSessionStatus.submitted, now)
    grade_exam_session(session_id)
    return get_exam_session_by_id(session_id)


def complete_exam(session_id, now=None):
    """
    Marks a session as completed, e.g. when the last question was answered,
    and grades it. Returns the session dictionary.
    """
    _finish_session(session_id, ExamSessionStatus.completed, now)
    grade_exam_session(session_id)
    return get_exam_session_by_id(session_id)


def time_out_exam(session_id, now=None):
    """
    Ends a session whose time ran out and grades the answers saved so far.
    Returns the session dictionary.
    """
    _finish_session(session_id, ExamSessionStatus.timed_out, now)
    grade_exam_session(session_id)
    return get_exam_session_by_id(session_id)


def cancel_exam(session_id, now=None):
    """
    Abandons a session. Cancelled sessions count as used attempts and are
    never graded. Returns the session dictionary.
    """
    _finish_session(session_id, ExamSessionStatus.cancelled, now)
    return get_exam_session_by_id(session_id)


def _max_score(session):
    """
    Returns the marks a session is scored out of
    """
    if session.test.total_marks:
        return session.test.total_marks
    return sum(
        StudentExamQuestion.objects.filter(session=session).values_list('question__max_marks', flat=True)
    )


def grade_exam_session(session_id):
    """
    Scores every answer of an ended session with the test's grading backend
    and computes the totals. Scores set by an examiner are kept.

    The session becomes PARTIALLY_GRADED while any answer still needs an
    examiner, otherwise FULLY_GRADED.

    Returns the grading status dictionary, see get_session_grading_status
    """
    with transaction.atomic():
        session = _get_session_obj(session_id, for_update=True)
        if not ExamSessionStatus.is_gradable_status(session.status):
            raise ExamSessionIllegalStatusTransition(
                f'session_id={session_id} cannot be graded while its status is {session.status}.'
            )

        backend = get_grading_backend(TestSerializer(session.test).data)
        answers = StudentAnswer.objects.filter(session=session).select_related('question')

        total = 0
        pending = 0
        for student_answer in answers:
            if not student_answer.manually_graded:
                question = QuestionSerializer(student_answer.question).data
                student_answer.score = backend.grade_answer(question, student_answer.answer)
                student_answer.save()
            if student_answer.score is None:
                pending += 1
            else:
                total += student_answer.score

        max_score = _max_score(session)
        session.score = total
        session.percentage = (
            round(total / max_score * 100, constants.PERCENTAGE_DECIMAL_PLACES) if max_score else 0
        )
        session.graded = pending == 0
        to_status = ExamSessionStatus.partially_graded if pending else ExamSessionStatus.fully_graded
        _update_session_status(session, to_status)

    log.info(
        ('Graded session_id=%(session_id)s: score=%(score)s of %(max_score)s, '
         '%(pending)s answers awaiting an examiner'),
        {'session_id': session_id, 'score': total, 'max_score': max_score, 'pending': pending}
    )
    if not pending:
        exam_session_graded_signal.send(
            sender='cbt_exams',
            session_id=session.id,
            student_id=session.student_id,
            test_id=session.test_id,
            score=session.score,
            percentage=session.percentage,
        )
    return get_session_grading_status(session_id)


def grade_essay_answer(session_id, question_id, score, graded_by_id=None):
    """
    Records an examiner's score for one answer and re-grades the session.

    Returns the grading status dictionary
    """
    session = _get_session_obj(session_id)
    if not ExamSessionStatus.is_gradable_status(session.status):
        raise ExamSessionIllegalStatusTransition(
            f'Answers of session_id={session_id} cannot be graded while its status is {session.status}.'
        )

    session_question = StudentExamQuestion.objects.filter(
        session=session, question_id=question_id
    ).select_related('question').first()
    if session_question is None:
        raise QuestionNotInSession(f'question_id={question_id} is not part of session_id={session_id}.')

    max_marks = session_question.question.max_marks
    if score is None or score < 0 or score > max_marks:
        raise InvalidScore(f'Score {score} is outside of 0..{max_marks} for question_id={question_id}.')

    student_answer, __ = StudentAnswer.objects.get_or_create(session=session, question_id=question_id)
    student_answer.score = score
    student_answer.manually_graded = True
    student_answer.graded_by_id = graded_by_id
    student_answer.save()

    log.info(
        'user_id=%(grader_id)s scored question_id=%(question_id)s of session_id=%(session_id)s: %(score)s',
        {'grader_id': graded_by_id, 'question_id': question_id, 'session_id': session_id, 'score': score}
    )
    return grade_exam_session(session_id)


def mark_session_under_review(session_id):
    """
    Flags an ended session for an examiner's review
    """
    return update_session_status(session_id, ExamSessionStatus.under_review)


def finalize_session_grade(session_id):
    """
    Releases the grade of a session. Nothing about the session changes afterwards.
    """
    with transaction.atomic():
        session = _get_session_obj(session_id, for_update=True)
        pending = StudentAnswer.objects.filter(session=session, score__isnull=True).count()
        if pending:
            raise EssaysPendingGrading(
                f'session_id={session_id} still has {pending} answers awaiting an examiner.'
            )
        session.graded = True
        _update_session_status(session, ExamSessionStatus.graded)
    return get_exam_session_by_id(session_id)


def get_session_grading_status(session_id):
    """
    Returns the grading progress of a session, e.g.
    {
        "session_id": 12,
        "status": "PARTIALLY_GRADED",
        "score": 7.0,
        "max_score": 10.0,
        "percentage": 70.0,
        "total_answers": 5,
        "essay_answers": 1,
        "pending_answers": 1,
        "all_essays_graded": false,
        "passed": null
    }

    essay_answers counts the answers the test's grading backend leaves to
    an examiner.
    """
    session = _get_session_obj(session_id)
    backend = get_grading_backend(TestSerializer(session.test).data)
    answers = StudentAnswer.objects.filter(session=session).select_related('question')
    essay_answers = [
        answer for answer in answers
        if backend.requires_manual_grading(QuestionSerializer(answer.question).data)
    ]
    pending_answers = [answer for answer in answers if answer.score is None]

    passing_score = session.test.passing_score
    passed = None
    if passing_score is not None and session.score is not None and not pending_answers:
        passed = session.score >= passing_score

    return {
        'session_id': session.id,
        'status': session.status,
        'score': session.score,
        'max_score': _max_score(session),
        'percentage': session.percentage,
        'total_answers': len(answers),
        'essay_answers': len(essay_answers),
        'pending_answers': len(pending_answers),
        'all_essays_graded': all(answer.score is not None for answer in essay_answers),
        'passed': passed,
    }


def update_exam_session(session_id, **kwargs):
    """
    Update exam session fields that are not part of the status workflow
    """
    session = _get_session_obj(session_id)
    for key, value in kwargs.items():
        # only allow a limit set of fields to update
        # namely because status transitions can trigger workflow
        if key not in constants.UPDATABLE_SESSION_FIELDS:
            raise CbtExamsPermissionDenied(
                'You cannot call into update_exam_session to change '
                f'field={key}. (session_id={session_id})'
            )
        setattr(session, key, value)
    session.save()


def get_exam_session_by_id(session_id):
    """
    Returns the dictionary version of a session
    """
    return StudentExamSerializer(_get_session_obj(session_id)).data


def get_session_time_remaining(session_id, now=None):
    """
    Returns the seconds left on a session, 0 once it has ended
    """
    session = _get_session_obj(session_id)
    if session.completed:
        return 0
    session_info, test_info = _session_window(session)
    return get_time_remaining_for_session(session_info, test_info, _now(now))


def get_session_questions(session_id):
    """
    Returns the questions of a session in the order they were served
    """
    session = _get_session_obj(session_id)
    session_questions = StudentExamQuestion.objects.filter(session=session).select_related('question')
    return [StudentExamQuestionSerializer(session_question).data for session_question in session_questions]


def get_session_answers(session_id):
    """
    Returns the answers saved on a session
    """
    session = _get_session_obj(session_id)
    answers = StudentAnswer.objects.filter(session=session).select_related('question', 'session')
    return [StudentAnswerSerializer(answer).data for answer in answers]


def get_sessions_for_student(student_id, test_id=None):
    """
    Returns all sessions of a student, newest first
    """
    return [
        StudentExamSerializer(session).data
        for session in StudentExam.objects.get_sessions_for_student(student_id, test_id)
    ]


def timeout_expired_sessions(now=None):
    """
    Times out every in progress session of a STRICT test whose duration has
    elapsed, then grades every ended session that has not been graded yet.
    That covers the sessions just timed out and sessions whose grading failed
    when they ended; a session that fails again is left for the next sweep.
    Students who never come back to an expired session are handled here.

    Returns the ids of the sessions that were timed out
    """
    now = _now(now)
    timed_out_ids = []
    for session in StudentExam.objects.get_in_progress_sessions():
        if session.test.time_enforcement != TimeEnforcementMode.strict or not _is_overdue(session, now):
            continue
        try:
            _finish_session(session.id, ExamSessionStatus.timed_out, now)
        except StateViolation:
            # the student ended the session in the meantime
            log.info('Skipping session_id=%(session_id)s, it has already ended', {'session_id': session.id})
            continue
        timed_out_ids.append(session.id)

    for session_id in list(StudentExam.objects.get_ungraded_sessions().values_list('id', flat=True)):
        try:
            grade_exam_session(session_id)
        except Exception as err:  # pylint: disable=broad-except
            log.exception(
                'Grading session_id=%(session_id)s failed, the next sweep retries it -- %(err)s',
                {'session_id': session_id, 'err': err}
            )

    log.info(
        'Timed out %(count)s expired exam sessions',
        {'count': len(timed_out_ids)}
    )
    return timed_out_ids


def get_user_identity(username):
    """
    Resolves a username to its single role and user id
    """
    user = USER_MODEL.objects.filter(username=username).first()
    if user is None:
        raise UserNotFoundException(f'No user with username={username} exists.')
    user_role = UserRole.objects.filter(user=user).first()
    if user_role is None:
        raise UserRoleNotAssigned(f'username={username} has no role assigned.')
    return Identity(role=user_role.role, user_id=user.id)


def set_user_role(user_id, role):
    """
    Assigns the single role of a user, replacing any previous one
    """
    user_role, __ = UserRole.objects.update_or_create(user_id=user_id, defaults={'role': role})
    log.info('Assigned role %(role)s to user_id=%(user_id)s', {'role': role, 'user_id': user_id})
    return user_role.role
