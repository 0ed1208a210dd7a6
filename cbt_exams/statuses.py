"""
Status enums for cbt_exams
"""


class TestStatus:
    """
    The availability of a test at a given instant. This is never stored,
    it is computed from the test's schedule every time it is read.
    """
    draft = 'DRAFT'
    scheduled = 'SCHEDULED'
    active = 'ACTIVE'
    expired = 'EXPIRED'


class TimeEnforcementMode:
    """
    How the duration of a test is enforced once a session has been started
    """
    # answers after the duration are rejected and the session is timed out
    strict = 'STRICT'

    # answers after the duration are accepted, but flagged as late
    lenient = 'LENIENT'

    # the duration is informational only
    none = 'NONE'

    choices = (
        (strict, 'Strict'),
        (lenient, 'Lenient'),
        (none, 'None'),
    )

    @classmethod
    def enforces_duration(cls, mode):
        """
        Returns a boolean if sessions under this mode can run out of time
        """
        return mode in [cls.strict, cls.lenient]


class ExamSessionStatus:
    """
    A class to enumerate the various status that an exam session can have

    IMPORTANT: Since these values are stored in a database, they are system
    constants and should not be language translated, since translations
    might change over time.
    """

    # the session record exists but the clock has not started
    not_started = 'NOT_STARTED'

    # the student is answering questions
    in_progress = 'IN_PROGRESS'

    #
    # The follow statuses below are considered in a 'terminal' state
    # and we will not allow transitions back to the ones above this mark
    #

    # the student finished the exam
    completed = 'COMPLETED'

    # the student handed in the exam
    submitted = 'SUBMITTED'

    # the duration ran out before the student handed in the exam
    timed_out = 'TIMED_OUT'

    # the session was abandoned, it is never graded
    cancelled = 'CANCELLED'

    # an examiner is looking at the session
    under_review = 'UNDER_REVIEW'

    # objective answers are scored but some essays are not
    partially_graded = 'PARTIALLY_GRADED'

    # every answer has a score
    fully_graded = 'FULLY_GRADED'

    # the grade has been released, nothing changes after this
    graded = 'GRADED'

    choices = (
        (not_started, 'Not started'),
        (in_progress, 'In progress'),
        (completed, 'Completed'),
        (submitted, 'Submitted'),
        (timed_out, 'Timed out'),
        (cancelled, 'Cancelled'),
        (under_review, 'Under review'),
        (partially_graded, 'Partially graded'),
        (fully_graded, 'Fully graded'),
        (graded, 'Graded'),
    )

    @classmethod
    def legal_transitions(cls):
        """
        Returns the allowed target statuses, keyed by source status
        """
        grading = [cls.under_review, cls.partially_graded, cls.fully_graded]
        return {
            cls.not_started: [cls.in_progress],
            cls.in_progress: [cls.completed, cls.submitted, cls.timed_out, cls.cancelled],
            cls.completed: grading,
            cls.submitted: grading,
            cls.timed_out: grading,
            cls.under_review: [cls.partially_graded, cls.fully_graded, cls.graded],
            cls.partially_graded: [cls.partially_graded, cls.fully_graded, cls.under_review],
            cls.fully_graded: [cls.fully_graded, cls.under_review, cls.graded],
            cls.cancelled: [],
            cls.graded: [],
        }

    @classmethod
    def is_state_transition_legal(cls, from_status, to_status):
        """
        Returns a boolean if the session may move from from_status to to_status
        """
        return to_status in cls.legal_transitions().get(from_status, [])

    @classmethod
    def is_in_progress_status(cls, status):
        """
        Returns a boolean if the status passed is "in progress".
        """
        return status == cls.in_progress

    @classmethod
    def is_ended_status(cls, status):
        """
        Returns a boolean if the student's part of the session is over
        """
        return status in [
            cls.completed, cls.submitted, cls.timed_out, cls.cancelled,
            cls.under_review, cls.partially_graded, cls.fully_graded, cls.graded,
        ]

    @classmethod
    def is_grading_status(cls, status):
        """
        Returns a boolean if the session is somewhere in the grading workflow
        """
        return status in [cls.under_review, cls.partially_graded, cls.fully_graded, cls.graded]

    @classmethod
    def is_gradable_status(cls, status):
        """
        Returns a boolean if the session can be handed to a grading backend
        """
        return status in [
            cls.completed, cls.submitted, cls.timed_out,
            cls.under_review, cls.partially_graded, cls.fully_graded,
        ]

    @classmethod
    def is_terminal_status(cls, status):
        """
        Returns a boolean if no further transitions are possible
        """
        return not cls.legal_transitions().get(status)

    @classmethod
    def is_valid_status(cls, status):
        """
        Makes sure that passed in status string is valid
        """
        return status in cls.legal_transitions()


class QuestionType:
    """
    The kinds of questions a test can contain
    """
    multiple_choice = 'MULTIPLE_CHOICE'
    multiple_select = 'MULTIPLE_SELECT'
    true_false = 'TRUE_FALSE'
    fill_in_the_blank = 'FILL_IN_THE_BLANK'
    essay = 'ESSAY'

    choices = (
        (multiple_choice, 'Multiple choice'),
        (multiple_select, 'Multiple select'),
        (true_false, 'True / False'),
        (fill_in_the_blank, 'Fill in the blank'),
        (essay, 'Essay'),
    )

    @classmethod
    def requires_manual_grading(cls, question_type):
        """
        Returns a boolean if answers to this type are scored by a person
        """
        return question_type == cls.essay

    @classmethod
    def has_choices(cls, question_type):
        """
        Returns a boolean if the question offers a fixed list of choices
        """
        return question_type in [cls.multiple_choice, cls.multiple_select, cls.true_false]


class UserRoles:
    """
    Roles in the identity directory
    """
    admin = 'admin'
    examiner = 'examiner'
    proctor = 'proctor'
    student = 'student'

    choices = (
        (admin, 'Admin'),
        (examiner, 'Examiner'),
        (proctor, 'Proctor'),
        (student, 'Student'),
    )
