"""Django Rules for cbt_exams"""

import rules

from cbt_exams.statuses import UserRoles


def _has_role(user, role):
    if not user or not user.is_authenticated:
        return False
    user_role = getattr(user, 'cbt_role', None)
    return user_role is not None and user_role.role == role


@rules.predicate
def is_admin(user):
    """
    Returns whether user holds the admin role
    """
    return _has_role(user, UserRoles.admin)


@rules.predicate
def is_examiner(user):
    """
    Returns whether user holds the examiner role
    """
    return _has_role(user, UserRoles.examiner)


@rules.predicate
def is_proctor(user):
    """
    Returns whether user holds the proctor role
    """
    return _has_role(user, UserRoles.proctor)


@rules.predicate
def is_student(user):
    """
    Returns whether user holds the student role
    """
    return _has_role(user, UserRoles.student)


@rules.predicate
def is_test_author(user, test):
    """
    Returns whether user created the test
    """
    if test is None:
        return False
    return test['created_by'] == user.id


@rules.predicate
def is_session_owner(user, session):
    """
    Returns whether the session belongs to user
    """
    if session is None:
        return False
    return session['student_id'] == user.id


rules.add_perm('cbt_exams.can_take_exam', is_student)
rules.add_perm('cbt_exams.can_create_test', is_admin | is_examiner)
rules.add_perm('cbt_exams.can_manage_test', is_admin | (is_examiner & is_test_author))
rules.add_perm('cbt_exams.can_view_session', is_session_owner | is_admin | is_examiner | is_proctor)
rules.add_perm('cbt_exams.can_grade_session', is_admin | is_examiner)
