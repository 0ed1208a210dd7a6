"""
Helpers for the time window, exam clock and the HTTP APIs
"""

import fnmatch
import ipaddress
import logging
from datetime import datetime, timedelta

import pytz
from edx_rest_framework_extensions.auth.jwt.authentication import JwtAuthentication
from rest_framework.authentication import SessionAuthentication
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from cbt_exams.statuses import TestStatus, TimeEnforcementMode

log = logging.getLogger(__name__)

# the fields of a test that decide whether it can be taken
TEST_WINDOW_FIELDS = [
    'published',
    'scheduled_start_time',
    'scheduled_end_time',
    'start_buffer_minutes',
    'end_buffer_minutes',
]


class AuthenticatedAPIView(APIView):
    """
    Authenticate APi View.
    """
    authentication_classes = (SessionAuthentication, JwtAuthentication)
    permission_classes = (IsAuthenticated,)


def compute_test_status(test, now=None):
    """
    Returns the TestStatus of a test at the given instant.

    The test is a dictionary holding at least TEST_WINDOW_FIELDS. The checks
    are ordered: an unpublished test is always a draft, then the buffered
    start is checked before the buffered end, and a published test with
    no schedule is always active.
    """
    if now is None:
        now = datetime.now(pytz.UTC)

    if not test['published']:
        return TestStatus.draft

    start = test['scheduled_start_time']
    if start and now < start - timedelta(minutes=test['start_buffer_minutes'] or 0):
        return TestStatus.scheduled

    end = test['scheduled_end_time']
    if end and now > end + timedelta(minutes=test['end_buffer_minutes'] or 0):
        return TestStatus.expired

    return TestStatus.active


def is_test_accessible(test, now=None):
    """
    Returns whether a test can be started at the given instant
    """
    return compute_test_status(test, now) == TestStatus.active


def get_elapsed_seconds(session, now=None):
    """
    Returns the seconds since the session started, 0 if it never started
    """
    if session['start_time'] is None:
        return 0
    if now is None:
        now = datetime.now(pytz.UTC)
    return max((now - session['start_time']).total_seconds(), 0)


def has_duration_elapsed(session, test, now=None):
    """
    Returns whether a session has run past the test duration. Tests that do
    not enforce their duration never run out of time.
    """
    if not TimeEnforcementMode.enforces_duration(test['time_enforcement']):
        return False
    return get_elapsed_seconds(session, now) > test['duration_minutes'] * 60


def get_time_remaining_for_session(session, test, now=None):
    """
    Returns the remaining time (in seconds) on a session
    """

    # returns 0 if the session has not been started yet.
    if session['start_time'] is None:
        return 0

    expires_at = session['start_time'] + timedelta(minutes=test['duration_minutes'])

    if now is None:
        now = datetime.now(pytz.UTC)

    if expires_at > now:
        time_remaining_seconds = (expires_at - now).total_seconds()
    else:
        time_remaining_seconds = 0

    return time_remaining_seconds


def _ip_in_range(client_ip, allowed_range):
    """
    Checks an address against a dash separated range, e.g. 10.0.0.1-10.0.0.50
    """
    low, high = (part.strip() for part in allowed_range.split('-', 1))
    try:
        return ipaddress.ip_address(low) <= client_ip <= ipaddress.ip_address(high)
    except (ValueError, TypeError):
        return False


def is_client_ip_allowed(allowed_ips, client_ip):
    """
    Returns whether client_ip matches the comma separated allow list of a test.

    An empty allow list allows everyone. Entries may be exact addresses,
    CIDR networks, dash separated ranges or shell style patterns (192.168.*).
    "*" and "0.0.0.0" allow everyone.
    """
    if not allowed_ips or not allowed_ips.strip():
        return True
    if not client_ip:
        return False

    try:
        address = ipaddress.ip_address(client_ip.strip())
    except ValueError:
        log.warning('Rejecting malformed client address %(client_ip)s', {'client_ip': client_ip})
        return False

    for entry in allowed_ips.split(','):
        entry = entry.strip()
        if not entry:
            continue
        if entry in ('*', '0.0.0.0'):
            return True
        if '*' in entry:
            if fnmatch.fnmatchcase(str(address), entry):
                return True
        elif '/' in entry:
            try:
                if address in ipaddress.ip_network(entry, strict=False):
                    return True
            except ValueError:
                continue
        elif '-' in entry:
            if _ip_in_range(address, entry):
                return True
        elif entry == str(address):
            return True
    return False


def get_client_ip(request):
    """
    Returns the address of the client that sent the request
    """
    forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def get_user_agent(request):
    """
    Returns the user agent header of the request, or an empty string
    """
    return request.META.get('HTTP_USER_AGENT', '')


def is_secure_browser(user_agent, markers):
    """
    Returns whether the user agent identifies one of the lockdown browsers in markers
    """
    if not user_agent:
        return False
    return any(marker in user_agent for marker in markers)
