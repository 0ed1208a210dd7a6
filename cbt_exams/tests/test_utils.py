"""
File that contains tests for the util methods.
"""

import unittest
from datetime import datetime, timedelta

import ddt
import pytz
from freezegun import freeze_time

from django.test import RequestFactory

from cbt_exams.statuses import TestStatus, TimeEnforcementMode
from cbt_exams.utils import (
    compute_test_status,
    get_client_ip,
    get_elapsed_seconds,
    get_time_remaining_for_session,
    get_user_agent,
    has_duration_elapsed,
    is_client_ip_allowed,
    is_secure_browser,
    is_test_accessible
)


def _window(start, end, published=True, start_buffer=0, end_buffer=0):
    return {
        'published': published,
        'scheduled_start_time': start,
        'scheduled_end_time': end,
        'start_buffer_minutes': start_buffer,
        'end_buffer_minutes': end_buffer,
    }


@ddt.ddt
class ComputeTestStatusTests(unittest.TestCase):
    """
    Tests for compute_test_status
    """
    def setUp(self):
        super().setUp()
        self.start = datetime(2026, 6, 1, 9, 0, tzinfo=pytz.UTC)
        self.end = datetime(2026, 6, 1, 11, 0, tzinfo=pytz.UTC)

    @ddt.data(
        (datetime(2026, 6, 1, 8, 44, tzinfo=pytz.UTC), TestStatus.scheduled),
        (datetime(2026, 6, 1, 8, 45, tzinfo=pytz.UTC), TestStatus.active),
        (datetime(2026, 6, 1, 10, 0, tzinfo=pytz.UTC), TestStatus.active),
        (datetime(2026, 6, 1, 11, 5, tzinfo=pytz.UTC), TestStatus.active),
        (datetime(2026, 6, 1, 11, 6, tzinfo=pytz.UTC), TestStatus.expired),
    )
    @ddt.unpack
    def test_buffers_widen_the_window(self, now, expected):
        test = _window(self.start, self.end, start_buffer=15, end_buffer=5)
        self.assertEqual(compute_test_status(test, now), expected)

    def test_window_without_buffers(self):
        """
        A test scheduled 09:00 to 11:00 is scheduled at 08:59, active at 10:00 and expired at 11:01
        """
        test = _window(self.start, self.end)
        self.assertEqual(compute_test_status(test, self.start - timedelta(minutes=1)), TestStatus.scheduled)
        self.assertEqual(compute_test_status(test, self.start + timedelta(hours=1)), TestStatus.active)
        self.assertEqual(compute_test_status(test, self.end + timedelta(minutes=1)), TestStatus.expired)

    def test_unpublished_is_draft(self):
        test = _window(self.start, self.end, published=False)
        self.assertEqual(compute_test_status(test, self.start + timedelta(hours=1)), TestStatus.draft)
        self.assertFalse(is_test_accessible(test, self.start + timedelta(hours=1)))

    def test_unscheduled_is_always_active(self):
        test = _window(None, None)
        self.assertEqual(compute_test_status(test, self.start), TestStatus.active)
        self.assertTrue(is_test_accessible(test, self.end + timedelta(days=365)))

    def test_status_only_moves_forward(self):
        """
        Walking the clock across the window never goes back to an earlier status
        """
        order = [TestStatus.scheduled, TestStatus.active, TestStatus.expired]
        test = _window(self.start, self.end, start_buffer=10, end_buffer=10)
        now = self.start - timedelta(hours=1)
        previous = 0
        while now < self.end + timedelta(hours=1):
            current = order.index(compute_test_status(test, now))
            self.assertGreaterEqual(current, previous)
            previous = current
            now += timedelta(minutes=7)

    def test_defaults_to_now(self):
        with freeze_time(self.start + timedelta(minutes=30)):
            self.assertEqual(compute_test_status(_window(self.start, self.end)), TestStatus.active)


class ExamClockTests(unittest.TestCase):
    """
    Tests for the session clock helpers
    """
    def setUp(self):
        super().setUp()
        self.now_utc = datetime.now(pytz.UTC)
        self.session = {'start_time': self.now_utc}

    def test_not_started(self):
        """
        Test to return 0 if the session has not been started.
        """
        session = {'start_time': None}
        test = {'duration_minutes': 10, 'time_enforcement': TimeEnforcementMode.strict}
        self.assertEqual(get_time_remaining_for_session(session, test), 0)
        self.assertEqual(get_elapsed_seconds(session), 0)
        self.assertFalse(has_duration_elapsed(session, test, self.now_utc))

    def test_time_remaining(self):
        test = {'duration_minutes': 10, 'time_enforcement': TimeEnforcementMode.strict}
        with freeze_time(self.now_utc):
            self.assertEqual(get_time_remaining_for_session(self.session, test), 600)
        later = self.now_utc + timedelta(minutes=4)
        self.assertEqual(get_time_remaining_for_session(self.session, test, later), 360)
        self.assertEqual(get_time_remaining_for_session(self.session, test, self.now_utc + timedelta(hours=1)), 0)

    def test_duration_elapsed(self):
        test = {'duration_minutes': 10, 'time_enforcement': TimeEnforcementMode.lenient}
        self.assertFalse(has_duration_elapsed(self.session, test, self.now_utc + timedelta(minutes=10)))
        self.assertTrue(has_duration_elapsed(self.session, test, self.now_utc + timedelta(minutes=10, seconds=1)))

    def test_unenforced_duration_never_elapses(self):
        test = {'duration_minutes': 10, 'time_enforcement': TimeEnforcementMode.none}
        self.assertFalse(has_duration_elapsed(self.session, test, self.now_utc + timedelta(days=1)))


@ddt.ddt
class ClientChecksTests(unittest.TestCase):
    """
    Tests for the IP allow list and secure browser checks
    """

    @ddt.data(
        ('', '10.1.2.3', True),
        ('  ', '10.1.2.3', True),
        ('*', '10.1.2.3', True),
        ('0.0.0.0', '10.1.2.3', True),
        ('10.1.2.3', '10.1.2.3', True),
        ('10.1.2.4', '10.1.2.3', False),
        ('192.168.1.0/24', '192.168.1.77', True),
        ('192.168.1.0/24', '192.168.2.77', False),
        ('192.168.*', '192.168.40.2', True),
        ('192.168.*', '10.168.40.2', False),
        ('10.0.0.1-10.0.0.50', '10.0.0.25', True),
        ('10.0.0.1-10.0.0.50', '10.0.0.51', False),
        ('10.9.9.9, 172.16.0.0/12', '172.20.1.1', True),
        ('not-an-ip/99, 10.0.0.1', '10.0.0.1', True),
        ('10.0.0.1', None, False),
        ('10.0.0.1', 'garbage', False),
    )
    @ddt.unpack
    def test_is_client_ip_allowed(self, allowed_ips, client_ip, expected):
        self.assertEqual(is_client_ip_allowed(allowed_ips, client_ip), expected)

    @ddt.data(
        ('Mozilla/5.0 SEB/3.3', True),
        ('Mozilla/5.0 Firefox/120.0', False),
        ('', False),
        (None, False),
    )
    @ddt.unpack
    def test_is_secure_browser(self, user_agent, expected):
        self.assertEqual(is_secure_browser(user_agent, ('SEB/',)), expected)

    def test_client_ip_and_user_agent(self):
        request = RequestFactory().get('/', HTTP_USER_AGENT='agent', REMOTE_ADDR='10.0.0.9')
        self.assertEqual(get_client_ip(request), '10.0.0.9')
        self.assertEqual(get_user_agent(request), 'agent')

        request = RequestFactory().get('/', HTTP_X_FORWARDED_FOR='1.2.3.4, 10.0.0.1')
        self.assertEqual(get_client_ip(request), '1.2.3.4')
        self.assertEqual(get_user_agent(RequestFactory().get('/')), '')
