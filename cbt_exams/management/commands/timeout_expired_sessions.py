"""
Django management command to time out exam sessions whose time has run out
"""

from django.core.management.base import BaseCommand

from cbt_exams.api import timeout_expired_sessions


class Command(BaseCommand):
    """
    Django Management command to end in progress sessions of strictly timed
    tests that the student never handed in, and grade them.
    """
    help = 'Time out and grade exam sessions past their duration'

    def handle(self, *args, **options):
        """
        Management command entry point
        """
        self.stdout.write('Looking for expired exam sessions')

        timed_out_ids = timeout_expired_sessions()

        for session_id in timed_out_ids:
            self.stdout.write(f'Timed out session {session_id}')
        self.stdout.write(self.style.SUCCESS(f'Timed out {len(timed_out_ids)} sessions.'))
