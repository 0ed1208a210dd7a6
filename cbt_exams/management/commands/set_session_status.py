"""
Django management command to manually set the status of an exam session
"""

from django.core.management.base import BaseCommand, CommandError

from cbt_exams.statuses import ExamSessionStatus


class Command(BaseCommand):
    """
    Django Management command to move an exam session through the status workflow by hand
    """

    def add_arguments(self, parser):
        parser.add_argument(
            '-s',
            '--session',
            metavar='SESSION_ID',
            dest='session_id',
            help='session_id to change',
        )
        parser.add_argument(
            '-t',
            '--to',
            metavar='TO_STATUS',
            dest='to_status',
            help='the status to set',
        )

    def handle(self, *args, **options):
        """
        Management command entry point, simply call into the status workflow
        """
        # pylint: disable=import-outside-toplevel
        from cbt_exams.api import update_session_status

        session_id = options['session_id']
        to_status = options['to_status']

        self.stdout.write(
            f'Running management command to update session {session_id} status to {to_status}'
        )

        if not ExamSessionStatus.is_valid_status(to_status):
            raise CommandError(f'{to_status} is not a valid exam session status!')

        status = update_session_status(session_id, to_status)

        self.stdout.write(f'Completed! Session {session_id} is now {status}.')
