"""
Django management command to delete expired and revoked refresh tokens
"""

from datetime import datetime

import pytz

from django.core.management.base import BaseCommand

from cbt_exams.models import RefreshToken
from cbt_exams.tokens import RefreshTokenManager


class Command(BaseCommand):
    """
    Django Management command to purge refresh tokens that can no longer be used.
    Meant to be run daily.
    """
    help = 'Delete expired and revoked refresh tokens'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            dest='dry_run',
            help='Show how many tokens would be deleted without deleting them',
        )

    def handle(self, *args, **options):
        """
        Management command entry point
        """
        now = datetime.now(pytz.UTC)
        stale_count = RefreshToken.objects.get_stale_tokens(now).count()

        if options['dry_run']:
            self.stdout.write(f'DRY RUN: would delete {stale_count} refresh tokens.')
            return

        deleted = RefreshTokenManager().cleanup(now=now)
        self.stdout.write(self.style.SUCCESS(f'Deleted {deleted} refresh tokens.'))
