"""
Refresh token issuance, rotation and revocation.

Raw tokens are handed to the client once and never stored; the database
only keeps a peppered SHA-256 hash of them.
"""

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta

import pytz

from django.db import transaction

from cbt_exams import constants
from cbt_exams.config import ConfigService
from cbt_exams.exceptions import RefreshTokenExpired, RefreshTokenInvalid, RefreshTokenRevoked
from cbt_exams.models import RefreshToken

log = logging.getLogger(__name__)


def generate_raw_token():
    """
    Returns 512 random bits, urlsafe base64 encoded without padding
    """
    return secrets.token_urlsafe(constants.REFRESH_TOKEN_BYTES)


def hash_token(raw_token, pepper=''):
    """
    Returns the hex SHA-256 digest of the token followed by the pepper
    """
    return hashlib.sha256(f'{raw_token}{pepper}'.encode('utf-8')).hexdigest()


class RefreshTokenManager:
    """
    Issues, rotates and revokes refresh tokens for usernames.

    Validity, the per user token cap and the pepper come from the
    configuration service, so they can be changed at runtime.
    """

    def __init__(self, config=None):
        self.config = config or ConfigService()

    @property
    def pepper(self):
        return self.config.get('REFRESH_TOKEN_PEPPER', constants.REFRESH_TOKEN_PEPPER) or ''

    @property
    def validity_days(self):
        return self.config.get_int('REFRESH_TOKEN_VALIDITY_DAYS', constants.REFRESH_TOKEN_VALIDITY_DAYS)

    @property
    def max_active_tokens(self):
        return self.config.get_int('MAX_ACTIVE_REFRESH_TOKENS', constants.MAX_ACTIVE_REFRESH_TOKENS)

    def _lookup(self, raw_token, for_update=False):
        """
        Returns the row matching a raw token, or None
        """
        token_hash = hash_token(raw_token, self.pepper)
        queryset = RefreshToken.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        token = queryset.filter(token_hash=token_hash).first()
        if token is not None and not hmac.compare_digest(token.token_hash, token_hash):
            return None
        return token

    def issue(self, username, ip_address=None, user_agent='', now=None):
        """
        Creates a token for username and returns its raw value.

        Makes room first when the user is at the cap of active tokens.
        """
        if now is None:
            now = datetime.now(pytz.UTC)

        with transaction.atomic():
            self.enforce_max_tokens(username, now=now)

            raw_token = generate_raw_token()
            token = RefreshToken.objects.create(
                username=username,
                token_hash=hash_token(raw_token, self.pepper),
                expiry_date=now + timedelta(days=self.validity_days),
                ip_address=ip_address or None,
                user_agent=(user_agent or '')[:512],
            )

        log.info(
            'Issued refresh_token_id=%(token_id)s for username=%(username)s, expires %(expiry_date)s',
            {'token_id': token.id, 'username': username, 'expiry_date': token.expiry_date}
        )
        return raw_token

    def verify_and_rotate(self, raw_token, ip_address=None, user_agent='', now=None):
        """
        Exchanges a valid raw token for a new one. The presented token is
        revoked, so it can only ever be used once.

        Returns a tuple of (username, new raw token).
        """
        if now is None:
            now = datetime.now(pytz.UTC)

        with transaction.atomic():
            token = self._lookup(raw_token, for_update=True)
            if token is None:
                log.warning('Rejected an unknown refresh token')
                raise RefreshTokenInvalid('Refresh token is not recognized.')
            if token.revoked:
                log.warning(
                    'Rejected revoked refresh_token_id=%(token_id)s for username=%(username)s',
                    {'token_id': token.id, 'username': token.username}
                )
                raise RefreshTokenRevoked('Refresh token has been revoked.')
            if token.expiry_date <= now:
                log.warning(
                    'Rejected expired refresh_token_id=%(token_id)s for username=%(username)s',
                    {'token_id': token.id, 'username': token.username}
                )
                raise RefreshTokenExpired('Refresh token has expired.')

            token.revoked = True
            token.last_used_at = now
            token.save()

            new_raw_token = self.issue(token.username, ip_address=ip_address, user_agent=user_agent, now=now)

        log.info(
            'Rotated refresh_token_id=%(token_id)s for username=%(username)s',
            {'token_id': token.id, 'username': token.username}
        )
        return token.username, new_raw_token

    def revoke(self, raw_token):
        """
        Revokes the token with this raw value. Returns False for unknown
        tokens; revoking twice is harmless.
        """
        token = self._lookup(raw_token)
        if token is None:
            return False
        if not token.revoked:
            token.revoked = True
            token.save()
            log.info(
                'Revoked refresh_token_id=%(token_id)s for username=%(username)s',
                {'token_id': token.id, 'username': token.username}
            )
        return True

    def revoke_by_id(self, token_id, username=None):
        """
        Revokes a token by primary key, optionally only if it belongs to
        username. Returns False when there is no such token.
        """
        queryset = RefreshToken.objects.filter(id=token_id)
        if username is not None:
            queryset = queryset.filter(username=username)
        token = queryset.first()
        if token is None:
            return False
        if not token.revoked:
            token.revoked = True
            token.save()
            log.info(
                'Revoked refresh_token_id=%(token_id)s for username=%(username)s',
                {'token_id': token.id, 'username': token.username}
            )
        return True

    def revoke_all(self, username):
        """
        Revokes every token of a user, returns how many were revoked
        """
        count = RefreshToken.objects.filter(username=username, revoked=False).update(revoked=True)
        log.info(
            'Revoked %(count)s refresh tokens for username=%(username)s',
            {'count': count, 'username': username}
        )
        return count

    def enforce_max_tokens(self, username, now=None):
        """
        Revokes the oldest active tokens of a user so that one more can be
        issued without going over the cap. Expired tokens do not count.

        The user's active rows stay locked until the surrounding transaction
        ends, so concurrent logins of one user take turns.
        """
        if now is None:
            now = datetime.now(pytz.UTC)

        with transaction.atomic():
            tokens = list(RefreshToken.objects.get_active_tokens(username, now).select_for_update())
            excess = len(tokens) - self.max_active_tokens + 1
            if excess <= 0:
                return 0

            for token in tokens[:excess]:
                token.revoked = True
                token.save()

        log.info(
            'Revoked %(excess)s oldest refresh tokens for username=%(username)s to stay under the cap',
            {'excess': excess, 'username': username}
        )
        return excess

    def get_active_tokens(self, username, now=None):
        """
        Returns the unrevoked, unexpired tokens of a user, oldest first
        """
        if now is None:
            now = datetime.now(pytz.UTC)
        return RefreshToken.objects.get_active_tokens(username, now)

    def get_active_token_count(self, username, now=None):
        return self.get_active_tokens(username, now=now).count()

    def cleanup(self, now=None):
        """
        Deletes expired and revoked tokens, returns how many were deleted
        """
        if now is None:
            now = datetime.now(pytz.UTC)
        deleted, __ = RefreshToken.objects.get_stale_tokens(now).delete()
        log.info('Deleted %(deleted)s stale refresh tokens', {'deleted': deleted})
        return deleted
