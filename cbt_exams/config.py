"""
Runtime configuration backed by the SystemConfig table
"""

import logging
from functools import partial

from django.conf import settings
from django.core.cache import cache
from django.db import transaction

from cbt_exams import constants
from cbt_exams.models import SystemConfig

log = logging.getLogger(__name__)

# marks a key that resolved to nothing, so misses are cached too
_MISSING = '__cbt_exams_missing__'


class ConfigService:
    """
    Resolves configuration keys from, in order, the SystemConfig table,
    settings.CBT_EXAMS_SETTINGS and the caller's default.

    Database values are cached. Writes through update() or update_many()
    invalidate the cached key, so the next read sees the new value.
    """

    def __init__(self, cache_timeout=None):
        self.cache_timeout = constants.CONFIG_CACHE_TIMEOUT if cache_timeout is None else cache_timeout

    @staticmethod
    def _cache_key(key):
        return f'{constants.CONFIG_CACHE_KEY_PREFIX}{key}'

    def _get_stored(self, key):
        """
        Returns the database value of a key or _MISSING
        """
        cache_key = self._cache_key(key)
        value = cache.get(cache_key)
        if value is None:
            row = SystemConfig.objects.filter(key=key).first()
            value = row.value if row is not None else _MISSING
            cache.set(cache_key, value, self.cache_timeout)
        return value

    def get(self, key, default=None):
        """
        Returns the configured value of key, as a string when it comes from
        the database
        """
        value = self._get_stored(key)
        if value != _MISSING:
            return value
        settings_values = getattr(settings, 'CBT_EXAMS_SETTINGS', {})
        if key in settings_values:
            return settings_values[key]
        return default

    def get_int(self, key, default):
        """
        Returns the configured value of key as an integer, falling back to
        default when the stored value is not a number
        """
        value = self.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            log.warning(
                'Configuration key %(key)s has non integer value %(value)s, using %(default)s',
                {'key': key, 'value': value, 'default': default}
            )
            return default

    def get_all(self):
        """
        Returns every database configuration value as a dictionary
        """
        return dict(SystemConfig.objects.values_list('key', 'value'))

    def invalidate(self, key):
        """
        Drops the cached value of key
        """
        cache.delete(self._cache_key(key))

    def invalidate_on_commit(self, key):
        """
        Drops the cached value of key now and again once the current
        transaction commits, so reads made before the commit do not stick
        """
        self.invalidate(key)
        transaction.on_commit(partial(self.invalidate, key))

    def update(self, key, value):
        """
        Stores value for key and invalidates its cached copy
        """
        SystemConfig.objects.update_or_create(key=key, defaults={'value': str(value)})
        self.invalidate_on_commit(key)
        log.info('Updated configuration key %(key)s', {'key': key})

    def update_many(self, values):
        """
        Stores every key/value pair of a dictionary
        """
        with transaction.atomic():
            for key, value in values.items():
                self.update(key, value)

    def delete(self, key):
        """
        Removes the database value of key, so settings or defaults apply again
        """
        SystemConfig.objects.filter(key=key).delete()
        self.invalidate_on_commit(key)
        log.info('Deleted configuration key %(key)s', {'key': key})
