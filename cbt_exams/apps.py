"""
cbt_exams Django application initialization.
"""

from stevedore.extension import ExtensionManager

from django.apps import AppConfig
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

BACKEND_CONFIGURATION_ALLOW_LIST = [
    'partial_credit',
]


class CbtExamsConfig(AppConfig):
    """
    Configuration for the cbt_exams Django application.
    """

    name = 'cbt_exams'
    verbose_name = 'CBT Exams'
    default_auto_field = 'django.db.models.AutoField'

    def get_backend(self, name=None):
        """
        Returns an instance of the grading backend.

        :param str name: Name of entrypoint in cbt_exams.grading
        """
        if name is None:
            try:
                name = settings.CBT_EXAMS_GRADING_BACKENDS['DEFAULT']
            except (KeyError, AttributeError) as exc:
                raise ImproperlyConfigured(
                    "No default grading backend set in settings.CBT_EXAMS_GRADING_BACKENDS"
                ) from exc
        try:
            return self.backends[name]
        except KeyError as error:
            raise NotImplementedError(f"No grading backend configured for '{name}'.  "
                                      f"Available: {list(self.backends)}") from error

    def ready(self):
        """
        Loads the available grading backends
        """
        # pylint: disable=unused-import
        # pylint: disable=import-outside-toplevel
        from cbt_exams import signals
        config = getattr(settings, 'CBT_EXAMS_GRADING_BACKENDS', {})

        self.backends = {}  # pylint: disable=W0201
        for extension in ExtensionManager(namespace='cbt_exams.grading'):
            name = extension.name
            try:
                options = {
                    key: val for (key, val) in config[name].items()
                    if key in BACKEND_CONFIGURATION_ALLOW_LIST
                }
                self.backends[name] = extension.plugin(**options)
            except KeyError:
                pass
