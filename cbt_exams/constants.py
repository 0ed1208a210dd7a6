"""
Lists of constants that can be used in the CBT exams subsystem
"""

from django.conf import settings

CBT_EXAMS_SETTINGS = getattr(settings, 'CBT_EXAMS_SETTINGS', {})

REFRESH_TOKEN_VALIDITY_DAYS = (
    CBT_EXAMS_SETTINGS['REFRESH_TOKEN_VALIDITY_DAYS'] if
    'REFRESH_TOKEN_VALIDITY_DAYS' in CBT_EXAMS_SETTINGS
    else getattr(settings, 'REFRESH_TOKEN_VALIDITY_DAYS', 7)
)

MAX_ACTIVE_REFRESH_TOKENS = (
    CBT_EXAMS_SETTINGS['MAX_ACTIVE_REFRESH_TOKENS'] if
    'MAX_ACTIVE_REFRESH_TOKENS' in CBT_EXAMS_SETTINGS
    else getattr(settings, 'MAX_ACTIVE_REFRESH_TOKENS', 5)
)

REFRESH_TOKEN_PEPPER = (
    CBT_EXAMS_SETTINGS['REFRESH_TOKEN_PEPPER'] if
    'REFRESH_TOKEN_PEPPER' in CBT_EXAMS_SETTINGS
    else getattr(settings, 'REFRESH_TOKEN_PEPPER', '')
)

# number of random bytes in a raw refresh token (512 bits)
REFRESH_TOKEN_BYTES = 64

CONFIG_CACHE_TIMEOUT = (
    CBT_EXAMS_SETTINGS['CONFIG_CACHE_TIMEOUT'] if
    'CONFIG_CACHE_TIMEOUT' in CBT_EXAMS_SETTINGS
    else getattr(settings, 'CBT_EXAMS_CONFIG_CACHE_TIMEOUT', 300)
)

CONFIG_CACHE_KEY_PREFIX = 'cbt_exams.config.'

# fields of an exam session that may be changed outside of the status workflow
UPDATABLE_SESSION_FIELDS = ['current_question_index']

# score precision for percentages
PERCENTAGE_DECIMAL_PLACES = 2

# user agent fragments that identify a lockdown browser
SECURE_BROWSER_USER_AGENT_MARKERS = (
    CBT_EXAMS_SETTINGS['SECURE_BROWSER_USER_AGENT_MARKERS'] if
    'SECURE_BROWSER_USER_AGENT_MARKERS' in CBT_EXAMS_SETTINGS
    else getattr(settings, 'SECURE_BROWSER_USER_AGENT_MARKERS', ('SEB/',))
)
