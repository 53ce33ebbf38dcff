"""
Django settings for the PTO tracker.

Everything is read from the environment (a local .env file is loaded first).
There is no database: the request channel history is the ledger.
"""
import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'pto-tracker-dev-key')
DEBUG = env_bool('DJANGO_DEBUG', False)
ALLOWED_HOSTS = [h.strip() for h in os.getenv('DJANGO_ALLOWED_HOSTS', '*').split(',') if h.strip()]

INSTALLED_APPS = [
    'pto',
]

MIDDLEWARE = [
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'pto_tracker.urls'
WSGI_APPLICATION = 'pto_tracker.wsgi.application'

DATABASES = {}

USE_TZ = True
TIME_ZONE = 'UTC'

# Slack
SLACK_BOT_TOKEN = os.getenv('SLACK_BOT_TOKEN')
SLACK_SIGNING_SECRET = os.getenv('SLACK_SIGNING_SECRET')

# Channel IDs
PTO_REQUEST_CHANNEL = os.getenv('PTO_REQUEST_CHANNEL')            # users submit PTO here
PTO_LOG_CHANNEL = os.getenv('PTO_LOG_CHANNEL')                    # approvals, status, audit
PTO_END_ANNOUNCE_CHANNEL = os.getenv('PTO_END_ANNOUNCE_CHANNEL')  # welcome-back pings

# Web server for Slack deliveries and the liveness check
PORT = int(os.getenv('PORT', '8000'))

# Business rules
MAX_CONCURRENT_PTO = 4          # max people on PTO at once
ROLLING_WINDOW_DAYS = 60        # rolling window for the quota
MAX_PTO_PER_WINDOW = 14.0       # days allowed per window
PTO_FORMAT_ERROR_TTL_SECONDS = 10

# Only the most recent N request-channel messages are replayed; older
# requests beyond this limit are not counted.
PTO_HISTORY_LIMIT = int(os.getenv('PTO_HISTORY_LIMIT', '100'))
PTO_RESTORE_ON_STARTUP = env_bool('PTO_RESTORE_ON_STARTUP', True)
PTO_STATUS_COMMAND = os.getenv('PTO_STATUS_COMMAND', ',pto')

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'console': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'console',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': LOG_LEVEL,
    },
    'loggers': {
        'slack_sdk': {'level': 'WARNING'},
        'urllib3': {'level': 'WARNING'},
        'apscheduler': {'level': 'WARNING'},
    },
}
