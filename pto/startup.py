from django.conf import settings
import logging

from . import slack_utils
from .notification_utils import restore_pto_end_alerts
from .scheduler import start_scheduler

logger = logging.getLogger(__name__)

_booted = False


def check_bot_identity():
    """auth.test; raises SlackApiError when the token is missing or rejected"""
    response = slack_utils.slack_client.auth_test()
    logger.info(f"✅ {response.get('user')} is online in {response.get('team')}.")
    return response


def run_startup_tasks():
    """Lock the request channel and reschedule alerts for PTO still in progress"""
    if slack_utils.lock_request_channel(settings.PTO_REQUEST_CHANNEL):
        logger.info("🔒 Request channel locked.")

    if settings.PTO_RESTORE_ON_STARTUP:
        return restore_pto_end_alerts()
    return []


def boot(run_tasks=True):
    """
    Log in, start the scheduler and run the startup tasks, once per process.

    Called by `runbot` and by the WSGI module; runserver imports the latter
    too, so the second call is a no-op.
    """
    global _booted
    if _booted:
        return []

    check_bot_identity()
    start_scheduler()
    restored = run_startup_tasks() if run_tasks else []
    _booted = True
    return restored
