from django.conf import settings
from django.utils import timezone
import logging

from .approval_utils import create_pto_ended_attachment, create_status_attachment
from .exceptions import InfrastructureError
from .history_utils import get_currently_on_pto
from .pto_utils import format_days
from .scheduler import pto_end_scheduler
from .slack_utils import (
    fetch_channel_history, get_workspace_members, send_personal_notification, send_slack_message
)

logger = logging.getLogger(__name__)


def get_active_pto(now=None):
    """Fetch request channel history and return who is on PTO right now"""
    if not settings.PTO_REQUEST_CHANNEL:
        raise InfrastructureError("PTO_REQUEST_CHANNEL is not configured")
    messages = fetch_channel_history(settings.PTO_REQUEST_CHANNEL)
    members = get_workspace_members()
    return get_currently_on_pto(messages, members, now=now)


def post_current_pto_status(channel):
    """Post the current PTO status summary to any channel"""
    try:
        active = get_active_pto()
    except InfrastructureError as e:
        logger.error(f"Failed to post current PTO status: {e}")
        return None
    attachment = create_status_attachment(active)
    return send_slack_message(channel, attachment['title'], attachments=[attachment])


def send_pto_end_alert(user_id, days):
    """DM the user, welcome them back publicly and note it in the log channel"""
    logger.info(f"PTO ended for {user_id} ({days} days)")

    send_personal_notification(
        user_id,
        f"⏰ Your PTO has ended! You were off for *{format_days(days)} days*. Welcome back!"
    )

    if settings.PTO_END_ANNOUNCE_CHANNEL:
        send_slack_message(
            settings.PTO_END_ANNOUNCE_CHANNEL,
            f"<@{user_id}> 🎉 *Welcome back!* Your PTO has ended. You were off for *{format_days(days)} days*."
        )
    else:
        logger.error("PTO_END_ANNOUNCE_CHANNEL is not configured, skipping announcement")

    if settings.PTO_LOG_CHANNEL:
        attachment = create_pto_ended_attachment(user_id, days)
        send_slack_message(settings.PTO_LOG_CHANNEL, attachment['title'], attachments=[attachment])
    else:
        logger.error("PTO_LOG_CHANNEL is not configured, skipping PTO end log entry")


def schedule_pto_end_alert(pto_request, now=None):
    """Schedule the end-of-PTO alert, replacing any pending one for the same user"""
    return pto_end_scheduler.schedule(
        pto_request.claimant_id, pto_request.ends_at, send_pto_end_alert,
        pto_request.claimant_id, pto_request.days, now=now
    )


def restore_pto_end_alerts(now=None):
    """Rebuild pending alerts after a restart by rescanning the request channel"""
    now = now or timezone.now()
    try:
        active = get_active_pto(now=now)
    except InfrastructureError as e:
        logger.error(f"Cannot restore PTO end alerts: {e}")
        return []
    # ascending end time, so each user's latest PTO is the one left scheduled
    for pto_request in active:
        schedule_pto_end_alert(pto_request, now=now)
    logger.info(f"Restored {len(active)} PTO end alert(s)")
    return active
