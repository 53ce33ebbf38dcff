"""
Handlers for Slack message events.

WORKFLOW:
- `,pto` in any channel the bot is in posts the current PTO status
- Top-level messages in the request channel are PTO requests:
  parse -> resolve claimant -> quota -> concurrency -> approve
- Deleted requests in the request channel are reported to the log channel
"""
from django.conf import settings
import logging

from .approval_utils import (
    create_approval_log_attachment, create_approval_reply, create_ledger_removed_attachment,
    evaluate_pto_request
)
from .exceptions import FormatError, InfrastructureError, InvalidDaysError, PTOError, SelfSubmissionError
from .history_utils import get_currently_on_pto, get_user_pto_usage, is_bot_message
from .identity_utils import resolve_claimant_id, resolve_sender_claim
from .models import PTORequest, ts_to_datetime
from .notification_utils import post_current_pto_status, schedule_pto_end_alert
from .pto_utils import PTO_FORMAT_HINT, extract_mention_id, parse_pto_message, round_days
from .slack_utils import (
    delete_message_later, fetch_channel_history, get_user_profile, get_workspace_members,
    send_reply, send_slack_message
)

logger = logging.getLogger(__name__)


def handle_message_event(event):
    """Route a Slack `message` event"""
    if is_bot_message(event):
        return

    subtype = event.get('subtype')
    if subtype == 'message_deleted':
        return handle_message_deleted(event)
    if subtype:
        return

    text = (event.get('text') or '').strip()
    channel = event.get('channel')

    if text == settings.PTO_STATUS_COMMAND:
        logger.info(f"Status command from {event.get('user')} in {channel}")
        post_current_pto_status(channel)
        return

    if channel != settings.PTO_REQUEST_CHANNEL:
        return

    # replies inside a request's thread are conversation, not requests
    thread_ts = event.get('thread_ts')
    if thread_ts and thread_ts != event.get('ts'):
        return

    handle_pto_request(event)


def build_pto_request(event, sender):
    """
    Turn a request-channel message into a PTORequest for its sender.

    Raises FormatError, InvalidDaysError or SelfSubmissionError. Raises
    InfrastructureError when a name has to be checked but the sender's
    profile could not be loaded.
    """
    text = event.get('text') or ''
    parsed = parse_pto_message(text)
    if not parsed:
        raise FormatError(f"❌ *Invalid format.* Use: {PTO_FORMAT_HINT}")

    requested_days = round_days(parsed.days)
    if requested_days <= 0:
        raise InvalidDaysError("❌ Invalid number of days.")

    sender_id = event.get('user')
    if sender is None and not extract_mention_id(text):
        raise InfrastructureError(f"Could not load the Slack profile of {sender_id}")

    claimant_id = resolve_sender_claim(text, parsed.claimant, sender)
    if not claimant_id or claimant_id != sender_id:
        raise SelfSubmissionError("⚠️ You can only submit PTO for yourself.")

    return PTORequest(
        claimant_id=claimant_id,
        claimant_name=parsed.claimant,
        days=requested_days,
        reason=parsed.reason,
        submitted_at=ts_to_datetime(event['ts']),
        channel=event.get('channel'),
        message_ts=event.get('ts'),
    )


def handle_pto_request(event):
    """Evaluate a PTO request message and answer it in its thread"""
    channel = event['channel']
    ts = event['ts']
    sender_id = event.get('user')
    logger.info(f"PTO_REQUEST: {sender_id} in {channel}: '{event.get('text')}'")

    sender = get_user_profile(sender_id)

    try:
        pto_request = build_pto_request(event, sender)

        # the triggering message is already in history; don't count it twice
        messages = fetch_channel_history(channel)
        members = get_workspace_members()
        used_days = get_user_pto_usage(messages, pto_request.claimant_id, members, exclude_ts=ts)
        active = get_currently_on_pto(messages, members, exclude_ts=ts)

        usage = evaluate_pto_request(pto_request, used_days, active)

    except FormatError as e:
        logger.info(f"PTO_REQUEST_FORMAT_ERROR: {sender_id}")
        warning = send_reply(channel, ts, e.user_message)
        if warning:
            delete_message_later(channel, warning['ts'], settings.PTO_FORMAT_ERROR_TTL_SECONDS)
        return None

    except PTOError as e:
        logger.info(f"PTO_REQUEST_DENIED: {sender_id}: {type(e).__name__}")
        send_reply(channel, ts, e.user_message)
        return None

    except InfrastructureError as e:
        logger.error(f"PTO_REQUEST_ABORTED: {sender_id} in {channel} at {ts}: {e}")
        return None

    approve_pto_request(pto_request, usage)
    return pto_request


def approve_pto_request(pto_request, usage):
    """Reply, log, schedule the end alert and refresh the status summary"""
    logger.info(
        f"PTO_APPROVED: {pto_request.claimant_id} {pto_request.days} days, "
        f"usage {usage.total_days}/{settings.MAX_PTO_PER_WINDOW}, ends {pto_request.ends_at.isoformat()}"
    )
    send_reply(pto_request.channel, pto_request.message_ts, create_approval_reply(pto_request))

    if settings.PTO_LOG_CHANNEL:
        attachment = create_approval_log_attachment(pto_request, usage)
        send_slack_message(settings.PTO_LOG_CHANNEL, attachment['title'], attachments=[attachment])
    else:
        logger.error("PTO_LOG_CHANNEL is not configured, skipping approval log entry")

    schedule_pto_end_alert(pto_request)

    if settings.PTO_LOG_CHANNEL:
        post_current_pto_status(settings.PTO_LOG_CHANNEL)


def handle_message_deleted(event):
    """Report a PTO request that was removed from the ledger"""
    if event.get('channel') != settings.PTO_REQUEST_CHANNEL:
        return

    previous = event.get('previous_message') or {}
    if is_bot_message(previous):
        return

    text = previous.get('text') or ''
    parsed = parse_pto_message(text)
    if not parsed:
        return

    try:
        members = get_workspace_members()
    except InfrastructureError as e:
        logger.warning(f"Reporting removed entry by author only: {e}")
        members = []

    user_id = resolve_claimant_id(text, parsed.claimant, members) or previous.get('user')
    logger.warning(f"PTO ledger entry removed: {previous.get('ts')} by {user_id}: '{text}'")

    if settings.PTO_LOG_CHANNEL:
        attachment = create_ledger_removed_attachment(user_id, text)
        send_slack_message(settings.PTO_LOG_CHANNEL, attachment['title'], attachments=[attachment])
