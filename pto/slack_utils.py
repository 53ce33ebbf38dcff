from slack_sdk.web.client import WebClient
from slack_sdk.errors import SlackApiError
from django.conf import settings
import logging
import threading

from .exceptions import InfrastructureError
from .identity_utils import is_active_member
from .scheduler import run_later

logger = logging.getLogger(__name__)

slack_client = WebClient(
    token=settings.SLACK_BOT_TOKEN,
    timeout=30
)

LEDGER_PURPOSE = (
    "PTO requests: `Your Name - X days - Reason`. "
    "This channel is the PTO ledger, please don't delete or edit requests."
)


def run_in_background(target, *args):
    """Run target in a daemon thread so Slack gets its ack within 3 seconds"""
    def runner():
        try:
            target(*args)
        except Exception:
            logger.exception(f"Unhandled error in background task {getattr(target, '__name__', target)}")

    thread = threading.Thread(target=runner)
    thread.daemon = True
    thread.start()
    return thread


def fetch_channel_history(channel, limit=None):
    """
    Fetch the most recent `limit` top-level messages of a channel.

    Anything older than the limit is not returned. Each message gets its
    channel id stamped on it. Raises InfrastructureError when Slack fails.
    """
    limit = limit or settings.PTO_HISTORY_LIMIT
    messages = []
    cursor = None
    try:
        while len(messages) < limit:
            response = slack_client.conversations_history(
                channel=channel,
                limit=min(limit - len(messages), 200),
                cursor=cursor
            )
            messages.extend(response.get('messages', []))
            cursor = (response.get('response_metadata') or {}).get('next_cursor')
            if not response.get('has_more') or not cursor:
                break
    except SlackApiError as e:
        logger.error(f"Error fetching history for channel {channel}: {e}")
        raise InfrastructureError(f"Could not read history of {channel}: {e}") from e

    for message in messages:
        message.setdefault('channel', channel)
    return messages[:limit]


def get_workspace_members():
    """Active human members of the workspace, in roster order"""
    members = []
    cursor = None
    try:
        while True:
            response = slack_client.users_list(limit=200, cursor=cursor)
            members.extend(response.get('members', []))
            cursor = (response.get('response_metadata') or {}).get('next_cursor')
            if not cursor:
                break
    except SlackApiError as e:
        logger.error(f"Error listing workspace members: {e}")
        raise InfrastructureError(f"Could not list workspace members: {e}") from e
    return [member for member in members if is_active_member(member)]


def get_user_profile(user_id):
    try:
        response = slack_client.users_info(user=user_id)
        return response['user']
    except SlackApiError as e:
        logger.warning(f"Could not get Slack user info for {user_id}: {e}")
        return None


def send_reply(channel, thread_ts, text):
    """Reply in the thread of the given message"""
    try:
        return slack_client.chat_postMessage(
            channel=channel,
            thread_ts=thread_ts,
            text=text
        )
    except SlackApiError as e:
        logger.error(f"Error replying in channel {channel}: {e}")
        return None


def send_slack_message(channel, text, attachments=None):
    """Send message to Slack channel"""
    if not channel:
        logger.error(f"No channel configured for message: {text}")
        return None
    try:
        return slack_client.chat_postMessage(
            channel=channel,
            text=text,
            attachments=attachments
        )
    except SlackApiError as e:
        logger.error(f"Error sending message to channel {channel}: {e}")
        if 'channel_not_found' in str(e):
            logger.error(f"Channel {channel} not found. Please check channel ID")
        return None


def send_personal_notification(user_id, text):
    """Best-effort DM; users with DMs closed are skipped"""
    try:
        return slack_client.chat_postMessage(
            channel=user_id,
            text=text
        )
    except SlackApiError as e:
        logger.warning(f"Error sending DM to user {user_id}: {e}")
        return None


def delete_message(channel, ts):
    try:
        slack_client.chat_delete(channel=channel, ts=ts)
        return True
    except SlackApiError as e:
        logger.warning(f"Could not delete message {ts} in {channel}: {e}")
        return False


def delete_message_later(channel, ts, delay_seconds):
    return run_later(delay_seconds, delete_message, channel, ts)


def lock_request_channel(channel):
    """
    Mark the request channel as the PTO ledger.

    Slack has no per-channel "manage messages" permission in the Web API,
    so the bot joins the channel, pins the rules in its purpose and audits
    deletions instead.
    """
    if not channel:
        logger.error("PTO_REQUEST_CHANNEL is not configured, cannot lock request channel")
        return False
    try:
        slack_client.conversations_join(channel=channel)
        slack_client.conversations_setPurpose(channel=channel, purpose=LEDGER_PURPOSE)
        logger.info(f"Request channel {channel} locked as PTO ledger")
        return True
    except SlackApiError as e:
        logger.error(f"Error locking request channel {channel}: {e}")
        return False
