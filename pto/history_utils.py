"""
Replays the request channel history.

The channel is the ledger: usage and "who is out" are recomputed from the
messages each time. Denied requests stay in the channel too, so the replay
walks the messages oldest first and puts each one through the same gates a
live request goes through. Only the requests that pass count. Nothing here
caches or stores results.
"""
from datetime import timedelta
import logging

from django.conf import settings
from django.utils import timezone

from .approval_utils import evaluate_pto_request
from .exceptions import PTOError
from .identity_utils import resolve_claimant_id
from .models import PTORequest, UsageTotal, ts_to_datetime
from .pto_utils import parse_pto_message, round_days

logger = logging.getLogger(__name__)


def is_bot_message(message):
    return bool(message.get('bot_id')) or message.get('subtype') == 'bot_message'


def iter_pto_requests(messages, members, exclude_ts=None):
    """
    Yield a PTORequest for every human message that parses, resolves and
    names its own author.

    A message whose claimant is somebody else was rejected when it was
    posted, so it never becomes a request.
    """
    for message in messages:
        if is_bot_message(message):
            continue
        if exclude_ts and message.get('ts') == exclude_ts:
            continue

        text = message.get('text', '')
        parsed = parse_pto_message(text)
        if not parsed:
            continue

        days = round_days(parsed.days)
        if days <= 0:
            continue

        claimant_id = resolve_claimant_id(text, parsed.claimant, members)
        if not claimant_id:
            logger.debug(f"Skipping unresolved PTO message {message.get('ts')}: '{parsed.claimant}'")
            continue
        if claimant_id != message.get('user'):
            logger.debug(f"Skipping PTO message {message.get('ts')} filed by {message.get('user')} for {claimant_id}")
            continue

        yield PTORequest(
            claimant_id=claimant_id,
            claimant_name=parsed.claimant,
            days=days,
            reason=parsed.reason,
            submitted_at=ts_to_datetime(message['ts']),
            channel=message.get('channel'),
            message_ts=message.get('ts'),
        )


def window_usage(requests, user_id, until):
    """Days user_id took in the rolling window ending at `until`"""
    cutoff = until - timedelta(days=settings.ROLLING_WINDOW_DAYS)
    total = sum(
        r.days for r in requests
        if r.claimant_id == user_id and cutoff <= r.submitted_at <= until
    )
    return round(total, 1)


def get_approved_requests(messages, members, exclude_ts=None):
    """
    Requests the bot approved, oldest first.

    Each candidate is evaluated against the requests approved before it:
    quota over the window ending at its own timestamp, then the concurrency
    cap at that moment.
    """
    candidates = sorted(iter_pto_requests(messages, members, exclude_ts=exclude_ts),
                        key=lambda r: r.submitted_at)
    approved = []
    for candidate in candidates:
        at = candidate.submitted_at
        used_days = window_usage(approved, candidate.claimant_id, at)
        active = [r for r in approved if r.is_active(at)]
        try:
            evaluate_pto_request(candidate, used_days, active)
        except PTOError as e:
            logger.debug(f"Replay: {candidate.message_ts} was denied ({type(e).__name__})")
            continue
        approved.append(candidate)
    return approved


def get_user_pto_usage(messages, user_id, members, now=None, exclude_ts=None):
    """Total approved PTO days of user_id within the rolling window, rounded to 0.1"""
    now = now or timezone.now()
    approved = get_approved_requests(messages, members, exclude_ts=exclude_ts)
    return window_usage(approved, user_id, now)


def get_usage_total(messages, user_id, members, now=None, exclude_ts=None):
    return UsageTotal(
        user_id=user_id,
        window_days=settings.ROLLING_WINDOW_DAYS,
        total_days=get_user_pto_usage(messages, user_id, members, now=now, exclude_ts=exclude_ts),
    )


def get_currently_on_pto(messages, members, now=None, exclude_ts=None):
    """Approved requests whose end time is still in the future, earliest return first"""
    now = now or timezone.now()
    active = [
        pto_request
        for pto_request in get_approved_requests(messages, members, exclude_ts=exclude_ts)
        if pto_request.is_active(now)
    ]
    return sorted(active, key=lambda r: r.ends_at)
