from django.conf import settings
from django.utils import timezone
import logging

from .exceptions import ConcurrencyFull, QuotaExceeded
from .models import UsageTotal
from .pto_utils import format_days, slack_timestamp

logger = logging.getLogger(__name__)

COLOR_GREEN = '#00ff00'
COLOR_ORANGE = '#ffaa00'
COLOR_RED = '#ff0000'
COLOR_GREY = '#777777'


def evaluate_pto_request(pto_request, used_days, active):
    """
    Decide a PTO request that already passed parsing and identity checks.

    Quota first, then the concurrency cap; the first failing gate raises.
    Returns the claimant's usage including this request.
    """
    max_days = settings.MAX_PTO_PER_WINDOW
    remaining = round(max_days - used_days, 1)

    if pto_request.days > remaining:
        short = round(pto_request.days - remaining, 1)
        raise QuotaExceeded(
            f"❌ *Denied:* {used_days:.1f}/{max_days:.1f} used, {remaining:.1f} remaining. "
            f"You requested {pto_request.days:.1f} days, {short:.1f} days short.",
            used_days=used_days,
            remaining_days=remaining,
            requested_days=pto_request.days,
        )

    if len(active) >= settings.MAX_CONCURRENT_PTO:
        raise ConcurrencyFull(
            f"🚫 *Denied:* slot full, {len(active)}/{settings.MAX_CONCURRENT_PTO} people are already on PTO. "
            f"Wait for someone to return.",
            active_count=len(active),
        )

    return UsageTotal(
        user_id=pto_request.claimant_id,
        window_days=settings.ROLLING_WINDOW_DAYS,
        total_days=round(used_days + pto_request.days, 1),
    )


def create_approval_reply(pto_request):
    return (
        f"✅ *Approved:* <@{pto_request.claimant_id}> requested "
        f"*{format_days(pto_request.days)} days* off for _{pto_request.reason}_"
    )


def create_approval_log_attachment(pto_request, usage):
    return {
        'color': COLOR_GREEN,
        'title': '✅ PTO Approved',
        'text': (
            f"<@{pto_request.claimant_id}> is off for *{format_days(pto_request.days)} days*\n"
            f"> _{pto_request.reason}_"
        ),
        'fields': [
            {
                'title': f"Used ({usage.window_days}d)",
                'value': f"{usage.total_days:.1f}/{settings.MAX_PTO_PER_WINDOW:.1f}",
                'short': True
            },
            {
                'title': 'Ends',
                'value': slack_timestamp(pto_request.ends_at),
                'short': True
            }
        ],
        'ts': int(timezone.now().timestamp()),
        'mrkdwn_in': ['text', 'fields'],
    }


def status_color(active_count):
    max_pto = settings.MAX_CONCURRENT_PTO
    if active_count >= max_pto:
        return COLOR_RED
    if active_count >= max_pto - 1:
        return COLOR_ORANGE
    return COLOR_GREEN


def create_status_attachment(active):
    """Summary of who is on PTO right now"""
    if not active:
        description = '📭 No one is currently on PTO.'
    else:
        description = '\n'.join(
            f"• <@{p.claimant_id}> (*{format_days(p.days)}d*) – _{p.reason}_ ends {slack_timestamp(p.ends_at)}"
            for p in active
        )

    return {
        'color': status_color(len(active)),
        'title': f"👥 Currently on PTO: {len(active)}/{settings.MAX_CONCURRENT_PTO}",
        'text': description,
        'footer': 'PTO Tracker',
        'ts': int(timezone.now().timestamp()),
        'mrkdwn_in': ['text'],
    }


def create_pto_ended_attachment(user_id, days):
    return {
        'color': COLOR_GREY,
        'title': '🔚 PTO Ended',
        'text': f"<@{user_id}> has returned from *{format_days(days)} days* of PTO.",
        'ts': int(timezone.now().timestamp()),
        'mrkdwn_in': ['text'],
    }


def create_ledger_removed_attachment(user_id, previous_text):
    return {
        'color': COLOR_ORANGE,
        'title': '🗑️ PTO ledger entry removed',
        'text': f"A PTO request by <@{user_id}> was deleted from the request channel:\n> {previous_text}",
        'ts': int(timezone.now().timestamp()),
        'mrkdwn_in': ['text'],
    }
