from dataclasses import dataclass
from datetime import datetime, timedelta, timezone as dt_timezone

SECONDS_PER_DAY = 24 * 60 * 60


def ts_to_datetime(ts):
    """Convert a Slack message ts ("1700000000.000100") to an aware UTC datetime"""
    return datetime.fromtimestamp(float(ts), tz=dt_timezone.utc)


@dataclass(frozen=True)
class PTORequest:
    """
    A single PTO request, derived from one message in the request channel.

    There is no separate storage: the request lives exactly as long as the
    Slack message it was parsed from.
    """
    claimant_id: str
    claimant_name: str
    days: float
    reason: str
    submitted_at: datetime
    channel: str = None
    message_ts: str = None

    @property
    def ends_at(self):
        return self.submitted_at + timedelta(seconds=self.days * SECONDS_PER_DAY)

    @property
    def started_at(self):
        return self.submitted_at

    def is_active(self, now):
        return self.ends_at > now


@dataclass(frozen=True)
class UsageTotal:
    user_id: str
    window_days: int
    total_days: float

    def remaining(self, allowed):
        return round(allowed - self.total_days, 1)
