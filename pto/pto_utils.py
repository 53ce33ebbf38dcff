import re
from collections import namedtuple

# Parses: "Name - 5 days - Reason"
PTO_REGEX = re.compile(r'^(.+?)\s*-\s*(\d+(?:\.\d+)?)\s*days?\s*-\s*(.+)$', re.IGNORECASE | re.DOTALL)

# Slack mentions: <@U123>, <@U123|alice>, and the legacy <@!U123>
MENTION_REGEX = re.compile(r'<@!?([A-Z0-9]+)(?:\|[^>]*)?>', re.IGNORECASE)

PTO_FORMAT_HINT = '`Your Name - X days - Reason`'

ParsedPTO = namedtuple('ParsedPTO', ['claimant', 'days', 'reason'])


def parse_pto_message(text):
    """Parse a PTO request message, returning ParsedPTO or None if it doesn't match"""
    if not text:
        return None
    match = PTO_REGEX.match(text.strip())
    if not match:
        return None
    claimant, days_str, reason = match.groups()
    return ParsedPTO(claimant.strip(), float(days_str), reason.strip())


def format_pto_message(claimant, days, reason):
    """Inverse of parse_pto_message"""
    return f"{claimant} - {format_days(days)} days - {reason}"


def extract_mention_id(text):
    """Return the first user id mentioned in the text, if any"""
    if not text:
        return None
    match = MENTION_REGEX.search(text)
    return match.group(1) if match else None


def round_days(days):
    return round(float(days), 1)


def format_days(days):
    """5.0 -> "5", 2.5 -> "2.5" """
    days = round_days(days)
    return str(int(days)) if days == int(days) else str(days)


def format_time(dt):
    """Fallback text for clients that can't render Slack dates: "Oct 17, 3:04 PM" """
    hour = dt.hour % 12 or 12
    suffix = 'AM' if dt.hour < 12 else 'PM'
    return f"{dt.strftime('%b')} {dt.day}, {hour}:{dt.minute:02d} {suffix}"


def slack_timestamp(dt):
    """Slack date token rendered in each reader's own timezone"""
    epoch = int(dt.timestamp())
    return f"<!date^{epoch}^{{date_short_pretty}} at {{time}}|{format_time(dt)} UTC>"
