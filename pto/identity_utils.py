"""
Identity resolution for PTO requests.

A request names its claimant either with a Slack mention (authoritative) or
with free text. Free text is compared by an ordered list of matchers; the
first matcher that finds a member wins, and within a matcher the first
member in roster order wins.
"""
import logging

from .pto_utils import extract_mention_id

logger = logging.getLogger(__name__)


def _profile(member):
    return member.get('profile') or {}


def match_display_name(member, name):
    return (_profile(member).get('display_name') or '').lower() == name


def match_username(member, name):
    return (member.get('name') or '').lower() == name


def match_tag_prefix(member, name):
    # Slack has no discriminator tag; the full real name plays that role
    tag = (_profile(member).get('real_name') or member.get('real_name') or '').lower()
    return tag.startswith(name)


NAME_MATCHERS = [
    ('display_name', match_display_name),
    ('username', match_username),
    ('tag_prefix', match_tag_prefix),
]


def normalize_name(text):
    return (text or '').strip().lower()


def find_member_by_name(claimant_text, members, matchers=None):
    """Return the first member matching the claimant text, or None"""
    name = normalize_name(claimant_text)
    if not name:
        return None

    for matcher_name, matcher in (matchers or NAME_MATCHERS):
        for member in members:
            if matcher(member, name):
                logger.debug(f"Matched '{name}' to {member.get('id')} via {matcher_name}")
                return member
    return None


def resolve_claimant_id(text, claimant_text, members, matchers=None):
    """
    Resolve the claimant of a historical request.

    Mention id first, then name matching against the workspace roster.
    Returns None when neither path resolves.
    """
    mention_id = extract_mention_id(text)
    if mention_id:
        return mention_id

    member = find_member_by_name(claimant_text, members, matchers)
    return member['id'] if member else None


def resolve_sender_claim(text, claimant_text, sender, matchers=None):
    """
    Resolve the claimant of a new submission.

    Only the sender's own profile is considered for name matching, so a
    message can never resolve to somebody else by name. A mention still wins
    and may point elsewhere; the caller rejects that as a self-submission
    violation.
    """
    mention_id = extract_mention_id(text)
    if mention_id:
        return mention_id

    if sender and find_member_by_name(claimant_text, [sender], matchers):
        return sender['id']
    return None


def is_active_member(member):
    """Roster entries that can own PTO: real, non-deleted humans"""
    if member.get('deleted') or member.get('is_bot'):
        return False
    return member.get('id') != 'USLACKBOT'
