class PTOError(Exception):
    """Base class for PTO request failures that are answered in chat"""

    def __init__(self, user_message):
        super().__init__(user_message)
        self.user_message = user_message


class FormatError(PTOError):
    """Message does not follow `Name - X days - Reason`"""


class InvalidDaysError(PTOError, ValueError):
    """Day count is not a positive number"""


class SelfSubmissionError(PTOError):
    """Claimant does not resolve to the sender"""


class QuotaExceeded(PTOError):
    def __init__(self, user_message, used_days, remaining_days, requested_days):
        super().__init__(user_message)
        self.used_days = used_days
        self.remaining_days = remaining_days
        self.requested_days = requested_days


class ConcurrencyFull(PTOError):
    def __init__(self, user_message, active_count):
        super().__init__(user_message)
        self.active_count = active_count


class InfrastructureError(Exception):
    """A configured channel is missing or Slack could not be reached"""
