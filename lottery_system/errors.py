"""
Lottery System Errors
Exception types raised by the lottery core and the skull ledger
"""


class LotteryError(Exception):
    """Base class for all lottery system errors"""


class ValidationError(LotteryError):
    """Bad parameters, rejected before anything is persisted"""


class TicketLimitExceeded(ValidationError):
    """User would hold more tickets than the lottery allows"""

    def __init__(self, user_id, current, requested, limit):
        self.user_id = user_id
        self.current = current
        self.requested = requested
        self.limit = limit
        super().__init__(
            f"User {user_id} holds {current} ticket(s), cannot add {requested} (max {limit})"
        )


class StoreError(LotteryError):
    """A durable store call failed"""


class PresentationError(LotteryError):
    """The presentation layer (channel or message) was unreachable"""


class LotteryNotFound(LotteryError):
    """No lottery with that id is loaded"""


class LotteryNotActive(LotteryError):
    """Lottery has already ended or its end time has passed"""
