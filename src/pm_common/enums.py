"""Global enums: values are part of the wire contract, keep them stable."""

from enum import Enum


class Outcome(str, Enum):
    YES = "YES"
    NO = "NO"

    @property
    def opposite(self) -> "Outcome":
        return Outcome.NO if self is Outcome.YES else Outcome.YES


class TradeDirection(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class SessionStatus(str, Enum):
    """Collateral session lifecycle. Transitions only move forward."""
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"


class UnresolvedBetPolicy(str, Enum):
    """How close_session treats bets that were never resolved."""
    BLOCK = "BLOCK"        # refuse to close
    FORFEIT = "FORFEIT"    # count as lost
    EXCLUDE = "EXCLUDE"    # contribute nothing to PnL


class ErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_STATE = "INVALID_STATE"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    INTEGRITY_VIOLATION = "INTEGRITY_VIOLATION"
    INTERNAL = "INTERNAL"
