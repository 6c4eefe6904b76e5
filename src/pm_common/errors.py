"""Unified error codes and custom exceptions.

Error code ranges:
  2xxx: Collateral balance
  3xxx: Market / pool / settlement
  4xxx: Trade input
  5xxx: Position
  6xxx: Session
  9xxx: System

Every error carries exactly one ErrorKind so a caller can map it to an
HTTP status or UI message without parsing the text.
"""

from src.pm_common.enums import ErrorKind


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
        kind: ErrorKind = ErrorKind.INTERNAL,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.kind = kind
        super().__init__(message)


# --- 2xxx: Collateral balance ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required}, available {available}",
            422,
            ErrorKind.INSUFFICIENT_FUNDS,
        )


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404, ErrorKind.NOT_FOUND)


class MarketFinalizedError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(
            3002, f"Market is finalized: {market_id}", 422, ErrorKind.INVALID_STATE
        )


class MarketExistsError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(
            3003, f"Market already exists: {market_id}", 409, ErrorKind.INVALID_STATE
        )


class MarketMismatchError(AppError):
    def __init__(self, pool_market_id: str, resolution_market_id: str) -> None:
        super().__init__(
            3004,
            f"Market ID mismatch: pool={pool_market_id}, resolution={resolution_market_id}",
            422,
            ErrorKind.INVALID_INPUT,
        )


class ResolutionRejectedError(AppError):
    def __init__(self, oracle_source: str) -> None:
        super().__init__(
            3005,
            f"Resolution rejected: oracle {oracle_source!r} is not allow-listed",
            403,
            ErrorKind.INVALID_INPUT,
        )


class InsufficientLiquidityError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(
            3006, f"Insufficient liquidity: {detail}", 422, ErrorKind.INSUFFICIENT_FUNDS
        )


class PriceCapExceededError(AppError):
    def __init__(self, outcome: str, price: float, cap: float) -> None:
        super().__init__(
            3007,
            f"Trade would push {outcome} price to {price:.4f}, above cap {cap}",
            422,
            ErrorKind.INVALID_INPUT,
        )


class SettlementNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(
            3008, f"No settlement recorded for market {market_id}", 404, ErrorKind.NOT_FOUND
        )


# --- 4xxx: Trade input ---

class InvalidAmountError(AppError):
    def __init__(self, amount: object) -> None:
        super().__init__(
            4001, f"Amount must be a positive integer, got {amount!r}", 400,
            ErrorKind.INVALID_INPUT,
        )


class InvalidOutcomeError(AppError):
    def __init__(self, outcome: object) -> None:
        super().__init__(
            4002, f"Outcome must be YES or NO, got {outcome!r}", 400, ErrorKind.INVALID_INPUT
        )


class InvalidTargetPriceError(AppError):
    def __init__(self, price: object, low: float, high: float) -> None:
        super().__init__(
            4003, f"Target price must be between {low} and {high}, got {price!r}", 400,
            ErrorKind.INVALID_INPUT,
        )


# --- 5xxx: Position ---

class InsufficientPositionError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(
            5001, f"Insufficient position: {detail}", 422, ErrorKind.INSUFFICIENT_FUNDS
        )


class PositionNotFoundError(AppError):
    def __init__(self, market_id: str, user_id: str) -> None:
        super().__init__(
            5002,
            f"No position for user {user_id} in market {market_id}",
            404,
            ErrorKind.NOT_FOUND,
        )


# --- 6xxx: Session ---

class SessionNotFoundError(AppError):
    def __init__(self, session_id: str) -> None:
        super().__init__(6001, f"Session not found: {session_id}", 404, ErrorKind.NOT_FOUND)


class SessionNotActiveError(AppError):
    def __init__(self, session_id: str, status: str) -> None:
        super().__init__(
            6002,
            f"Session {session_id} is not active (status={status})",
            422,
            ErrorKind.INVALID_STATE,
        )


class SessionExistsError(AppError):
    def __init__(self, session_id: str) -> None:
        super().__init__(
            6003, f"Session already exists: {session_id}", 409, ErrorKind.INVALID_STATE
        )


class InvalidSessionTransitionError(AppError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            6004,
            f"Session cannot move from {current} to {target}",
            422,
            ErrorKind.INVALID_STATE,
        )


class BetNotFoundError(AppError):
    def __init__(self, bet_id: str) -> None:
        super().__init__(6005, f"Bet not found: {bet_id}", 404, ErrorKind.NOT_FOUND)


class UnresolvedBetsError(AppError):
    def __init__(self, session_id: str, count: int) -> None:
        super().__init__(
            6006,
            f"Session {session_id} has {count} unresolved bet(s)",
            422,
            ErrorKind.INVALID_STATE,
        )


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500, ErrorKind.INTERNAL)


class IntegrityViolationError(AppError):
    """A broken accounting invariant. Fatal: never retried or swallowed."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            9003, f"Integrity violation: {detail}", 500, ErrorKind.INTEGRITY_VIOLATION
        )
