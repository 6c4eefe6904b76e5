"""Streaming balance and session PnL: pure functions of account state and time.

There is no background accrual: yield is derived from elapsed time whenever a
balance is asked for.

    yield     = principal * rate_bps * elapsed_s // (SECONDS_PER_YEAR * 10_000)
    safe mode = max(0, yield - open_bets)              principal never at risk
    full mode = max(0, principal + yield - open_bets)
"""

from collections.abc import Iterable

from src.pm_common.enums import SessionStatus, UnresolvedBetPolicy
from src.pm_common.errors import InvalidSessionTransitionError, UnresolvedBetsError
from src.pm_common.units import BPS_DENOMINATOR, SECONDS_PER_YEAR, mul_div_floor
from src.pm_session.domain.models import (
    Bet,
    CollateralAccount,
    SessionCloseResult,
    SessionPnl,
    StreamingBalance,
)
from src.pm_settlement.domain.proof import session_close_digest

_NEXT_STATUS: dict[SessionStatus, SessionStatus] = {
    SessionStatus.PENDING: SessionStatus.ACTIVE,
    SessionStatus.ACTIVE: SessionStatus.CLOSING,
    SessionStatus.CLOSING: SessionStatus.CLOSED,
}


def accrued_yield(principal: int, rate_bps: int, created_at: int, now: int) -> int:
    elapsed_s = max(0, (now - created_at) // 1000)
    return mul_div_floor(principal * rate_bps, elapsed_s, SECONDS_PER_YEAR * BPS_DENOMINATOR)


def open_bet_total(bets: Iterable[Bet]) -> int:
    return sum(b.amount for b in bets if not b.resolved)


def streaming_balance(
    account: CollateralAccount, safe_mode: bool, now: int
) -> StreamingBalance:
    y = accrued_yield(account.principal, account.yield_rate_bps, account.created_at, now)
    open_bets = open_bet_total(account.bets)
    if safe_mode:
        available = max(0, y - open_bets)
    else:
        available = max(0, account.principal + y - open_bets)
    return StreamingBalance(
        principal=account.principal,
        yield_amount=y,
        open_bets=open_bets,
        available=available,
    )


def session_pnl(
    bets: Iterable[Bet],
    policy: UnresolvedBetPolicy = UnresolvedBetPolicy.BLOCK,
    session_id: str = "",
) -> SessionPnl:
    """Signed PnL: +amount per won bet, -amount per lost bet.

    Unresolved bets follow `policy`: EXCLUDE adds nothing, FORFEIT counts
    them as lost, BLOCK raises UnresolvedBetsError.
    """
    bets = list(bets)
    unresolved = [b for b in bets if not b.resolved]
    if unresolved and policy is UnresolvedBetPolicy.BLOCK:
        raise UnresolvedBetsError(session_id, len(unresolved))

    pnl = 0
    won = lost = 0
    for bet in bets:
        if bet.resolved and bet.won:
            pnl += bet.amount
            won += 1
        elif bet.resolved:
            pnl -= bet.amount
            lost += 1
    if policy is UnresolvedBetPolicy.FORFEIT:
        pnl -= sum(b.amount for b in unresolved)
        lost += len(unresolved)

    return SessionPnl(pnl=pnl, bets_won=won, bets_lost=lost, bets_unresolved=len(unresolved))


def advance_status(current: SessionStatus, target: SessionStatus) -> SessionStatus:
    """Only the immediate successor is a legal target."""
    if _NEXT_STATUS.get(current) != target:
        raise InvalidSessionTransitionError(current.value, target.value)
    return target


def build_close_result(
    account: CollateralAccount, outcome: SessionPnl, closed_at: int
) -> SessionCloseResult:
    return SessionCloseResult(
        session_id=account.session_id,
        user_address=account.user_address,
        principal=account.principal,
        pnl=outcome.pnl,
        final_balance=account.principal + outcome.pnl,
        counterparty_reserve=max(0, -outcome.pnl),
        bets_won=outcome.bets_won,
        bets_lost=outcome.bets_lost,
        bets_unresolved=outcome.bets_unresolved,
        closed_at=closed_at,
        close_digest=session_close_digest(account.session_id, outcome.pnl),
    )
