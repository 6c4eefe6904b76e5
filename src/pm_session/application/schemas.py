"""Pydantic schemas for the session API. Amounts are decimal strings."""

from pydantic import Field

from src.pm_common.enums import UnresolvedBetPolicy
from src.pm_common.response import WireModel
from src.pm_common.units import units_to_str
from src.pm_session.domain.models import (
    Bet,
    CollateralAccount,
    SessionCloseResult,
    StreamingBalance,
)

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class OpenSessionRequest(WireModel):
    user_address: str = Field(min_length=1)
    session_id: str = Field(min_length=1)
    collateral: int | str
    yield_rate_bps: int | None = Field(None, ge=0, le=10_000)
    safe_mode_enabled: bool = True
    escrow_confirmed: bool = True


class PlaceBetRequest(WireModel):
    session_id: str = Field(min_length=1)
    market_id: str = Field(min_length=1)
    side: str
    amount: int | str


class PlaceYieldBetRequest(WireModel):
    session_id: str = Field(min_length=1)
    market_id: str = Field(min_length=1)
    side: str
    yield_bps: int = Field(gt=0, le=10_000)


class ResolveBetRequest(WireModel):
    won: bool


class CloseSessionRequest(WireModel):
    session_id: str = Field(min_length=1)
    policy: UnresolvedBetPolicy | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BetSchema(WireModel):
    bet_id: str
    market_id: str
    side: str
    amount: str
    shares: str
    placed_at: int
    resolved: bool
    won: bool | None

    @classmethod
    def from_domain(cls, b: Bet) -> "BetSchema":
        return cls(
            bet_id=b.bet_id,
            market_id=b.market_id,
            side=b.side.value,
            amount=units_to_str(b.amount),
            shares=units_to_str(b.shares),
            placed_at=b.placed_at,
            resolved=b.resolved,
            won=b.won,
        )


class SessionSchema(WireModel):
    session_id: str
    user_address: str
    collateral: str
    yield_rate_bps: int
    safe_mode_enabled: bool
    status: str
    created_at: int
    closed_at: int | None
    bets: list[BetSchema]

    @classmethod
    def from_domain(cls, a: CollateralAccount) -> "SessionSchema":
        return cls(
            session_id=a.session_id,
            user_address=a.user_address,
            collateral=units_to_str(a.principal),
            yield_rate_bps=a.yield_rate_bps,
            safe_mode_enabled=a.safe_mode_enabled,
            status=a.status.value,
            created_at=a.created_at,
            closed_at=a.closed_at,
            bets=[BetSchema.from_domain(b) for b in a.bets],
        )


class StreamingBalanceSchema(WireModel):
    principal: str
    yield_: str = Field(alias="yield")
    open_bets: str
    available: str

    @classmethod
    def from_domain(cls, b: StreamingBalance) -> "StreamingBalanceSchema":
        return cls(
            principal=units_to_str(b.principal),
            yield_=units_to_str(b.yield_amount),
            open_bets=units_to_str(b.open_bets),
            available=units_to_str(b.available),
        )


class SessionCloseSchema(WireModel):
    session_id: str
    principal: str
    pnl: str
    final_balance: str
    counterparty_reserve: str
    bets_won: int
    bets_lost: int
    bets_unresolved: int
    closed_at: int
    close_digest: str

    @classmethod
    def from_domain(cls, r: SessionCloseResult) -> "SessionCloseSchema":
        return cls(
            session_id=r.session_id,
            principal=units_to_str(r.principal),
            pnl=units_to_str(r.pnl),
            final_balance=units_to_str(r.final_balance),
            counterparty_reserve=units_to_str(r.counterparty_reserve),
            bets_won=r.bets_won,
            bets_lost=r.bets_lost,
            bets_unresolved=r.bets_unresolved,
            closed_at=r.closed_at,
            close_digest=r.close_digest,
        )
