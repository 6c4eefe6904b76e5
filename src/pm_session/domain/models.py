"""Domain models for pm_session: collateral accounts and their bets.

A CollateralAccount is mutated only by SessionService, under its session lock.
`principal` is fixed at open and never written afterwards.
"""

from dataclasses import dataclass, field

from src.pm_common.enums import Outcome, SessionStatus


@dataclass
class Bet:
    bet_id: str
    session_id: str
    market_id: str
    side: Outcome
    amount: int         # currency staked
    shares: int         # shares received from the AMM
    placed_at: int
    resolved: bool = False
    won: bool | None = None


@dataclass
class CollateralAccount:
    session_id: str
    user_address: str
    principal: int
    yield_rate_bps: int
    created_at: int
    safe_mode_enabled: bool = True
    status: SessionStatus = SessionStatus.PENDING
    bets: list[Bet] = field(default_factory=list)
    closed_at: int | None = None

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    def find_bet(self, bet_id: str) -> Bet | None:
        for bet in self.bets:
            if bet.bet_id == bet_id:
                return bet
        return None


@dataclass(frozen=True)
class StreamingBalance:
    principal: int
    yield_amount: int
    open_bets: int
    available: int


@dataclass(frozen=True)
class SessionPnl:
    pnl: int
    bets_won: int
    bets_lost: int
    bets_unresolved: int


@dataclass(frozen=True)
class SessionCloseResult:
    session_id: str
    user_address: str
    principal: int
    pnl: int
    final_balance: int          # principal + pnl, paid to the user
    counterparty_reserve: int   # max(0, -pnl)
    bets_won: int
    bets_lost: int
    bets_unresolved: int
    closed_at: int
    close_digest: str           # keccak256(bytes32 session_id, int256 pnl) for the escrow
