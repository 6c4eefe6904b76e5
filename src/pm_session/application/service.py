"""SessionService: collateral sessions that bet against the AMM.

Each session has its own asyncio.Lock. A bet holds the session lock while
it awaits AmmService.buy, which takes the market lock: the order is always
session -> market, never the reverse. Settlement notifies this service after
it has released the market lock.
"""

import asyncio
import logging
import uuid
from collections import defaultdict

from config.settings import Settings
from config.settings import settings as default_settings
from src.pm_amm.application.service import AmmService
from src.pm_amm.domain.pricing import to_outcome
from src.pm_common.enums import Outcome, SessionStatus, UnresolvedBetPolicy
from src.pm_common.errors import (
    BetNotFoundError,
    InsufficientBalanceError,
    InvalidAmountError,
    SessionExistsError,
    SessionNotActiveError,
    SessionNotFoundError,
)
from src.pm_common.units import BPS_DENOMINATOR, mul_div_floor, validate_positive
from src.pm_session.domain.balance import (
    accrued_yield,
    advance_status,
    build_close_result,
    session_pnl,
    streaming_balance,
)
from src.pm_session.domain.models import (
    Bet,
    CollateralAccount,
    SessionCloseResult,
    StreamingBalance,
)

logger = logging.getLogger(__name__)


class SessionService:
    def __init__(self, amm: AmmService, settings: Settings | None = None) -> None:
        self._amm = amm
        self._settings = settings or default_settings
        self._sessions: dict[str, CollateralAccount] = {}
        self._user_sessions: dict[str, str] = {}
        self._session_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @property
    def default_policy(self) -> UnresolvedBetPolicy:
        return UnresolvedBetPolicy(self._settings.UNRESOLVED_BET_POLICY.upper())

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        """Lock of an existing session. Unknown ids raise before a lock is created."""
        self.get_session(session_id)
        return self._session_locks[session_id]

    def _active_session(self, session_id: str) -> CollateralAccount:
        account = self.get_session(session_id)
        if not account.is_active:
            raise SessionNotActiveError(session_id, account.status.value)
        return account

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open_session(
        self,
        user_address: str,
        session_id: str,
        collateral: int,
        yield_rate_bps: int | None = None,
        safe_mode_enabled: bool = True,
        escrow_confirmed: bool = True,
    ) -> CollateralAccount:
        """Track a session whose collateral is locked in escrow.

        With escrow_confirmed=False the session waits in PENDING until
        activate_session is called.
        """
        validate_positive(collateral)
        if yield_rate_bps is None:
            yield_rate_bps = self._settings.DEFAULT_YIELD_RATE_BPS
        user = user_address.lower()

        async with self._session_locks[session_id]:
            if session_id in self._sessions:
                raise SessionExistsError(session_id)
            account = CollateralAccount(
                session_id=session_id,
                user_address=user,
                principal=collateral,
                yield_rate_bps=yield_rate_bps,
                created_at=self._amm.clock(),
                safe_mode_enabled=safe_mode_enabled,
            )
            if escrow_confirmed:
                account.status = advance_status(account.status, SessionStatus.ACTIVE)
            self._sessions[session_id] = account
            self._user_sessions[user] = session_id

        logger.info(
            "Session opened: %s user=%s collateral=%d safe_mode=%s status=%s",
            session_id, user, collateral, safe_mode_enabled, account.status.value,
        )
        return account

    async def activate_session(self, session_id: str) -> CollateralAccount:
        async with self._lock_for(session_id):
            account = self.get_session(session_id)
            account.status = advance_status(account.status, SessionStatus.ACTIVE)
        logger.info("Session activated: %s", session_id)
        return account

    def get_session(self, session_id: str) -> CollateralAccount:
        account = self._sessions.get(session_id)
        if account is None:
            raise SessionNotFoundError(session_id)
        return account

    def get_session_for_user(self, user_address: str) -> CollateralAccount | None:
        """The user's current (not yet closed) session, if any."""
        session_id = self._user_sessions.get(user_address.lower())
        return self._sessions.get(session_id) if session_id else None

    def get_streaming_balance(
        self, session_id: str, safe_mode: bool | None = None
    ) -> StreamingBalance:
        account = self.get_session(session_id)
        if safe_mode is None:
            safe_mode = account.safe_mode_enabled
        return streaming_balance(account, safe_mode, self._amm.clock())

    # ------------------------------------------------------------------
    # Bets
    # ------------------------------------------------------------------

    async def place_bet(
        self, session_id: str, market_id: str, side: Outcome | str, amount: int
    ) -> tuple[Bet, StreamingBalance]:
        validate_positive(amount)
        outcome = to_outcome(side)

        async with self._lock_for(session_id):
            account = self._active_session(session_id)
            bet, after = await self._stake(account, market_id, outcome, amount)

        logger.info(
            "Bet placed: session=%s market=%s side=%s amount=%d shares=%d",
            session_id, market_id, outcome.value, amount, bet.shares,
        )
        return bet, after

    async def place_yield_bet(
        self, session_id: str, market_id: str, side: Outcome | str, yield_bps: int
    ) -> tuple[Bet, StreamingBalance]:
        """Stake `yield_bps` basis points of the yield accrued so far.

        The stake is floored to whole micro-units and then gated like any
        other bet, so open bets still count against it in safe mode.
        """
        if (
            isinstance(yield_bps, bool)
            or not isinstance(yield_bps, int)
            or not 0 < yield_bps <= BPS_DENOMINATOR
        ):
            raise InvalidAmountError(yield_bps)
        outcome = to_outcome(side)

        async with self._lock_for(session_id):
            account = self._active_session(session_id)
            accrued = accrued_yield(
                account.principal, account.yield_rate_bps, account.created_at, self._amm.clock()
            )
            amount = mul_div_floor(accrued, yield_bps, BPS_DENOMINATOR)
            if amount <= 0:
                raise InsufficientBalanceError(1, amount)
            bet, after = await self._stake(account, market_id, outcome, amount)

        logger.info(
            "Yield bet placed: session=%s market=%s side=%s yield_bps=%d amount=%d shares=%d",
            session_id, market_id, outcome.value, yield_bps, amount, bet.shares,
        )
        return bet, after

    async def _stake(
        self, account: CollateralAccount, market_id: str, outcome: Outcome, amount: int
    ) -> tuple[Bet, StreamingBalance]:
        """Gate `amount` on the streaming balance, buy on the AMM, record the bet.

        Caller holds the session lock. A failed AMM trade records nothing.
        """
        balance = streaming_balance(account, account.safe_mode_enabled, self._amm.clock())
        if amount > balance.available:
            raise InsufficientBalanceError(amount, balance.available)

        result = await self._amm.buy(market_id, account.user_address, amount, outcome)
        bet = Bet(
            bet_id=f"bet_{uuid.uuid4().hex[:16]}",
            session_id=account.session_id,
            market_id=market_id,
            side=outcome,
            amount=amount,
            shares=result.total_shares,
            placed_at=self._amm.clock(),
        )
        account.bets.append(bet)
        return bet, streaming_balance(account, account.safe_mode_enabled, self._amm.clock())

    async def resolve_bet(self, session_id: str, bet_id: str, won: bool) -> Bet:
        """Mark a bet won or lost. Resolving an already resolved bet changes nothing."""
        async with self._lock_for(session_id):
            account = self.get_session(session_id)
            bet = account.find_bet(bet_id)
            if bet is None:
                raise BetNotFoundError(bet_id)
            if not bet.resolved:
                bet.resolved = True
                bet.won = won
                logger.info("Bet resolved: %s %s", bet_id, "WON" if won else "LOST")
        return bet

    async def resolve_market_bets(self, market_id: str, winning_outcome: Outcome) -> int:
        """Resolve every open bet on `market_id` across non-closed sessions."""
        count = 0
        for session_id in list(self._sessions):
            async with self._session_locks[session_id]:
                account = self._sessions[session_id]
                if account.status == SessionStatus.CLOSED:
                    continue
                for bet in account.bets:
                    if bet.market_id == market_id and not bet.resolved:
                        bet.resolved = True
                        bet.won = bet.side is winning_outcome
                        count += 1
        if count:
            logger.info(
                "Resolved %d session bet(s) for market %s (%s won)",
                count, market_id, winning_outcome.value,
            )
        return count

    # ------------------------------------------------------------------
    # Close
    # ------------------------------------------------------------------

    async def close_session(
        self, session_id: str, policy: UnresolvedBetPolicy | None = None
    ) -> SessionCloseResult:
        policy = policy or self.default_policy
        async with self._lock_for(session_id):
            account = self._active_session(session_id)

            # BLOCK raises here, leaving the session ACTIVE
            outcome = session_pnl(account.bets, policy, session_id)

            account.status = advance_status(account.status, SessionStatus.CLOSING)
            now = self._amm.clock()
            result = build_close_result(account, outcome, now)
            account.status = advance_status(account.status, SessionStatus.CLOSED)
            account.closed_at = now
            if self._user_sessions.get(account.user_address) == session_id:
                del self._user_sessions[account.user_address]

        logger.info(
            "Session closed: %s pnl=%d final=%d reserve=%d policy=%s",
            session_id, result.pnl, result.final_balance,
            result.counterparty_reserve, policy.value,
        )
        return result
