"""AmmService — stateful orchestrator for per-market trading.

Each market has its own asyncio.Lock. A trade computes its quote from the
pool it read inside the lock and commits before releasing it, so two trades
on one market can never both price off the same pre-trade state. Different
markets trade in parallel.
"""

import asyncio
import logging
import uuid
from collections import defaultdict

from config.settings import Settings
from config.settings import settings as default_settings
from src.pm_amm.domain.models import (
    BuyResult,
    Pool,
    PoolPrices,
    Position,
    PositionValue,
    Quote,
    SellResult,
    TradeRecord,
)
from src.pm_amm.domain.pricing import (
    amount_for_target_price,
    apply_buy,
    apply_sell,
    check_invariant,
    create_pool,
    get_prices,
    mint_and_swap,
    position_value,
    quote,
    sell,
)
from src.pm_amm.domain.repository import PoolStoreProtocol
from src.pm_amm.infrastructure.memory_store import InMemoryPoolStore
from src.pm_common.datetime_utils import Clock, now_ms
from src.pm_common.enums import Outcome, TradeDirection
from src.pm_common.errors import (
    MarketExistsError,
    MarketNotFoundError,
    PositionNotFoundError,
)

logger = logging.getLogger(__name__)


class AmmService:
    def __init__(
        self,
        store: PoolStoreProtocol | None = None,
        settings: Settings | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self._store: PoolStoreProtocol = store or InMemoryPoolStore()
        self._settings = settings or default_settings
        self._clock = clock
        self._market_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @property
    def store(self) -> PoolStoreProtocol:
        return self._store

    @property
    def clock(self) -> Clock:
        return self._clock

    def market_lock(self, market_id: str) -> asyncio.Lock:
        return self._market_locks[market_id]

    # ------------------------------------------------------------------
    # Markets
    # ------------------------------------------------------------------

    async def create_market(
        self,
        market_id: str,
        initial_liquidity: int,
        virtual_liquidity: int | None = None,
    ) -> Pool:
        if virtual_liquidity is None:
            virtual_liquidity = self._settings.DEFAULT_VIRTUAL_LIQUIDITY
        async with self.market_lock(market_id):
            if self._store.get_pool(market_id) is not None:
                raise MarketExistsError(market_id)
            pool = create_pool(market_id, initial_liquidity, virtual_liquidity, self._clock())
            self._store.add_pool(pool)
        logger.info(
            "Created market %s: liquidity=%d virtual=%d",
            market_id, initial_liquidity, virtual_liquidity,
        )
        return pool

    def get_pool(self, market_id: str) -> Pool:
        pool = self._store.get_pool(market_id)
        if pool is None:
            raise MarketNotFoundError(market_id)
        return pool

    def list_active_pools(self) -> list[Pool]:
        return [p for p in self._store.list_pools() if not p.finalized]

    def get_prices(self, market_id: str) -> PoolPrices:
        return get_prices(
            self.get_pool(market_id),
            min_price=self._settings.MIN_PRICE,
            price_cap=self._settings.PRICE_CAP,
        )

    def amount_for_target_price(
        self, market_id: str, target_price: float, side: Outcome | str
    ) -> int:
        return amount_for_target_price(
            self.get_pool(market_id),
            target_price,
            side,
            min_price=self._settings.MIN_PRICE,
            price_cap=self._settings.PRICE_CAP,
        )

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    def quote(self, market_id: str, amount_in: int, side: Outcome | str) -> Quote:
        return quote(
            self.get_pool(market_id), amount_in, side, price_cap=self._settings.PRICE_CAP
        )

    async def buy(
        self, market_id: str, user_id: str, amount_in: int, side: Outcome | str
    ) -> BuyResult:
        async with self.market_lock(market_id):
            pool = self.get_pool(market_id)
            now = self._clock()
            result = mint_and_swap(
                pool, amount_in, side, now=now, price_cap=self._settings.PRICE_CAP
            )
            check_invariant(result.new_pool)

            position = self._store.get_position(market_id, user_id) or Position(
                market_id=market_id, user_id=user_id
            )
            trade = TradeRecord(
                trade_id=f"trd_{uuid.uuid4().hex[:16]}",
                market_id=market_id,
                user_id=user_id,
                direction=TradeDirection.BUY,
                outcome=result.outcome,
                amount=amount_in,
                shares=result.total_shares,
                effective_price=result.effective_price,
                timestamp=now,
            )
            self._store.commit_trade(result.new_pool, apply_buy(position, result), trade)

        logger.info(
            "Buy: market=%s user=%s side=%s amount=%d shares=%d price=%.4f",
            market_id, user_id, result.outcome.value, amount_in,
            result.total_shares, result.effective_price,
        )
        return result

    async def sell(
        self, market_id: str, user_id: str, amount_shares: int, side: Outcome | str
    ) -> SellResult:
        async with self.market_lock(market_id):
            pool = self.get_pool(market_id)
            now = self._clock()
            position = self._store.get_position(market_id, user_id)
            result = sell(pool, position, amount_shares, side, now=now)
            check_invariant(result.new_pool)
            assert position is not None  # sell() rejects a missing position

            trade = TradeRecord(
                trade_id=f"trd_{uuid.uuid4().hex[:16]}",
                market_id=market_id,
                user_id=user_id,
                direction=TradeDirection.SELL,
                outcome=result.outcome,
                amount=result.usdc_out,
                shares=amount_shares,
                effective_price=result.effective_price,
                timestamp=now,
            )
            self._store.commit_trade(result.new_pool, apply_sell(position, result), trade)

        logger.info(
            "Sell: market=%s user=%s side=%s shares=%d out=%d",
            market_id, user_id, result.outcome.value, amount_shares, result.usdc_out,
        )
        return result

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    def get_position(self, market_id: str, user_id: str) -> Position:
        self.get_pool(market_id)
        position = self._store.get_position(market_id, user_id)
        if position is None:
            raise PositionNotFoundError(market_id, user_id)
        return position

    def list_positions(self, market_id: str) -> list[Position]:
        self.get_pool(market_id)
        return self._store.list_positions(market_id)

    def list_user_positions(self, user_id: str) -> list[Position]:
        return self._store.list_user_positions(user_id)

    def list_trades(self, user_id: str) -> list[TradeRecord]:
        return self._store.list_trades(user_id)

    def get_position_value(self, market_id: str, user_id: str) -> PositionValue:
        return position_value(self.get_position(market_id, user_id), self.get_pool(market_id))
