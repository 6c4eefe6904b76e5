"""In-memory pool, position and trade store.

Keyed by market id (pools) and (market id, user id) (positions).
Not thread-safe on its own: AmmService serialises writers per market.
"""

from src.pm_amm.domain.models import Pool, Position, TradeRecord
from src.pm_common.errors import MarketExistsError, MarketNotFoundError


class InMemoryPoolStore:
    def __init__(self) -> None:
        self._pools: dict[str, Pool] = {}
        self._positions: dict[tuple[str, str], Position] = {}
        self._trades: list[TradeRecord] = []

    # --- pools ---

    def get_pool(self, market_id: str) -> Pool | None:
        return self._pools.get(market_id)

    def list_pools(self) -> list[Pool]:
        return list(self._pools.values())

    def add_pool(self, pool: Pool) -> None:
        if pool.market_id in self._pools:
            raise MarketExistsError(pool.market_id)
        self._pools[pool.market_id] = pool

    def replace_pool(self, pool: Pool) -> None:
        if pool.market_id not in self._pools:
            raise MarketNotFoundError(pool.market_id)
        self._pools[pool.market_id] = pool

    # --- positions ---

    def get_position(self, market_id: str, user_id: str) -> Position | None:
        return self._positions.get((market_id, user_id))

    def list_positions(self, market_id: str) -> list[Position]:
        return sorted(
            (p for (mid, _), p in self._positions.items() if mid == market_id),
            key=lambda p: p.user_id,
        )

    def list_user_positions(self, user_id: str) -> list[Position]:
        return sorted(
            (p for (_, uid), p in self._positions.items() if uid == user_id),
            key=lambda p: p.market_id,
        )

    # --- trades ---

    def commit_trade(
        self, pool: Pool, position: Position, trade: TradeRecord | None
    ) -> None:
        """Write pool, position and trade record together.

        All validation happens before this call, so the three assignments
        below cannot fail part-way.
        """
        if pool.market_id not in self._pools:
            raise MarketNotFoundError(pool.market_id)
        self._pools[pool.market_id] = pool
        self._positions[(position.market_id, position.user_id)] = position
        if trade is not None:
            self._trades.append(trade)

    def list_trades(self, user_id: str) -> list[TradeRecord]:
        return [t for t in self._trades if t.user_id == user_id]
