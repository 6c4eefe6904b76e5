"""Repository Protocol — dependency inversion for testability.

Services depend on this Protocol; tests and the app inject
InMemoryPoolStore or any other conforming implementation.
"""

from typing import Protocol

from src.pm_amm.domain.models import Pool, Position, TradeRecord


class PoolStoreProtocol(Protocol):
    def get_pool(self, market_id: str) -> Pool | None: ...

    def list_pools(self) -> list[Pool]: ...

    def add_pool(self, pool: Pool) -> None: ...

    def get_position(self, market_id: str, user_id: str) -> Position | None: ...

    def list_positions(self, market_id: str) -> list[Position]: ...

    def list_user_positions(self, user_id: str) -> list[Position]: ...

    def commit_trade(
        self, pool: Pool, position: Position, trade: TradeRecord | None
    ) -> None: ...

    def replace_pool(self, pool: Pool) -> None: ...

    def list_trades(self, user_id: str) -> list[TradeRecord]: ...
