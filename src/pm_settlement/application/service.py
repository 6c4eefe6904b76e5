"""SettlementService — resolve a market, pay out, keep the settlement record.

Resolution runs under the same per-market lock AmmService trades under, so
no trade can be admitted between the solvency check and finalization.
Any raise before finalize_pool leaves the pool untouched.
"""

import logging
from collections.abc import Awaitable, Callable

from config.settings import Settings
from config.settings import settings as default_settings
from src.pm_amm.application.service import AmmService
from src.pm_amm.domain.models import MarketResolution
from src.pm_amm.domain.pricing import to_outcome
from src.pm_common.enums import Outcome
from src.pm_common.errors import (
    IntegrityViolationError,
    MarketFinalizedError,
    MarketMismatchError,
    PositionNotFoundError,
    ResolutionRejectedError,
    SettlementNotFoundError,
)
from src.pm_settlement.domain.models import MarketSettlement, SettlementProof
from src.pm_settlement.domain.proof import generate_settlement_proof
from src.pm_settlement.domain.settlement import (
    calculate_market_settlement,
    finalize_pool,
    format_settlement_summary,
    validate_pool_solvency,
    verify_oracle_source,
    winning_share_total,
)

logger = logging.getLogger(__name__)

ResolutionListener = Callable[[str, Outcome], Awaitable[object]]


class SettlementService:
    def __init__(self, amm: AmmService, settings: Settings | None = None) -> None:
        self._amm = amm
        self._settings = settings or default_settings
        self._settlements: dict[str, MarketSettlement] = {}
        self._listeners: list[ResolutionListener] = []

    def add_resolution_listener(self, listener: ResolutionListener) -> None:
        """Register a coroutine called with (market_id, winning_outcome) after finalization."""
        self._listeners.append(listener)

    async def resolve_market(
        self,
        market_id: str,
        winning_outcome: Outcome | str,
        oracle_source: str,
        oracle_data: str | None = None,
        resolved_at: int | None = None,
        resolution_market_id: str | None = None,
    ) -> MarketSettlement:
        resolution = MarketResolution(
            market_id=resolution_market_id or market_id,
            winning_outcome=to_outcome(winning_outcome),
            resolved_at=self._amm.clock() if resolved_at is None else resolved_at,
            oracle_source=oracle_source,
            oracle_data=oracle_data,
        )
        store = self._amm.store

        async with self._amm.market_lock(market_id):
            if not verify_oracle_source(resolution, self._settings.ALLOWED_ORACLES):
                logger.warning(
                    "Rejected resolution of %s from oracle %r", market_id, oracle_source
                )
                raise ResolutionRejectedError(oracle_source)

            pool = self._amm.get_pool(market_id)
            if pool.finalized:
                raise MarketFinalizedError(market_id)
            if pool.market_id != resolution.market_id:
                raise MarketMismatchError(pool.market_id, resolution.market_id)

            positions = store.list_positions(market_id)
            if not validate_pool_solvency(pool, positions, resolution.winning_outcome):
                owed = winning_share_total(pool, positions, resolution.winning_outcome)
                msg = (
                    f"pool {market_id} insolvent: winning shares {owed}"
                    f" > collateral {pool.total_collateral}"
                )
                logger.critical("Settlement aborted: %s", msg)
                raise IntegrityViolationError(msg)

            settlement = calculate_market_settlement(
                positions, resolution, self._settings.PROTOCOL_FEE_BPS
            )
            store.replace_pool(finalize_pool(pool, resolution, self._amm.clock()))
            self._settlements[market_id] = settlement

        logger.info("Market resolved\n%s", format_settlement_summary(settlement))

        for listener in self._listeners:
            await listener(market_id, resolution.winning_outcome)
        return settlement

    def get_settlement(self, market_id: str) -> MarketSettlement:
        settlement = self._settlements.get(market_id)
        if settlement is None:
            raise SettlementNotFoundError(market_id)
        return settlement

    def settlement_proof(
        self, market_id: str, user_id: str, session_id: str
    ) -> SettlementProof:
        settlement = self.get_settlement(market_id)
        user = settlement.for_user(user_id)
        if user is None:
            raise PositionNotFoundError(market_id, user_id)
        return generate_settlement_proof(
            user, market_id, session_id, settlement.resolution.resolved_at
        )
