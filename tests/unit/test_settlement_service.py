"""Tests for SettlementService — resolution ordering, finalization, proofs."""

import pytest

from config.settings import Settings
from src.pm_amm.application.service import AmmService
from src.pm_amm.domain.models import Position
from src.pm_amm.infrastructure.memory_store import InMemoryPoolStore
from src.pm_common.enums import Outcome
from src.pm_common.errors import (
    IntegrityViolationError,
    MarketFinalizedError,
    MarketMismatchError,
    MarketNotFoundError,
    PositionNotFoundError,
    ResolutionRejectedError,
    SettlementNotFoundError,
)
from src.pm_settlement.application.service import SettlementService
from src.pm_settlement.domain.proof import verify_settlement_proof


@pytest.fixture
async def amm(settings: Settings, clock) -> AmmService:
    svc = AmmService(InMemoryPoolStore(), settings, clock=clock)
    await svc.create_market("mkt-1", 1_000_000, virtual_liquidity=1_000_000)
    await svc.buy("mkt-1", "alice", 100_000, Outcome.YES)
    await svc.buy("mkt-1", "bob", 50_000, Outcome.NO)
    return svc


@pytest.fixture
def settlement(amm: AmmService, settings: Settings) -> SettlementService:
    return SettlementService(amm, settings)


class TestResolveMarket:
    @pytest.mark.asyncio
    async def test_pays_winners_and_finalizes(
        self, amm: AmmService, settlement: SettlementService
    ) -> None:
        result = await settlement.resolve_market("mkt-1", "YES", "admin")
        alice = result.for_user("alice")
        bob = result.for_user("bob")
        assert alice.gross_payout == 195_238
        assert alice.protocol_fee == 953  # ceil(95_238 * 100 / 10_000)
        assert bob.net_payout == 0
        assert result.total_payout + result.protocol_fee_collected == 195_238

        pool = amm.get_pool("mkt-1")
        assert pool.finalized
        assert pool.resolution.winning_outcome is Outcome.YES
        assert settlement.get_settlement("mkt-1") is result

    @pytest.mark.asyncio
    async def test_trading_rejected_after_resolution(
        self, amm: AmmService, settlement: SettlementService
    ) -> None:
        await settlement.resolve_market("mkt-1", Outcome.NO, "uma")
        with pytest.raises(MarketFinalizedError):
            await amm.buy("mkt-1", "carol", 1_000, Outcome.YES)
        with pytest.raises(MarketFinalizedError):
            await amm.sell("mkt-1", "alice", 1_000, Outcome.YES)

    @pytest.mark.asyncio
    async def test_second_resolution_rejected(self, settlement: SettlementService) -> None:
        first = await settlement.resolve_market("mkt-1", "YES", "admin")
        with pytest.raises(MarketFinalizedError):
            await settlement.resolve_market("mkt-1", "NO", "admin")
        assert settlement.get_settlement("mkt-1") is first

    @pytest.mark.asyncio
    async def test_unknown_oracle_leaves_pool(
        self, amm: AmmService, settlement: SettlementService
    ) -> None:
        before = amm.get_pool("mkt-1")
        with pytest.raises(ResolutionRejectedError):
            await settlement.resolve_market("mkt-1", "YES", "random-bot")
        assert amm.get_pool("mkt-1") == before

    @pytest.mark.asyncio
    async def test_unknown_market(self, settlement: SettlementService) -> None:
        with pytest.raises(MarketNotFoundError):
            await settlement.resolve_market("nope", "YES", "admin")

    @pytest.mark.asyncio
    async def test_mismatched_resolution(
        self, amm: AmmService, settlement: SettlementService
    ) -> None:
        with pytest.raises(MarketMismatchError):
            await settlement.resolve_market(
                "mkt-1", "YES", "admin", resolution_market_id="mkt-2"
            )
        assert not amm.get_pool("mkt-1").finalized

    @pytest.mark.asyncio
    async def test_insolvent_pool_is_integrity_violation(
        self, amm: AmmService, settlement: SettlementService
    ) -> None:
        pool = amm.get_pool("mkt-1")
        forged = Position("mkt-1", "mallory", yes_shares=pool.total_collateral)
        amm.store.commit_trade(pool, forged, None)
        with pytest.raises(IntegrityViolationError):
            await settlement.resolve_market("mkt-1", "YES", "admin")
        assert not amm.get_pool("mkt-1").finalized

    @pytest.mark.asyncio
    async def test_listener_called(self, settlement: SettlementService) -> None:
        calls = []

        async def listener(market_id: str, outcome: Outcome) -> None:
            calls.append((market_id, outcome))

        settlement.add_resolution_listener(listener)
        await settlement.resolve_market("mkt-1", "NO", "chainlink")
        assert calls == [("mkt-1", Outcome.NO)]


class TestProofs:
    @pytest.mark.asyncio
    async def test_proof_for_user(self, settlement: SettlementService) -> None:
        await settlement.resolve_market("mkt-1", "YES", "admin", resolved_at=1_234)
        proof = settlement.settlement_proof("mkt-1", "alice", "sess-1")
        assert verify_settlement_proof(proof.encoded_proof, proof.proof_hash)
        again = settlement.settlement_proof("mkt-1", "alice", "sess-1")
        assert again == proof

    @pytest.mark.asyncio
    async def test_missing_settlement(self, settlement: SettlementService) -> None:
        with pytest.raises(SettlementNotFoundError):
            settlement.settlement_proof("mkt-1", "alice", "sess-1")

    @pytest.mark.asyncio
    async def test_missing_user(self, settlement: SettlementService) -> None:
        await settlement.resolve_market("mkt-1", "YES", "admin")
        with pytest.raises(PositionNotFoundError):
            settlement.settlement_proof("mkt-1", "nobody", "sess-1")


class TestSettingsDriven:
    @pytest.mark.asyncio
    async def test_fee_rate_from_settings(self, amm: AmmService) -> None:
        svc = SettlementService(amm, Settings(PROTOCOL_FEE_BPS=0))
        result = await svc.resolve_market("mkt-1", "YES", "admin")
        assert result.protocol_fee_collected == 0

    @pytest.mark.asyncio
    async def test_allow_list_from_settings(self, amm: AmmService) -> None:
        svc = SettlementService(amm, Settings(ALLOWED_ORACLES=["custom"]))
        with pytest.raises(ResolutionRejectedError):
            await svc.resolve_market("mkt-1", "YES", "admin")
        result = await svc.resolve_market("mkt-1", "YES", "custom")
        assert result.resolution.oracle_source == "custom"
