"""Tests for pm_amm.domain.pricing — curve math, buys, sells, prices."""

from dataclasses import replace

import pytest

from src.pm_amm.domain.models import Pool, Position
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
    to_outcome,
    validate_price_cap,
)
from src.pm_common.enums import Outcome
from src.pm_common.errors import (
    InsufficientLiquidityError,
    InsufficientPositionError,
    IntegrityViolationError,
    InvalidAmountError,
    InvalidOutcomeError,
    InvalidTargetPriceError,
    MarketFinalizedError,
    PriceCapExceededError,
)

LIQ = 1_000_000
VIRTUAL = 1_000_000


@pytest.fixture
def pool() -> Pool:
    return create_pool("mkt-1", LIQ, VIRTUAL, now=0)


class TestCreatePool:
    def test_fifty_fifty(self, pool: Pool) -> None:
        assert pool.yes_reserves == pool.no_reserves == LIQ
        assert pool.k == (LIQ + VIRTUAL) ** 2
        assert pool.total_collateral == LIQ
        assert not pool.finalized

    def test_zero_liquidity_rejected(self) -> None:
        with pytest.raises(InvalidAmountError):
            create_pool("m", 0, VIRTUAL, now=0)

    def test_negative_virtual_rejected(self) -> None:
        with pytest.raises(InvalidAmountError):
            create_pool("m", LIQ, -1, now=0)


class TestToOutcome:
    def test_case_insensitive(self) -> None:
        assert to_outcome("yes") is Outcome.YES
        assert to_outcome(Outcome.NO) is Outcome.NO

    def test_rejects_unknown(self) -> None:
        with pytest.raises(InvalidOutcomeError):
            to_outcome("MAYBE")


class TestPrices:
    def test_fresh_pool_even(self, pool: Pool) -> None:
        prices = get_prices(pool)
        assert prices.yes_price == pytest.approx(0.5)
        assert prices.no_price == pytest.approx(0.5)
        assert prices.yes_probability == pytest.approx(50.0)

    def test_clamped_independently(self) -> None:
        skewed = Pool(
            market_id="m", yes_reserves=1_000, no_reserves=1_000_000,
            k=1_000 * 1_000_000, virtual_liquidity=0, total_collateral=1_000_000,
            created_at=0, updated_at=0,
        )
        prices = get_prices(skewed)
        assert prices.yes_price == 0.99
        assert prices.no_price == 0.01
        # probabilities are not clamped
        assert prices.yes_probability > 99.0
        assert not validate_price_cap(skewed)


class TestMintAndSwap:
    def test_buy_yes_scenario(self, pool: Pool) -> None:
        result = mint_and_swap(pool, 100_000, Outcome.YES, now=5)
        assert result.minted_shares == 100_000
        assert result.swapped_shares == 95_238
        assert result.total_shares == 195_238
        assert result.new_pool.yes_reserves == 904_762
        assert result.new_pool.no_reserves == 1_100_000
        assert result.new_pool.total_collateral == LIQ + 100_000
        assert result.new_pool.updated_at == 5
        assert result.effective_price == pytest.approx(100_000 / 195_238)
        assert result.new_probability > 50.0

    def test_buy_no_is_symmetric(self, pool: Pool) -> None:
        result = mint_and_swap(pool, 100_000, "NO")
        assert result.total_shares == 195_238
        assert result.new_pool.no_reserves == 904_762
        assert result.new_pool.yes_reserves == 1_100_000

    def test_k_invariant_and_never_decreases(self, pool: Pool) -> None:
        result = mint_and_swap(pool, 123_457, Outcome.YES)
        new = result.new_pool
        assert new.k == new.effective_yes * new.effective_no
        assert new.k >= pool.k
        check_invariant(new)

    def test_price_impact_positive(self, pool: Pool) -> None:
        result = mint_and_swap(pool, 100_000, Outcome.YES)
        assert result.price_impact > 0

    def test_zero_amount_rejected(self, pool: Pool) -> None:
        with pytest.raises(InvalidAmountError):
            mint_and_swap(pool, 0, Outcome.YES)

    def test_finalized_rejected(self, pool: Pool) -> None:
        with pytest.raises(MarketFinalizedError):
            mint_and_swap(replace(pool, finalized=True), 100, Outcome.YES)

    def test_price_cap(self) -> None:
        thin = create_pool("thin", 1_000, 0, now=0)
        with pytest.raises(PriceCapExceededError):
            mint_and_swap(thin, 100_000, Outcome.YES)

    def test_dust_buy_rejected(self) -> None:
        deep = create_pool("deep", 1_000_000, 0, now=0)
        with pytest.raises(InsufficientLiquidityError):
            mint_and_swap(deep, 1, Outcome.YES)

    def test_overdrawn_real_reserve_rejected(self, pool: Pool) -> None:
        with pytest.raises(InsufficientLiquidityError):
            mint_and_swap(pool, 5_000_000, Outcome.YES)

    def test_quote_matches_buy(self, pool: Pool) -> None:
        q = quote(pool, 100_000, Outcome.YES)
        r = mint_and_swap(pool, 100_000, Outcome.YES)
        assert q.expected_shares == r.total_shares
        assert q.effective_price == r.effective_price
        assert q.price_impact == r.price_impact


class TestSell:
    def test_round_trip_scenario(self, pool: Pool) -> None:
        bought = mint_and_swap(pool, 100_000, Outcome.YES)
        position = apply_buy(Position("mkt-1", "alice"), bought)
        sold = sell(bought.new_pool, position, bought.total_shares, Outcome.YES)
        assert sold.usdc_out == 99_999
        assert sold.new_pool.total_collateral == LIQ + 100_000 - 99_999
        assert sold.new_pool.k >= bought.new_pool.k
        check_invariant(sold.new_pool)

        after = apply_sell(position, sold)
        assert after.yes_shares == 0
        assert after.total_cost_basis == 1

    @pytest.mark.parametrize("amount", [1_000, 50_000, 250_000, 500_000])
    def test_round_trip_never_profits(self, pool: Pool, amount: int) -> None:
        for side in (Outcome.YES, Outcome.NO):
            bought = mint_and_swap(pool, amount, side)
            position = apply_buy(Position("mkt-1", "u"), bought)
            sold = sell(bought.new_pool, position, bought.total_shares, side)
            assert sold.usdc_out <= amount

    def test_insufficient_position(self, pool: Pool) -> None:
        position = Position("mkt-1", "bob", yes_shares=10)
        with pytest.raises(InsufficientPositionError):
            sell(pool, position, 11, Outcome.YES)

    def test_missing_position(self, pool: Pool) -> None:
        with pytest.raises(InsufficientPositionError):
            sell(pool, None, 1, Outcome.NO)

    def test_finalized_rejected(self, pool: Pool) -> None:
        position = Position("mkt-1", "bob", yes_shares=10)
        with pytest.raises(MarketFinalizedError):
            sell(replace(pool, finalized=True), position, 5, Outcome.YES)


class TestConservation:
    def test_collateral_tracks_net_flows(self, pool: Pool) -> None:
        position = Position("mkt-1", "carol")
        inflow = outflow = 0
        current = pool
        for amount, side in [(40_000, Outcome.YES), (70_000, Outcome.NO), (15_000, Outcome.YES)]:
            r = mint_and_swap(current, amount, side)
            position = apply_buy(position, r)
            current = r.new_pool
            inflow += amount
            check_invariant(current)

        for shares, side in [(position.yes_shares // 2, Outcome.YES), (position.no_shares, Outcome.NO)]:
            s = sell(current, position, shares, side)
            position = apply_sell(position, s)
            current = s.new_pool
            outflow += s.usdc_out
            check_invariant(current)

        assert current.total_collateral == LIQ + inflow - outflow


class TestInvariantCheck:
    def test_broken_k_raises(self, pool: Pool) -> None:
        with pytest.raises(IntegrityViolationError):
            check_invariant(replace(pool, k=pool.k + 1))

    def test_negative_reserve_raises(self, pool: Pool) -> None:
        broken = replace(pool, yes_reserves=-1, k=(VIRTUAL - 1) * pool.effective_no)
        with pytest.raises(IntegrityViolationError):
            check_invariant(broken)


class TestPositionValue:
    def test_fresh_pool_half_value(self, pool: Pool) -> None:
        value = position_value(Position("mkt-1", "u", yes_shares=1_000_000), pool)
        assert value.yes_value == 500_000
        assert value.no_value == 0
        assert value.total_value == 500_000


class TestAmountForTargetPrice:
    def test_buy_reaches_target(self, pool: Pool) -> None:
        # n = ceil(sqrt(4e12 * 0.6 / 0.4)) = 2_449_490, minus effective NO of 2_000_000
        amount = amount_for_target_price(pool, 0.6, Outcome.YES)
        assert amount == 449_490
        after = mint_and_swap(pool, amount, Outcome.YES).new_pool
        assert get_prices(after).yes_price == pytest.approx(0.6, abs=1e-4)

    def test_no_side_symmetric(self, pool: Pool) -> None:
        assert amount_for_target_price(pool, 0.6, "NO") == 449_490

    def test_already_above_target(self, pool: Pool) -> None:
        assert amount_for_target_price(pool, 0.5, Outcome.YES) == 0
        assert amount_for_target_price(pool, 0.3, Outcome.NO) == 0

    @pytest.mark.parametrize("target", [0.0, 0.005, 0.995, 1.0])
    def test_target_outside_bounds(self, pool: Pool, target: float) -> None:
        with pytest.raises(InvalidTargetPriceError):
            amount_for_target_price(pool, target, Outcome.YES)

    def test_target_beyond_real_reserves(self) -> None:
        thin = create_pool("m", 1_000, 1_000_000, now=0)
        with pytest.raises(InsufficientLiquidityError):
            amount_for_target_price(thin, 0.9, Outcome.YES)

    def test_finalized_rejected(self, pool: Pool) -> None:
        with pytest.raises(MarketFinalizedError):
            amount_for_target_price(replace(pool, finalized=True), 0.6, Outcome.YES)
