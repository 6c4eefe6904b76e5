"""Pricing engine: constant-product curve with virtual liquidity.

Two formulas work together:
  1. Collateralization: 1 unit of currency == 1 YES + 1 NO share.
  2. Trading: (yes + L) * (no + L) = k, L = virtual liquidity.

Every function here is pure: it reads a Pool (and Position) and returns new
values. Committing them is the caller's job (see AmmService).

Rounding always favours the pool: share outputs are floored and the reserve
left behind is ceiled, so k can only grow from rounding dust.
"""

import logging
import math
from dataclasses import replace

from src.pm_amm.domain.models import (
    BuyResult,
    Pool,
    PoolPrices,
    Position,
    PositionValue,
    Quote,
    SellResult,
)
from src.pm_common.enums import Outcome
from src.pm_common.errors import (
    IntegrityViolationError,
    InsufficientLiquidityError,
    InsufficientPositionError,
    InvalidAmountError,
    InvalidOutcomeError,
    InvalidTargetPriceError,
    MarketFinalizedError,
    PriceCapExceededError,
)
from src.pm_common.units import BPS_DENOMINATOR, ceil_div, mul_div_floor, validate_positive

logger = logging.getLogger(__name__)

MIN_PRICE = 0.01
PRICE_CAP = 0.99


def to_outcome(side: Outcome | str) -> Outcome:
    """Coerce a wire value ('YES'/'NO', case-insensitive) to Outcome."""
    if isinstance(side, Outcome):
        return side
    if isinstance(side, str):
        try:
            return Outcome(side.upper())
        except ValueError:
            pass
    raise InvalidOutcomeError(side)


# ---------------------------------------------------------------------------
# Pool creation
# ---------------------------------------------------------------------------


def create_pool(
    market_id: str, initial_liquidity: int, virtual_liquidity: int, now: int
) -> Pool:
    """New pool at 50/50. Seeding mints `initial_liquidity` YES+NO pairs."""
    validate_positive(initial_liquidity)
    if isinstance(virtual_liquidity, bool) or virtual_liquidity < 0:
        raise InvalidAmountError(virtual_liquidity)

    k = (initial_liquidity + virtual_liquidity) ** 2
    return Pool(
        market_id=market_id,
        yes_reserves=initial_liquidity,
        no_reserves=initial_liquidity,
        k=k,
        virtual_liquidity=virtual_liquidity,
        total_collateral=initial_liquidity,
        created_at=now,
        updated_at=now,
    )


# ---------------------------------------------------------------------------
# Prices
# ---------------------------------------------------------------------------


def _marginal(eff_yes: int, eff_no: int, outcome: Outcome) -> float:
    """Unclamped marginal price: price_YES = no / (yes + no)."""
    other = eff_no if outcome is Outcome.YES else eff_yes
    return other / (eff_yes + eff_no)


def marginal_price(pool: Pool, outcome: Outcome) -> float:
    return _marginal(pool.effective_yes, pool.effective_no, outcome)


def get_prices(
    pool: Pool, min_price: float = MIN_PRICE, price_cap: float = PRICE_CAP
) -> PoolPrices:
    """Marginal quotes clamped to [min_price, price_cap].

    YES and NO are independent quotes; after clamping they need not sum to 1.
    Probabilities are reported unclamped.
    """
    yes = marginal_price(pool, Outcome.YES)
    no = marginal_price(pool, Outcome.NO)
    return PoolPrices(
        yes_price=min(max(yes, min_price), price_cap),
        no_price=min(max(no, min_price), price_cap),
        yes_probability=yes * 100,
        no_probability=no * 100,
    )


def validate_price_cap(pool: Pool, price_cap: float = PRICE_CAP) -> bool:
    """True if neither unclamped marginal price exceeds the cap."""
    return (
        marginal_price(pool, Outcome.YES) <= price_cap
        and marginal_price(pool, Outcome.NO) <= price_cap
    )


def amount_for_target_price(
    pool: Pool,
    target_price: float,
    side: Outcome | str,
    min_price: float = MIN_PRICE,
    price_cap: float = PRICE_CAP,
) -> int:
    """Currency a mint_and_swap on `side` needs to move its price to `target_price`.

    Buying YES for `a` leaves effective NO at n = no + a and effective YES at
    k / n, so price_YES = n^2 / (k + n^2). For a target p this gives
    n = sqrt(k * p / (1 - p)). The target is taken in whole basis points and
    n is rounded up. Returns 0 when the price is already at or above target.
    """
    outcome = to_outcome(side)
    if isinstance(target_price, bool) or not min_price <= target_price <= price_cap:
        raise InvalidTargetPriceError(target_price, min_price, price_cap)
    if pool.finalized:
        raise MarketFinalizedError(pool.market_id)

    p_bps = round(target_price * BPS_DENOMINATOR)
    other = pool.effective_no if outcome is Outcome.YES else pool.effective_yes
    n_sq = ceil_div(pool.k * p_bps, BPS_DENOMINATOR - p_bps)
    n = math.isqrt(n_sq)
    if n * n < n_sq:
        n += 1

    amount = n - other
    if amount <= 0:
        return 0
    if ceil_div(pool.k, n) < pool.virtual_liquidity:
        raise InsufficientLiquidityError(
            f"pool {pool.market_id} cannot move {outcome.value} to {target_price}"
        )
    return amount


def _price_impact(effective: float, marginal_before: float) -> float:
    return abs(effective - marginal_before) / marginal_before * 100


# ---------------------------------------------------------------------------
# Invariant
# ---------------------------------------------------------------------------


def check_invariant(pool: Pool) -> None:
    """Raise IntegrityViolationError if the pool is not a reachable state."""
    product = pool.effective_yes * pool.effective_no
    problems = []
    if pool.yes_reserves < 0 or pool.no_reserves < 0:
        problems.append(f"negative reserves yes={pool.yes_reserves} no={pool.no_reserves}")
    if pool.k <= 0:
        problems.append(f"k={pool.k} not positive")
    if pool.k != product:
        problems.append(f"k={pool.k} != (yes+L)*(no+L)={product}")
    if pool.total_collateral < 0:
        problems.append(f"total_collateral={pool.total_collateral} negative")
    if problems:
        msg = f"pool {pool.market_id}: " + "; ".join(problems)
        logger.critical("Pool invariant violated: %s", msg)
        raise IntegrityViolationError(msg)
    logger.debug("Invariant OK: market=%s, k=%d", pool.market_id, pool.k)


# ---------------------------------------------------------------------------
# Buy: mint & swap
# ---------------------------------------------------------------------------


def mint_and_swap(
    pool: Pool,
    amount_in: int,
    side: Outcome | str,
    now: int | None = None,
    price_cap: float = PRICE_CAP,
) -> BuyResult:
    """Bet `amount_in` currency on `side`.

    Step 1 (mint): amount_in currency -> amount_in YES + amount_in NO.
    Step 2 (swap): the unwanted side goes into the pool; the pool pays out
    the wanted side so that the curve is preserved.

    Example (L=0, 1000/1000 pool, bet 100 on YES):
      mint 100 YES + 100 NO, swap 100 NO -> 90.909 YES, hold 190.909 YES.
    """
    validate_positive(amount_in)
    if pool.finalized:
        raise MarketFinalizedError(pool.market_id)
    outcome = to_outcome(side)

    L = pool.virtual_liquidity
    eff_yes, eff_no = pool.effective_yes, pool.effective_no
    marginal_before = _marginal(eff_yes, eff_no, outcome)

    if outcome is Outcome.YES:
        new_eff_no = eff_no + amount_in
        new_eff_yes = ceil_div(pool.k, new_eff_no)
        swapped = eff_yes - new_eff_yes
    else:
        new_eff_yes = eff_yes + amount_in
        new_eff_no = ceil_div(pool.k, new_eff_yes)
        swapped = eff_no - new_eff_no

    new_yes, new_no = new_eff_yes - L, new_eff_no - L
    if swapped <= 0:
        raise InsufficientLiquidityError(
            f"amount {amount_in} too small to receive any {outcome.value} shares"
        )
    if new_yes < 0 or new_no < 0:
        raise InsufficientLiquidityError(
            f"pool {pool.market_id} cannot pay {swapped} {outcome.value} shares"
        )

    new_pool = replace(
        pool,
        yes_reserves=new_yes,
        no_reserves=new_no,
        k=new_eff_yes * new_eff_no,
        total_collateral=pool.total_collateral + amount_in,
        updated_at=pool.updated_at if now is None else now,
    )

    new_marginal = marginal_price(new_pool, outcome)
    if new_marginal > price_cap:
        raise PriceCapExceededError(outcome.value, new_marginal, price_cap)

    total_shares = amount_in + swapped
    effective_price = amount_in / total_shares
    return BuyResult(
        amount_in=amount_in,
        outcome=outcome,
        minted_shares=amount_in,
        swapped_shares=swapped,
        total_shares=total_shares,
        effective_price=effective_price,
        price_impact=_price_impact(effective_price, marginal_before),
        new_probability=new_marginal * 100,
        new_pool=new_pool,
    )


def quote(
    pool: Pool, amount_in: int, side: Outcome | str, price_cap: float = PRICE_CAP
) -> Quote:
    """What mint_and_swap would return, without committing anything."""
    result = mint_and_swap(pool, amount_in, side, price_cap=price_cap)
    return Quote(
        expected_shares=result.total_shares,
        effective_price=result.effective_price,
        price_impact=result.price_impact,
    )


# ---------------------------------------------------------------------------
# Sell: swap & burn
# ---------------------------------------------------------------------------


def _max_redeemable(own: int, other: int, shares: int, k: int) -> int:
    """Largest c with (own + shares - c) * (other - c) >= k, 0 <= c < other.

    The seller swaps (shares - c) of their side for c of the other side,
    then burns c pairs for c currency. Smaller root of
    c^2 - (own + shares + other) c + ((own + shares) * other - k) = 0,
    computed with an upper-rounded isqrt so the floor never overshoots.
    """
    b = own + shares + other
    c_term = (own + shares) * other - k
    disc = b * b - 4 * c_term
    root = math.isqrt(disc)
    if root * root < disc:
        root += 1
    c = max(0, (b - root) // 2)

    def holds(x: int) -> bool:
        return (own + shares - x) * (other - x) >= k

    while c + 1 < other and holds(c + 1):
        c += 1
    while c > 0 and not holds(c):
        c -= 1
    return c


def sell(
    pool: Pool,
    position: Position | None,
    amount_shares: int,
    side: Outcome | str,
    now: int | None = None,
) -> SellResult:
    """Sell `amount_shares` of `side` back to the pool for currency."""
    validate_positive(amount_shares)
    if pool.finalized:
        raise MarketFinalizedError(pool.market_id)
    outcome = to_outcome(side)

    held = position.shares_of(outcome) if position is not None else 0
    if amount_shares > held:
        raise InsufficientPositionError(
            f"held {held} {outcome.value}, selling {amount_shares}"
        )

    L = pool.virtual_liquidity
    eff_yes, eff_no = pool.effective_yes, pool.effective_no
    marginal_before = _marginal(eff_yes, eff_no, outcome)

    if outcome is Outcome.YES:
        usdc_out = _max_redeemable(eff_yes, eff_no, amount_shares, pool.k)
        new_yes = pool.yes_reserves + amount_shares - usdc_out
        new_no = pool.no_reserves - usdc_out
    else:
        usdc_out = _max_redeemable(eff_no, eff_yes, amount_shares, pool.k)
        new_no = pool.no_reserves + amount_shares - usdc_out
        new_yes = pool.yes_reserves - usdc_out

    if usdc_out <= 0:
        raise InsufficientLiquidityError(
            f"selling {amount_shares} {outcome.value} redeems nothing"
        )
    if new_yes < 0 or new_no < 0:
        raise InsufficientLiquidityError(
            f"pool {pool.market_id} cannot redeem {usdc_out} for {outcome.value} shares"
        )

    new_pool = replace(
        pool,
        yes_reserves=new_yes,
        no_reserves=new_no,
        k=(new_yes + L) * (new_no + L),
        total_collateral=pool.total_collateral - usdc_out,
        updated_at=pool.updated_at if now is None else now,
    )

    effective_price = usdc_out / amount_shares
    return SellResult(
        shares_in=amount_shares,
        outcome=outcome,
        usdc_out=usdc_out,
        effective_price=effective_price,
        price_impact=_price_impact(effective_price, marginal_before),
        new_pool=new_pool,
    )


# ---------------------------------------------------------------------------
# Position ledger updates
# ---------------------------------------------------------------------------


def apply_buy(position: Position, result: BuyResult) -> Position:
    if result.outcome is Outcome.YES:
        return replace(
            position,
            yes_shares=position.yes_shares + result.total_shares,
            total_cost_basis=position.total_cost_basis + result.amount_in,
        )
    return replace(
        position,
        no_shares=position.no_shares + result.total_shares,
        total_cost_basis=position.total_cost_basis + result.amount_in,
    )


def apply_sell(position: Position, result: SellResult) -> Position:
    if result.outcome is Outcome.YES:
        return replace(
            position,
            yes_shares=position.yes_shares - result.shares_in,
            total_cost_basis=position.total_cost_basis - result.usdc_out,
        )
    return replace(
        position,
        no_shares=position.no_shares - result.shares_in,
        total_cost_basis=position.total_cost_basis - result.usdc_out,
    )


def position_value(position: Position, pool: Pool) -> PositionValue:
    """Mark-to-market value at current (unclamped) marginal prices, floored."""
    eff_yes, eff_no = pool.effective_yes, pool.effective_no
    total = eff_yes + eff_no
    return PositionValue(
        yes_value=mul_div_floor(position.yes_shares, eff_no, total),
        no_value=mul_div_floor(position.no_shares, eff_yes, total),
    )
