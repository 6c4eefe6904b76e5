"""Pydantic schemas for the pm_amm API.

Wire rules: every integer amount is a decimal string, ratios are floats,
field names are camelCase. Requests accept amounts as strings or ints;
routers convert them with parse_units so bad input maps to InvalidAmountError.
"""

from pydantic import Field

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
from src.pm_common.response import WireModel
from src.pm_common.units import units_to_str

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateMarketRequest(WireModel):
    market_id: str = Field(min_length=1, max_length=128)
    initial_liquidity: int | str
    virtual_liquidity: int | str | None = None


class BuyRequest(WireModel):
    market_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    amount: int | str = Field(description="Currency in, micro-units")
    outcome: str


class SellRequest(WireModel):
    market_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    amount: int | str = Field(description="Shares to sell, micro-units")
    outcome: str


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PricesSchema(WireModel):
    yes_price: float
    no_price: float
    yes_probability: float
    no_probability: float

    @classmethod
    def from_domain(cls, prices: PoolPrices) -> "PricesSchema":
        return cls(
            yes_price=prices.yes_price,
            no_price=prices.no_price,
            yes_probability=prices.yes_probability,
            no_probability=prices.no_probability,
        )


class PoolStateSchema(WireModel):
    yes_reserves: str
    no_reserves: str

    @classmethod
    def from_domain(cls, pool: Pool) -> "PoolStateSchema":
        return cls(
            yes_reserves=units_to_str(pool.yes_reserves),
            no_reserves=units_to_str(pool.no_reserves),
        )


class MarketSchema(WireModel):
    market_id: str
    yes_reserves: str
    no_reserves: str
    k: str
    virtual_liquidity: str
    total_collateral: str
    finalized: bool
    winning_outcome: str | None
    created_at: int
    updated_at: int
    prices: PricesSchema

    @classmethod
    def from_domain(cls, pool: Pool, prices: PoolPrices) -> "MarketSchema":
        return cls(
            market_id=pool.market_id,
            yes_reserves=units_to_str(pool.yes_reserves),
            no_reserves=units_to_str(pool.no_reserves),
            k=units_to_str(pool.k),
            virtual_liquidity=units_to_str(pool.virtual_liquidity),
            total_collateral=units_to_str(pool.total_collateral),
            finalized=pool.finalized,
            winning_outcome=(
                pool.resolution.winning_outcome.value if pool.resolution else None
            ),
            created_at=pool.created_at,
            updated_at=pool.updated_at,
            prices=PricesSchema.from_domain(prices),
        )


class QuoteSchema(WireModel):
    expected_shares: str
    effective_price: float
    price_impact: float

    @classmethod
    def from_domain(cls, q: Quote) -> "QuoteSchema":
        return cls(
            expected_shares=units_to_str(q.expected_shares),
            effective_price=q.effective_price,
            price_impact=q.price_impact,
        )


class BuyResponse(WireModel):
    minted_shares: str
    swapped_shares: str
    total_shares: str
    effective_price: float
    price_impact: float
    new_probability: float
    new_pool_state: PoolStateSchema

    @classmethod
    def from_domain(cls, r: BuyResult) -> "BuyResponse":
        return cls(
            minted_shares=units_to_str(r.minted_shares),
            swapped_shares=units_to_str(r.swapped_shares),
            total_shares=units_to_str(r.total_shares),
            effective_price=r.effective_price,
            price_impact=r.price_impact,
            new_probability=r.new_probability,
            new_pool_state=PoolStateSchema.from_domain(r.new_pool),
        )


class SellResponse(WireModel):
    usdc_out: str
    effective_price: float
    price_impact: float
    new_pool_state: PoolStateSchema

    @classmethod
    def from_domain(cls, r: SellResult) -> "SellResponse":
        return cls(
            usdc_out=units_to_str(r.usdc_out),
            effective_price=r.effective_price,
            price_impact=r.price_impact,
            new_pool_state=PoolStateSchema.from_domain(r.new_pool),
        )


class PositionSchema(WireModel):
    market_id: str
    user_id: str
    yes_shares: str
    no_shares: str
    cost_basis: str

    @classmethod
    def from_domain(cls, p: Position) -> "PositionSchema":
        return cls(
            market_id=p.market_id,
            user_id=p.user_id,
            yes_shares=units_to_str(p.yes_shares),
            no_shares=units_to_str(p.no_shares),
            cost_basis=str(p.total_cost_basis),
        )


class PositionValueSchema(WireModel):
    yes_value: str
    no_value: str
    total_value: str

    @classmethod
    def from_domain(cls, v: PositionValue) -> "PositionValueSchema":
        return cls(
            yes_value=units_to_str(v.yes_value),
            no_value=units_to_str(v.no_value),
            total_value=units_to_str(v.total_value),
        )


class TradeSchema(WireModel):
    trade_id: str
    market_id: str
    direction: str
    outcome: str
    amount: str
    shares: str
    effective_price: float
    timestamp: int

    @classmethod
    def from_domain(cls, t: TradeRecord) -> "TradeSchema":
        return cls(
            trade_id=t.trade_id,
            market_id=t.market_id,
            direction=t.direction.value,
            outcome=t.outcome.value,
            amount=units_to_str(t.amount),
            shares=units_to_str(t.shares),
            effective_price=t.effective_price,
            timestamp=t.timestamp,
        )
