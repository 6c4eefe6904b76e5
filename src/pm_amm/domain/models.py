"""Domain models for pm_amm: pure dataclasses, no framework dependency.

All amounts are int micro-units; timestamps are epoch ms.
"""

from dataclasses import dataclass, field

from src.pm_common.enums import Outcome, TradeDirection


@dataclass(frozen=True)
class MarketResolution:
    market_id: str
    winning_outcome: Outcome
    resolved_at: int
    oracle_source: str
    oracle_data: str | None = None


@dataclass(frozen=True)
class Pool:
    """Per-market AMM state. Trades produce a new Pool instead of mutating."""

    market_id: str
    yes_reserves: int
    no_reserves: int
    k: int                      # (yes + L) * (no + L)
    virtual_liquidity: int      # L, fixed at creation
    total_collateral: int       # currency backing all YES/NO pairs ever minted
    created_at: int
    updated_at: int
    finalized: bool = False
    resolution: MarketResolution | None = None

    @property
    def effective_yes(self) -> int:
        return self.yes_reserves + self.virtual_liquidity

    @property
    def effective_no(self) -> int:
        return self.no_reserves + self.virtual_liquidity


@dataclass(frozen=True)
class Position:
    market_id: str
    user_id: str
    yes_shares: int = 0
    no_shares: int = 0
    total_cost_basis: int = 0   # buys minus sell proceeds, may go negative

    def shares_of(self, outcome: Outcome) -> int:
        return self.yes_shares if outcome is Outcome.YES else self.no_shares


@dataclass(frozen=True)
class PoolPrices:
    yes_price: float
    no_price: float
    yes_probability: float
    no_probability: float


@dataclass(frozen=True)
class Quote:
    expected_shares: int
    effective_price: float
    price_impact: float


@dataclass(frozen=True)
class BuyResult:
    """Mint-and-swap outcome for `amount_in` currency on `outcome`."""

    amount_in: int
    outcome: Outcome
    minted_shares: int
    swapped_shares: int
    total_shares: int
    effective_price: float
    price_impact: float
    new_probability: float
    new_pool: Pool


@dataclass(frozen=True)
class SellResult:
    shares_in: int
    outcome: Outcome
    usdc_out: int
    effective_price: float
    price_impact: float
    new_pool: Pool


@dataclass(frozen=True)
class TradeRecord:
    trade_id: str
    market_id: str
    user_id: str
    direction: TradeDirection
    outcome: Outcome
    amount: int                 # currency in (BUY) or out (SELL)
    shares: int
    effective_price: float
    timestamp: int


@dataclass
class PositionValue:
    yes_value: int
    no_value: int
    total_value: int = field(init=False)

    def __post_init__(self) -> None:
        self.total_value = self.yes_value + self.no_value
