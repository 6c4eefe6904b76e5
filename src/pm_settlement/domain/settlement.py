"""Market settlement: pay out winners, charge the profit fee, close the pool.

Outcome YES: 1 YES share = 1 unit, 1 NO share = 0 (and vice versa).
Protocol fee is charged on profit only: max(0, gross - cost_basis).
"""

import logging
from collections.abc import Iterable
from dataclasses import replace

from src.pm_amm.domain.models import MarketResolution, Pool, Position
from src.pm_common.datetime_utils import ms_to_iso
from src.pm_common.enums import Outcome
from src.pm_common.errors import MarketFinalizedError, MarketMismatchError
from src.pm_common.units import calc_bps_fee, units_to_display
from src.pm_settlement.domain.models import MarketSettlement, UserSettlement

logger = logging.getLogger(__name__)

DEFAULT_PROTOCOL_FEE_BPS = 100


def calculate_user_settlement(
    position: Position,
    winning_outcome: Outcome,
    fee_bps: int = DEFAULT_PROTOCOL_FEE_BPS,
    apply_fee: bool = True,
) -> UserSettlement:
    winning = position.shares_of(winning_outcome)
    losing = position.shares_of(winning_outcome.opposite)

    gross = winning
    fee = 0
    if apply_fee:
        fee = calc_bps_fee(max(0, gross - position.total_cost_basis), fee_bps)
    net = gross - fee

    return UserSettlement(
        user_id=position.user_id,
        winning_shares=winning,
        losing_shares=losing,
        gross_payout=gross,
        protocol_fee=fee,
        net_payout=net,
        profit_loss=net - position.total_cost_basis,
    )


def calculate_market_settlement(
    positions: Iterable[Position],
    resolution: MarketResolution,
    fee_bps: int = DEFAULT_PROTOCOL_FEE_BPS,
) -> MarketSettlement:
    """Settle every position of the resolved market, in user-id order.

    Positions of other markets are skipped. The ordering has no effect on the
    amounts but keeps proofs and logs reproducible.
    """
    relevant = sorted(
        (p for p in positions if p.market_id == resolution.market_id),
        key=lambda p: p.user_id,
    )
    payouts: list[UserSettlement] = []
    total_payout = 0
    fees = 0
    for position in relevant:
        s = calculate_user_settlement(position, resolution.winning_outcome, fee_bps)
        payouts.append(s)
        total_payout += s.net_payout
        fees += s.protocol_fee

    return MarketSettlement(
        market_id=resolution.market_id,
        resolution=resolution,
        user_payouts=payouts,
        total_payout=total_payout,
        protocol_fee_collected=fees,
    )


def winning_share_total(
    pool: Pool, positions: Iterable[Position], winning_outcome: Outcome
) -> int:
    return sum(
        p.shares_of(winning_outcome) for p in positions if p.market_id == pool.market_id
    )


def validate_pool_solvency(
    pool: Pool, positions: Iterable[Position], winning_outcome: Outcome
) -> bool:
    """Winning shares held by users must not exceed the pool's collateral.

    Holds by construction when shares only come from mint_and_swap; a False
    here means shares were created somewhere else.
    """
    return winning_share_total(pool, positions, winning_outcome) <= pool.total_collateral


def verify_oracle_source(
    resolution: MarketResolution, allowed_oracles: Iterable[str]
) -> bool:
    return resolution.oracle_source in set(allowed_oracles)


def finalize_pool(pool: Pool, resolution: MarketResolution, now: int | None = None) -> Pool:
    """Close the pool to trading. A finalized pool cannot be finalized again."""
    if pool.market_id != resolution.market_id:
        raise MarketMismatchError(pool.market_id, resolution.market_id)
    if pool.finalized:
        raise MarketFinalizedError(pool.market_id)
    return replace(
        pool,
        finalized=True,
        resolution=resolution,
        updated_at=resolution.resolved_at if now is None else now,
    )


def format_settlement_summary(settlement: MarketSettlement) -> str:
    r = settlement.resolution
    lines = [
        f"MARKET SETTLEMENT: {settlement.market_id}",
        f"Winning Outcome: {r.winning_outcome.value}",
        f"Resolved At: {ms_to_iso(r.resolved_at)}",
        f"Oracle: {r.oracle_source}",
        "USER PAYOUTS:",
    ]
    for p in settlement.user_payouts:
        sign = "+" if p.profit_loss >= 0 else ""
        lines.append(
            f"  {p.user_id}: winning={units_to_display(p.winning_shares)}"
            f" net={units_to_display(p.net_payout)}"
            f" pnl={sign}{units_to_display(p.profit_loss)}"
        )
    lines.append(f"Total Payout: {units_to_display(settlement.total_payout)}")
    lines.append(f"Protocol Fee: {units_to_display(settlement.protocol_fee_collected)}")
    return "\n".join(lines)
