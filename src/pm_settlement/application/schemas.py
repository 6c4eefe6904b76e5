"""Pydantic schemas for the settlement API. Amounts are decimal strings."""

from pydantic import Field

from src.pm_common.response import WireModel
from src.pm_common.units import units_to_str
from src.pm_settlement.domain.models import (
    MarketSettlement,
    SettlementProof,
    UserSettlement,
)


class ResolveMarketRequest(WireModel):
    winning_outcome: str
    oracle_source: str = Field(min_length=1)
    oracle_data: str | None = None
    resolved_at: int | None = Field(None, ge=0, description="Epoch ms; defaults to now")


class UserSettlementSchema(WireModel):
    user_id: str
    winning_shares: str
    losing_shares: str
    gross_payout: str
    protocol_fee: str
    net_payout: str
    profit_loss: str

    @classmethod
    def from_domain(cls, s: UserSettlement) -> "UserSettlementSchema":
        return cls(
            user_id=s.user_id,
            winning_shares=units_to_str(s.winning_shares),
            losing_shares=units_to_str(s.losing_shares),
            gross_payout=units_to_str(s.gross_payout),
            protocol_fee=units_to_str(s.protocol_fee),
            net_payout=units_to_str(s.net_payout),
            profit_loss=units_to_str(s.profit_loss),
        )


class MarketSettlementSchema(WireModel):
    market_id: str
    winning_outcome: str
    oracle_source: str
    resolved_at: int
    total_payout: str
    protocol_fee_collected: str
    user_payouts: list[UserSettlementSchema]

    @classmethod
    def from_domain(cls, s: MarketSettlement) -> "MarketSettlementSchema":
        return cls(
            market_id=s.market_id,
            winning_outcome=s.resolution.winning_outcome.value,
            oracle_source=s.resolution.oracle_source,
            resolved_at=s.resolution.resolved_at,
            total_payout=units_to_str(s.total_payout),
            protocol_fee_collected=units_to_str(s.protocol_fee_collected),
            user_payouts=[UserSettlementSchema.from_domain(p) for p in s.user_payouts],
        )


class SettlementProofSchema(WireModel):
    encoded_proof: str
    proof_hash: str
    pnl: str

    @classmethod
    def from_domain(cls, p: SettlementProof) -> "SettlementProofSchema":
        return cls(
            encoded_proof=p.encoded_proof,
            proof_hash=p.proof_hash,
            pnl=units_to_str(p.pnl),
        )
