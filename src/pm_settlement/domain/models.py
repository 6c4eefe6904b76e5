"""Domain models for pm_settlement. Derived values, never a source of truth."""

from dataclasses import dataclass, field

from src.pm_amm.domain.models import MarketResolution


@dataclass(frozen=True)
class UserSettlement:
    user_id: str
    winning_shares: int
    losing_shares: int
    gross_payout: int
    protocol_fee: int
    net_payout: int
    profit_loss: int   # net_payout - cost_basis, may be negative


@dataclass(frozen=True)
class MarketSettlement:
    market_id: str
    resolution: MarketResolution
    user_payouts: list[UserSettlement] = field(default_factory=list)
    total_payout: int = 0
    protocol_fee_collected: int = 0

    def for_user(self, user_id: str) -> UserSettlement | None:
        for payout in self.user_payouts:
            if payout.user_id == user_id:
                return payout
        return None


@dataclass(frozen=True)
class SettlementProof:
    encoded_proof: str   # base64 of canonical JSON
    proof_hash: str      # 0x + keccak256 hex of the JSON bytes
    pnl: int
