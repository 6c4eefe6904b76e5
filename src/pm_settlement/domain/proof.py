"""Settlement proof encoding.

Canonical form: a compact JSON object with keys in this fixed order

    sessionId, marketId, userId, winningShares, losingShares,
    grossPayout, protocolFee, netPayout, pnl, timestamp

amounts as decimal strings, timestamp as integer epoch ms, UTF-8 encoded.
encoded_proof = base64(json bytes); proof_hash = "0x" + keccak256(json bytes).
Changing any of this breaks verification on the settlement side.

Session closes get a separate digest in the escrow contract's packed ABI
layout, see session_close_digest.
"""

import base64
import json

from Crypto.Hash import keccak

from src.pm_settlement.domain.models import SettlementProof, UserSettlement

PROOF_FIELDS = (
    "sessionId",
    "marketId",
    "userId",
    "winningShares",
    "losingShares",
    "grossPayout",
    "protocolFee",
    "netPayout",
    "pnl",
    "timestamp",
)


def keccak256(data: bytes) -> bytes:
    h = keccak.new(digest_bits=256)
    h.update(data)
    return h.digest()


def keccak256_hex(data: bytes) -> str:
    return "0x" + keccak256(data).hex()


def canonical_proof_bytes(
    settlement: UserSettlement, market_id: str, session_id: str, timestamp: int
) -> bytes:
    payload = {
        "sessionId": session_id,
        "marketId": market_id,
        "userId": settlement.user_id,
        "winningShares": str(settlement.winning_shares),
        "losingShares": str(settlement.losing_shares),
        "grossPayout": str(settlement.gross_payout),
        "protocolFee": str(settlement.protocol_fee),
        "netPayout": str(settlement.net_payout),
        "pnl": str(settlement.profit_loss),
        "timestamp": int(timestamp),
    }
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def generate_settlement_proof(
    settlement: UserSettlement, market_id: str, session_id: str, timestamp: int
) -> SettlementProof:
    raw = canonical_proof_bytes(settlement, market_id, session_id, timestamp)
    return SettlementProof(
        encoded_proof=base64.b64encode(raw).decode("ascii"),
        proof_hash=keccak256_hex(raw),
        pnl=settlement.profit_loss,
    )


def decode_settlement_proof(encoded_proof: str) -> dict:
    """Inverse of the encoding step; raises ValueError on malformed input."""
    try:
        payload = json.loads(base64.b64decode(encoded_proof, validate=True).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as exc:
        raise ValueError(f"Malformed settlement proof: {exc}") from exc
    if not isinstance(payload, dict) or tuple(payload) != PROOF_FIELDS:
        raise ValueError("Settlement proof fields are missing or out of order")
    return payload


def verify_settlement_proof(encoded_proof: str, proof_hash: str) -> bool:
    try:
        raw = base64.b64decode(encoded_proof, validate=True)
    except ValueError:
        return False
    return keccak256_hex(raw) == proof_hash.lower()


def session_id_bytes32(session_id: str) -> bytes:
    """A 0x-prefixed 32-byte hex id is used as is; any other id is hashed to 32 bytes."""
    if session_id.startswith("0x") and len(session_id) == 66:
        try:
            return bytes.fromhex(session_id[2:])
        except ValueError:
            pass
    return keccak256(session_id.encode("utf-8"))


def session_close_digest(session_id: str, pnl: int) -> str:
    """keccak256(abi.encodePacked(bytes32 sessionId, int256 pnl)).

    The escrow contract recomputes this digest before releasing a closed
    session's funds. Signing it happens outside this service.
    """
    packed = session_id_bytes32(session_id) + pnl.to_bytes(32, "big", signed=True)
    return keccak256_hex(packed)
