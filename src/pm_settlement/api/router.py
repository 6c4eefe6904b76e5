"""Settlement REST endpoints, mounted under /amm next to the trading routes.

POST /amm/markets/{market_id}/resolve             — oracle resolution
GET  /amm/markets/{market_id}/settlement          — stored settlement record
GET  /amm/markets/{market_id}/proof/{user_id}     — per-user settlement proof
"""

from fastapi import APIRouter, Query, Request

from src.pm_common.response import ApiResponse, success_response
from src.pm_settlement.application.schemas import (
    MarketSettlementSchema,
    ResolveMarketRequest,
    SettlementProofSchema,
)
from src.pm_settlement.application.service import SettlementService

router = APIRouter(prefix="/amm/markets", tags=["settlement"])


def _service(request: Request) -> SettlementService:
    return request.app.state.settlement_service


@router.post("/{market_id}/resolve")
async def resolve_market(
    market_id: str, body: ResolveMarketRequest, request: Request
) -> ApiResponse:
    settlement = await _service(request).resolve_market(
        market_id,
        body.winning_outcome,
        body.oracle_source,
        oracle_data=body.oracle_data,
        resolved_at=body.resolved_at,
    )
    resp = success_response(
        MarketSettlementSchema.from_domain(settlement).model_dump(by_alias=True),
        message="market resolved",
    )
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{market_id}/settlement")
async def get_settlement(market_id: str, request: Request) -> ApiResponse:
    settlement = _service(request).get_settlement(market_id)
    resp = success_response(
        MarketSettlementSchema.from_domain(settlement).model_dump(by_alias=True)
    )
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{market_id}/proof/{user_id}")
async def get_proof(
    market_id: str,
    user_id: str,
    request: Request,
    session_id: str = Query(..., min_length=1),
) -> ApiResponse:
    proof = _service(request).settlement_proof(market_id, user_id, session_id)
    resp = success_response(SettlementProofSchema.from_domain(proof).model_dump(by_alias=True))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
