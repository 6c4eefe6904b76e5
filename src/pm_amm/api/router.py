"""pm_amm REST endpoints.

POST /amm/markets                          — create pool
GET  /amm/markets                          — list active pools
GET  /amm/markets/{market_id}              — pool state + prices
GET  /amm/quote                            — dry-run buy
GET  /amm/target-amount                    — buy size that moves a price to target
POST /amm/buy                              — mint & swap
POST /amm/sell                             — swap & burn
GET  /amm/position/{market_id}/{user_id}   — single position + mark value
GET  /amm/positions/{user_id}              — all positions of a user
GET  /amm/trades/{user_id}                 — trade history
"""

from fastapi import APIRouter, Query, Request

from src.pm_amm.application.schemas import (
    BuyRequest,
    BuyResponse,
    CreateMarketRequest,
    MarketSchema,
    PositionSchema,
    PositionValueSchema,
    QuoteSchema,
    SellRequest,
    SellResponse,
    TradeSchema,
)
from src.pm_amm.application.service import AmmService
from src.pm_common.response import ApiResponse, success_response
from src.pm_common.units import parse_units, units_to_str

router = APIRouter(prefix="/amm", tags=["amm"])


def _service(request: Request) -> AmmService:
    return request.app.state.amm_service


def _respond(request: Request, data: object) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/markets", status_code=201)
async def create_market(body: CreateMarketRequest, request: Request) -> ApiResponse:
    svc = _service(request)
    virtual = (
        parse_units(body.virtual_liquidity) if body.virtual_liquidity is not None else None
    )
    pool = await svc.create_market(body.market_id, parse_units(body.initial_liquidity), virtual)
    market = MarketSchema.from_domain(pool, svc.get_prices(pool.market_id))
    return _respond(request, market.model_dump(by_alias=True))


@router.get("/markets")
async def list_markets(request: Request) -> ApiResponse:
    svc = _service(request)
    items = [
        MarketSchema.from_domain(p, svc.get_prices(p.market_id)).model_dump(by_alias=True)
        for p in svc.list_active_pools()
    ]
    return _respond(request, {"items": items})


@router.get("/markets/{market_id}")
async def get_market(market_id: str, request: Request) -> ApiResponse:
    svc = _service(request)
    pool = svc.get_pool(market_id)
    market = MarketSchema.from_domain(pool, svc.get_prices(market_id))
    return _respond(request, market.model_dump(by_alias=True))


@router.get("/quote")
async def get_quote(
    request: Request,
    market_id: str = Query(..., min_length=1),
    amount: str = Query(..., description="Currency in, micro-units"),
    outcome: str = Query(...),
) -> ApiResponse:
    q = _service(request).quote(market_id, parse_units(amount), outcome)
    return _respond(request, QuoteSchema.from_domain(q).model_dump(by_alias=True))


@router.get("/target-amount")
async def get_target_amount(
    request: Request,
    market_id: str = Query(..., min_length=1),
    target_price: float = Query(..., description="Target price of `outcome`, 0..1"),
    outcome: str = Query(...),
) -> ApiResponse:
    amount = _service(request).amount_for_target_price(market_id, target_price, outcome)
    return _respond(request, {"amount": units_to_str(amount)})


@router.post("/buy")
async def buy(body: BuyRequest, request: Request) -> ApiResponse:
    result = await _service(request).buy(
        body.market_id, body.user_id, parse_units(body.amount), body.outcome
    )
    return _respond(request, BuyResponse.from_domain(result).model_dump(by_alias=True))


@router.post("/sell")
async def sell(body: SellRequest, request: Request) -> ApiResponse:
    result = await _service(request).sell(
        body.market_id, body.user_id, parse_units(body.amount), body.outcome
    )
    return _respond(request, SellResponse.from_domain(result).model_dump(by_alias=True))


@router.get("/position/{market_id}/{user_id}")
async def get_position(market_id: str, user_id: str, request: Request) -> ApiResponse:
    svc = _service(request)
    position = svc.get_position(market_id, user_id)
    value = svc.get_position_value(market_id, user_id)
    data = PositionSchema.from_domain(position).model_dump(by_alias=True)
    data["value"] = PositionValueSchema.from_domain(value).model_dump(by_alias=True)
    return _respond(request, data)


@router.get("/positions/{user_id}")
async def list_user_positions(user_id: str, request: Request) -> ApiResponse:
    items = [
        PositionSchema.from_domain(p).model_dump(by_alias=True)
        for p in _service(request).list_user_positions(user_id)
    ]
    return _respond(request, {"items": items})


@router.get("/trades/{user_id}")
async def list_trades(user_id: str, request: Request) -> ApiResponse:
    items = [
        TradeSchema.from_domain(t).model_dump(by_alias=True)
        for t in _service(request).list_trades(user_id)
    ]
    return _respond(request, {"items": items})
