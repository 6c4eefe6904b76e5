"""pm_session REST endpoints.

POST /sessions/open                             — track an escrowed session
POST /sessions/{session_id}/activate            — PENDING -> ACTIVE
GET  /sessions/user/{address}                   — user's current session
GET  /sessions/{session_id}                     — session + bets
GET  /sessions/{session_id}/balance             — streaming balance
POST /sessions/bet                              — bet against the AMM
POST /sessions/bet/yield                        — bet a share of accrued yield
POST /sessions/{session_id}/bets/{bet_id}/resolve
POST /sessions/close                            — close with final PnL
"""

from fastapi import APIRouter, Query, Request

from src.pm_common.response import ApiResponse, success_response
from src.pm_common.units import parse_units, units_to_str
from src.pm_session.application.schemas import (
    BetSchema,
    CloseSessionRequest,
    OpenSessionRequest,
    PlaceBetRequest,
    PlaceYieldBetRequest,
    ResolveBetRequest,
    SessionCloseSchema,
    SessionSchema,
    StreamingBalanceSchema,
)
from src.pm_session.application.service import SessionService

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _service(request: Request) -> SessionService:
    return request.app.state.session_service


def _respond(request: Request, data: object, message: str = "success") -> ApiResponse:
    resp = success_response(data, message=message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/open", status_code=201)
async def open_session(body: OpenSessionRequest, request: Request) -> ApiResponse:
    account = await _service(request).open_session(
        body.user_address,
        body.session_id,
        parse_units(body.collateral),
        yield_rate_bps=body.yield_rate_bps,
        safe_mode_enabled=body.safe_mode_enabled,
        escrow_confirmed=body.escrow_confirmed,
    )
    return _respond(request, SessionSchema.from_domain(account).model_dump(by_alias=True))


@router.post("/{session_id}/activate")
async def activate_session(session_id: str, request: Request) -> ApiResponse:
    account = await _service(request).activate_session(session_id)
    return _respond(request, SessionSchema.from_domain(account).model_dump(by_alias=True))


@router.get("/user/{address}")
async def get_user_session(address: str, request: Request) -> ApiResponse:
    account = _service(request).get_session_for_user(address)
    data = SessionSchema.from_domain(account).model_dump(by_alias=True) if account else None
    return _respond(request, data)


@router.get("/{session_id}")
async def get_session(session_id: str, request: Request) -> ApiResponse:
    account = _service(request).get_session(session_id)
    return _respond(request, SessionSchema.from_domain(account).model_dump(by_alias=True))


@router.get("/{session_id}/balance")
async def get_balance(
    session_id: str,
    request: Request,
    safe_mode: bool | None = Query(None, description="Defaults to the session's mode"),
) -> ApiResponse:
    balance = _service(request).get_streaming_balance(session_id, safe_mode)
    return _respond(
        request, StreamingBalanceSchema.from_domain(balance).model_dump(by_alias=True)
    )


@router.post("/bet")
async def place_bet(body: PlaceBetRequest, request: Request) -> ApiResponse:
    bet, balance = await _service(request).place_bet(
        body.session_id, body.market_id, body.side, parse_units(body.amount)
    )
    data = {
        "bet": BetSchema.from_domain(bet).model_dump(by_alias=True),
        "availableBalance": units_to_str(balance.available),
    }
    return _respond(request, data)


@router.post("/bet/yield")
async def place_yield_bet(body: PlaceYieldBetRequest, request: Request) -> ApiResponse:
    bet, balance = await _service(request).place_yield_bet(
        body.session_id, body.market_id, body.side, body.yield_bps
    )
    data = {
        "bet": BetSchema.from_domain(bet).model_dump(by_alias=True),
        "availableBalance": units_to_str(balance.available),
    }
    return _respond(request, data)


@router.post("/{session_id}/bets/{bet_id}/resolve")
async def resolve_bet(
    session_id: str, bet_id: str, body: ResolveBetRequest, request: Request
) -> ApiResponse:
    bet = await _service(request).resolve_bet(session_id, bet_id, body.won)
    return _respond(request, BetSchema.from_domain(bet).model_dump(by_alias=True))


@router.post("/close")
async def close_session(body: CloseSessionRequest, request: Request) -> ApiResponse:
    result = await _service(request).close_session(body.session_id, body.policy)
    return _respond(
        request,
        SessionCloseSchema.from_domain(result).model_dump(by_alias=True),
        message="session closed",
    )
