"""Unified API response wrapper.

All API endpoints return this format:
{
    "code": 0,           // 0=success, non-0=AppError code
    "message": "success",
    "data": { ... },     // null on error
    "timestamp": "...",
    "request_id": "..."
}

Amounts inside `data` are decimal strings; see the per-module schemas.
"""

import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.pm_common.datetime_utils import utc_now


def _new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())
    request_id: str = Field(default_factory=_new_request_id)


def success_response(
    data: Any = None, message: str = "success", request_id: str | None = None
) -> ApiResponse:
    resp = ApiResponse(code=0, message=message, data=data)
    if request_id:
        resp.request_id = request_id
    return resp


def error_response(code: int, message: str, request_id: str | None = None) -> ApiResponse:
    resp = ApiResponse(code=code, message=message, data=None)
    if request_id:
        resp.request_id = request_id
    return resp


class WireModel(BaseModel):
    """Base for public payloads: camelCase on the wire, snake_case in Python.

    Dump with `model_dump(by_alias=True)`.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
