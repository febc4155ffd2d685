"""Standardized API response helpers.

Every endpoint returns the same envelope:
    {"success": true, "data": ...}
    {"success": false, "error": {"code": ..., "message": ..., "details": ...}}

Pydantic models are serialized by alias, so the wire format is camelCase.
"""

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    if isinstance(value, (list, tuple)):
        return [_dump(v) for v in value]
    if isinstance(value, dict):
        return {k: _dump(v) for k, v in value.items()}
    return value


def success_response(data: Any = None) -> dict:
    """Wrap a payload in the success envelope."""
    return {"success": True, "data": jsonable_encoder(_dump(data))}


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    """Build the failure envelope as a JSONResponse."""
    error: dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = jsonable_encoder(details)
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
        headers=headers,
    )
