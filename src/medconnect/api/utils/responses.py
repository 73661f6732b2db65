from typing import Any, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ...application.dto.service_result import ServiceResult
from ..schemas.common import ApiResponse, ErrorResponse


def envelope(result: ServiceResult) -> JSONResponse:
    """HTTP status from ``result.status``; body is ``{message, ...payload}``."""
    return JSONResponse(status_code=result.status, content=jsonable_encoder(result.body()))


def ok(request: Request, data: Any = None, message: str = "") -> ApiResponse[Any]:
    req_id = getattr(request.state, "request_id", None)
    return ApiResponse(success=True, message=message, request_id=req_id or "", data=data)


def fail(request: Request, error: str, message: str, details: Optional[dict] = None) -> ErrorResponse:
    req_id = getattr(request.state, "request_id", None)
    return ErrorResponse(error=error, message=message, request_id=req_id or "", details=details or {})
