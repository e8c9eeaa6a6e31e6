"""Global error handlers rendering the PhotoTrade error envelope.

Every error body carries ``kind``, ``detail`` (the reason code), ``message``
and ``request_id``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from phototrade.api.request_id import get_request_id
from phototrade.domain.errors import PhotoTradeError, Unauthorized

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "unauthorized": status.HTTP_403_FORBIDDEN,
    "validation_error": status.HTTP_400_BAD_REQUEST,
    "storage_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "dependency_failure": status.HTTP_502_BAD_GATEWAY,
    "rate_limited": status.HTTP_429_TOO_MANY_REQUESTS,
}

_KIND_BY_STATUS = {
    status.HTTP_401_UNAUTHORIZED: "unauthenticated",
    status.HTTP_403_FORBIDDEN: "unauthorized",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}


def status_for(exc: PhotoTradeError) -> int:
    if isinstance(exc, Unauthorized) and exc.reason == "invalid_credentials":
        return status.HTTP_401_UNAUTHORIZED
    return STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


def _envelope(kind: str, detail, message: str, request: Request) -> dict:
    return {"kind": kind, "detail": detail, "message": message, "request_id": get_request_id(request)}


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(PhotoTradeError)
    async def domain_exc_handler(request: Request, exc: PhotoTradeError):  # type: ignore[override]
        code = status_for(exc)
        if code >= 500:
            logger.warning("request failed", extra={"kind": exc.kind, "reason": exc.reason})
        return JSONResponse(status_code=code, content=_envelope(exc.kind, exc.reason, exc.message, request))

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        kind = _KIND_BY_STATUS.get(exc.status_code, "http_error")
        payload = _envelope(kind, exc.detail, str(exc.detail), request)
        return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        payload = _envelope("validation_error", "validation_error", "The request is invalid", request)
        payload["errors"] = jsonable_encoder(exc.errors())
        return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=payload)
