import logging
from typing import Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from stagelocker.core.request_id import request_id_ctx
from stagelocker.services.auth_flow import AuthOutcome


logger = logging.getLogger(__name__)


OUTCOME_STATUS: Dict[AuthOutcome, int] = {
    AuthOutcome.CREATED: status.HTTP_201_CREATED,
    AuthOutcome.OK: status.HTTP_200_OK,
    AuthOutcome.DUPLICATE: status.HTTP_409_CONFLICT,
    AuthOutcome.SEND_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    AuthOutcome.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    AuthOutcome.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    AuthOutcome.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AuthOutcome.ALREADY_VERIFIED: status.HTTP_400_BAD_REQUEST,
    AuthOutcome.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    AuthOutcome.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class OutcomeHTTPException(HTTPException):
    """HTTPException que lleva el outcome como código de error"""

    def __init__(self, outcome: AuthOutcome, detail: str, headers: Optional[Dict[str, str]] = None):
        if outcome is AuthOutcome.UNAUTHORIZED and headers is None:
            headers = {"WWW-Authenticate": "Bearer"}
        super().__init__(status_code=OUTCOME_STATUS[outcome], detail=detail, headers=headers)
        self.code = outcome.value


def _get_request_id(request: Request) -> str:
    header_request_id = request.headers.get("X-Request-ID")
    if header_request_id:
        return header_request_id
    ctx_request_id = request_id_ctx.get()
    return ctx_request_id or ""


def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "code": getattr(exc, "code", "HTTP_EXCEPTION"),
            "request_id": _get_request_id(request),
        },
        headers=getattr(exc, "headers", None),
    )


def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "detail": jsonable_encoder(exc.errors()),
            "code": "VALIDATION_ERROR",
            "request_id": _get_request_id(request),
        },
    )


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Demasiadas solicitudes",
            "code": "RATE_LIMIT_EXCEEDED",
            "request_id": _get_request_id(request),
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", ""))} if getattr(exc, "retry_after", None) else None,
    )


def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"request_id": _get_request_id(request)})
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Error interno del servidor",
            "code": "INTERNAL_ERROR",
            "request_id": _get_request_id(request),
        },
    )
