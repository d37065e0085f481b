"""
Exception handlers.

Maps the SmartBinError taxonomy onto HTTP status codes. Routes let
service exceptions propagate; the body is always SmartBinError.to_dict().
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from modules.ledger.exceptions import InsufficientBalanceError
from modules.verification.exceptions import ResendCooldownError
from shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    SmartBinError,
    TransientError,
    ValidationError,
)

from ..models.errors import ErrorResponse

logger = logging.getLogger(__name__)

# Most specific first
STATUS_BY_ERROR: list[tuple[type[SmartBinError], int]] = [
    (ResendCooldownError, status.HTTP_429_TOO_MANY_REQUESTS),
    (InsufficientBalanceError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY),
    (TransientError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(error: SmartBinError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def smartbin_error_handler(request: Request, exc: SmartBinError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)

    headers = {}
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers["WWW-Authenticate"] = "Bearer"
    elif status_code == status.HTTP_429_TOO_MANY_REQUESTS:
        headers["Retry-After"] = str(exc.details.get("retry_after", 1))

    body = ErrorResponse(**exc.to_dict())
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SmartBinError, smartbin_error_handler)
