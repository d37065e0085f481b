"""
Health check endpoints.

Provides endpoints for monitoring application health and readiness.
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from shared.config import get_settings
from shared.store import IStore

from ..dependencies import get_store_dependency

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    status: str
    store: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the API is running.
    """
    return HealthResponse(status="healthy", version=get_settings().app_version)


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(
    response: Response,
    store: IStore = Depends(get_store_dependency),
) -> ReadinessResponse:
    """
    Readiness check endpoint.

    Reads a key from the store; 503 if the store cannot be reached.
    """
    try:
        await store.get("health/ready")
    except Exception as e:
        logger.warning("Readiness check failed: %s", e)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ReadinessResponse(status="unavailable", store="unreachable")
    return ReadinessResponse(status="ready", store="connected")
