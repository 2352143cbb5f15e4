from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_service
from api.schemas import ConnectionResponse, HealthStatus
from api.utils import run_sync
from core.bee_converter.core import ConversionService

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check", response_model=HealthStatus)
def health() -> HealthStatus:
    return HealthStatus(status="ok")


@router.get("/connection", summary="Check the remote conversion API", response_model=ConnectionResponse)
async def connection(service: ConversionService = Depends(get_service)) -> ConnectionResponse:
    report = await run_sync(service.test_connection)
    return ConnectionResponse(
        status=report.status,
        message=report.message,
        response_time_ms=report.response_time_ms,
        error_type=report.error_type.value if report.error_type else None,
    )


__all__ = ["router"]
