"""
Health check routes
"""

from fastapi import APIRouter, Request

from baas_proxy.utils.clock import to_iso_timestamp

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Liveness check, no upstream calls"""
    settings = request.app.state.settings
    return {
        "status": "OK",
        "timestamp": to_iso_timestamp(request.app.state.clock()),
        "server": settings.service_name,
        "version": settings.service_version,
    }
