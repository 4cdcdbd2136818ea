"""
FastAPI Dependencies
Shared clients, device-id validation and upstream error mapping
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable

from fastapi import Path, Request, status
import structlog

from baas_proxy.models.errors import ErrorCode, ProxyError, UpstreamError
from baas_proxy.services.onboarding_service import OnboardingService
from baas_proxy.utils.supabase_client import SupabaseClient
from baas_proxy.utils.validators import is_valid_device_id

logger = structlog.get_logger(__name__)


def get_supabase(request: Request) -> SupabaseClient:
    """Dependency to get the BaaS client"""
    return request.app.state.supabase


def get_clock(request: Request) -> Callable[[], datetime]:
    """Dependency to get the wall clock"""
    return request.app.state.clock


def get_onboarding_service(request: Request) -> OnboardingService:
    """Dependency to get the onboarding service"""
    state = request.app.state
    return OnboardingService(
        state.supabase,
        state.workflow_client,
        clock=state.clock,
        duration_days=state.settings.subscription_duration_days,
    )


def valid_device_id(user_id: str = Path(...)) -> str:
    """Path parameter dependency rejecting malformed device ids"""
    if not is_valid_device_id(user_id):
        raise ProxyError(status.HTTP_400_BAD_REQUEST, ErrorCode.INVALID_DEVICE_ID)
    return user_id


@asynccontextmanager
async def upstream_errors(code: ErrorCode):
    """
    Map an UpstreamError raised inside the block to a 500 with the given code.

    The upstream status and body text are passed on in ``details``.
    """
    try:
        yield
    except UpstreamError as e:
        logger.error("Upstream call failed", code=code.value, status_code=e.status_code)
        raise ProxyError(status.HTTP_500_INTERNAL_SERVER_ERROR, code, details=str(e)) from e
