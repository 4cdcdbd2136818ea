"""
Variable routes
Per-device named values stored in the BaaS variables table
"""

from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, Body, Depends, Query, status
import structlog

from baas_proxy.models.errors import ErrorCode, ProxyError
from baas_proxy.models.schemas import VariableCreate
from baas_proxy.utils.clock import to_iso_timestamp
from baas_proxy.utils.dependencies import get_clock, get_supabase, upstream_errors, valid_device_id
from baas_proxy.utils.supabase_client import SupabaseClient

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/{user_id}")
async def get_variables(
    user_id: str = Depends(valid_device_id),
    key: Optional[str] = Query(default=None),
    supabase: SupabaseClient = Depends(get_supabase),
):
    """Fetch a device's variables, optionally only the one with the given key"""
    logger.info("Fetching variables", user_id=user_id, key=key or "all")

    async with upstream_errors(ErrorCode.VARIABLES_FETCH_ERROR):
        data = await supabase.get_user_variables(user_id, key)

    logger.info("Variables fetched", user_id=user_id,
                count=len(data) if isinstance(data, list) else None)
    return {"success": True, "data": data, "userId": user_id}


@router.post("/{user_id}")
async def create_variable(
    user_id: str = Depends(valid_device_id),
    body: Optional[VariableCreate] = Body(default=None),
    supabase: SupabaseClient = Depends(get_supabase),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Store a variable for a device"""
    body = body or VariableCreate()
    missing = body.missing_fields()
    if missing:
        raise ProxyError(status.HTTP_400_BAD_REQUEST, ErrorCode.MISSING_REQUIRED_FIELDS,
                         details=f"Missing fields: {', '.join(missing)}")

    logger.info("Creating variable", user_id=user_id, key=body.key)

    row = {
        "user_id": user_id,
        "key": body.key,
        "value": body.value,
        "description": body.description or "",
        "variable_type": body.variable_type,
        "updated_at": to_iso_timestamp(clock()),
    }

    async with upstream_errors(ErrorCode.VARIABLE_SAVE_ERROR):
        data = await supabase.insert_variable(row)

    logger.info("Variable created", user_id=user_id, key=body.key)
    return {"success": True, "data": data, "message": "Variable saved successfully"}


@router.delete("/{user_id}/{key:path}")
async def delete_variable(
    key: str,
    user_id: str = Depends(valid_device_id),
    supabase: SupabaseClient = Depends(get_supabase),
):
    """Delete every variable of a device with the given key"""
    # The path converter also matches an empty segment
    if not key:
        raise ProxyError(status.HTTP_404_NOT_FOUND, ErrorCode.NOT_FOUND)

    logger.info("Deleting variable", user_id=user_id, key=key)

    async with upstream_errors(ErrorCode.VARIABLE_DELETE_ERROR):
        await supabase.delete_variables(user_id, key)

    logger.info("Variable deleted", user_id=user_id, key=key)
    return {"success": True, "message": "Variable deleted successfully"}
