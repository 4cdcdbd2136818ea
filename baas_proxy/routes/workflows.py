"""
Workflow template routes
"""

from fastapi import APIRouter, Depends
import structlog

from baas_proxy.services.workflow_template import personalize_workflow
from baas_proxy.utils.dependencies import valid_device_id

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/{user_id}")
async def get_workflow_template(user_id: str = Depends(valid_device_id)):
    """Return the n8n workflow template personalized for a device"""
    logger.info("Serving workflow template", user_id=user_id)
    return {"success": True, "userId": user_id, "workflow": personalize_workflow(user_id)}
