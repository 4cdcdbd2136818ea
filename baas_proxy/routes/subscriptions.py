"""
Subscription routes
"""

from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, Body, Depends
import structlog

from baas_proxy.models.errors import ErrorCode
from baas_proxy.models.schemas import SubscriptionCreate, WorkflowSubscriptionCreate
from baas_proxy.services.onboarding_service import OnboardingService, first_row
from baas_proxy.utils.dependencies import (
    get_clock, get_onboarding_service, get_supabase, upstream_errors, valid_device_id,
)
from baas_proxy.utils.supabase_client import SupabaseClient

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/{user_id}")
async def get_subscription_status(
    user_id: str = Depends(valid_device_id),
    supabase: SupabaseClient = Depends(get_supabase),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Check whether a device has an active subscription.

    Active means expires_at lies after the current instant; the comparison
    happens in the BaaS query, not here.
    """
    logger.info("Checking subscription", user_id=user_id)

    async with upstream_errors(ErrorCode.SUBSCRIPTION_CHECK_ERROR):
        data = await supabase.get_active_subscriptions(user_id, clock())

    rows = data if isinstance(data, list) else []
    logger.info("Active subscriptions found", user_id=user_id, count=len(rows))

    return {
        "success": True,
        "hasActiveSubscription": len(rows) > 0,
        "subscription": first_row(rows),
        "userId": user_id,
    }


@router.post("/{user_id}")
async def create_subscription(
    user_id: str = Depends(valid_device_id),
    body: Optional[SubscriptionCreate] = Body(default=None),
    onboarding: OnboardingService = Depends(get_onboarding_service),
):
    """Create a subscription for a device, valid for seven days from now"""
    body = body or SubscriptionCreate()

    async with upstream_errors(ErrorCode.SUBSCRIPTION_CREATE_ERROR):
        subscription = await onboarding.create_subscription(user_id, body.plan)

    return {
        "success": True,
        "subscription": subscription,
        "message": "Subscription activated successfully",
    }


@router.post("/{user_id}/with-workflow")
async def create_subscription_with_workflow(
    user_id: str = Depends(valid_device_id),
    body: Optional[WorkflowSubscriptionCreate] = Body(default=None),
    onboarding: OnboardingService = Depends(get_onboarding_service),
):
    """
    Create a subscription, then welcome variables and optionally an n8n workflow.

    Only the subscription insert can fail the request. The later steps are
    best effort: each outcome is reported and the subscription is kept
    whatever happens to them.
    """
    body = body or WorkflowSubscriptionCreate()

    async with upstream_errors(ErrorCode.SUBSCRIPTION_CREATE_ERROR):
        subscription = await onboarding.create_subscription(user_id, body.plan)

    welcome_variables = await onboarding.create_welcome_variables(user_id, body.welcome_variables)

    workflow = None
    if body.wants_workflow():
        workflow = await onboarding.create_workflow(user_id, body.n8n_url, body.n8n_api_key)

    created = sum(1 for result in welcome_variables if result["success"])
    logger.info("Subscription setup finished", user_id=user_id,
                welcome_variables=f"{created}/{len(welcome_variables)}",
                workflow_created=workflow["created"] if workflow else None)

    return {
        "success": True,
        "subscription": subscription,
        "welcomeVariables": welcome_variables,
        "workflow": workflow,
        "message": "Subscription activated successfully",
    }
