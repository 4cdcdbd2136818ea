"""
Onboarding Service
Subscription creation and the optional welcome setup that follows it
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

import structlog

from baas_proxy.models.errors import UpstreamError
from baas_proxy.models.schemas import WelcomeVariable
from baas_proxy.services.workflow_template import personalize_workflow
from baas_proxy.utils.clock import to_iso_timestamp, utc_now
from baas_proxy.utils.supabase_client import SupabaseClient
from baas_proxy.utils.workflow_client import WorkflowClient

logger = structlog.get_logger(__name__)

DEFAULT_WELCOME_VARIABLES = [
    WelcomeVariable(key="welcome_message", value="Welcome! Your workflow variables are ready.",
                    description="Created with your subscription"),
    WelcomeVariable(key="onboarding_completed", value="false",
                    description="Set to true once the first workflow has run"),
]


def first_row(payload: Any) -> Any:
    """First element of a representation list, or the payload itself"""
    if isinstance(payload, list):
        return payload[0] if payload else None
    return payload


class OnboardingService:
    """
    Creates subscriptions and, on request, the welcome variables and workflow.

    Only the subscription insert is fatal. Welcome variables and the workflow
    are attempted one by one and reported per item; nothing is rolled back.
    """

    def __init__(self, supabase: SupabaseClient, workflow_client: WorkflowClient,
                 clock: Callable[[], datetime] = utc_now, duration_days: int = 7):
        self.supabase = supabase
        self.workflow_client = workflow_client
        self.clock = clock
        self.duration = timedelta(days=duration_days)

    def build_subscription_row(self, user_id: str, plan: str) -> Dict[str, Any]:
        now = self.clock()
        timestamp = to_iso_timestamp(now)
        return {
            "user_id": user_id,
            "status": plan,
            "expires_at": to_iso_timestamp(now + self.duration),
            "started_at": timestamp,
            "created_at": timestamp,
        }

    async def create_subscription(self, user_id: str, plan: str = "trial") -> Any:
        """Insert a subscription valid from now for the configured duration"""
        logger.info("Creating subscription", user_id=user_id, plan=plan)
        data = await self.supabase.insert_subscription(self.build_subscription_row(user_id, plan))
        logger.info("Subscription created", user_id=user_id)
        return first_row(data) or data

    async def create_welcome_variables(self, user_id: str,
                                       variables: Optional[List[WelcomeVariable]] = None) -> List[Dict[str, Any]]:
        """Insert each welcome variable, collecting a result per key"""
        results = []
        for variable in variables if variables is not None else DEFAULT_WELCOME_VARIABLES:
            row = {
                "user_id": user_id,
                "key": variable.key,
                "value": variable.value,
                "description": variable.description,
                "variable_type": "string",
                "updated_at": to_iso_timestamp(self.clock()),
            }
            try:
                await self.supabase.insert_variable(row)
                results.append({"key": variable.key, "success": True})
            except UpstreamError as e:
                logger.warning("Welcome variable not created", user_id=user_id,
                               key=variable.key, error=str(e))
                results.append({"key": variable.key, "success": False, "error": str(e)})
        return results

    async def create_workflow(self, user_id: str, base_url: str, api_key: str) -> Dict[str, Any]:
        """Create the personalized workflow on the caller's n8n instance"""
        workflow = personalize_workflow(user_id)
        try:
            result = await self.workflow_client.create_workflow(base_url, api_key, workflow)
        except (UpstreamError, ValueError) as e:
            logger.warning("Workflow not created", user_id=user_id, error=str(e))
            return {"created": False, "error": str(e)}

        workflow_id = result.get("id") if isinstance(result, dict) else None
        logger.info("Workflow created", user_id=user_id, workflow_id=workflow_id)
        return {"created": True, "id": workflow_id}
