"""
Workflow Automation Client
Creates workflows on a caller-supplied n8n instance
"""

from typing import Any, Dict, Optional

import httpx
import structlog

from baas_proxy.models.errors import UpstreamError
from baas_proxy.utils.validators import is_valid_http_url

logger = structlog.get_logger(__name__)

WORKFLOWS_PATH = "/api/v1/workflows"
API_KEY_HEADER = "X-N8N-API-KEY"


class WorkflowClient:
    """HTTP client for the n8n public REST API"""

    def __init__(self, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self._transport = transport

    async def create_workflow(self, base_url: str, api_key: str, workflow: Dict[str, Any]) -> Any:
        """
        Create a workflow on the given n8n instance

        Args:
            base_url: Instance URL supplied by the caller
            api_key: Instance API key supplied by the caller
            workflow: Workflow document

        Returns:
            Parsed response, including the new workflow id

        Raises:
            ValueError: base_url is not an http(s) URL
            UpstreamError: non-2xx status or transport failure
        """
        if not is_valid_http_url(base_url):
            raise ValueError("Workflow URL must be an http(s) URL")

        url = f"{base_url.rstrip('/')}{WORKFLOWS_PATH}"
        headers = {API_KEY_HEADER: api_key, "Content-Type": "application/json"}

        logger.info("Creating workflow", url=url, name=workflow.get("name"))

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=workflow, headers=headers)
        except httpx.RequestError as e:
            logger.error("Workflow API request failed", url=url, error=str(e))
            raise UpstreamError("Workflow", reason=str(e)) from e

        if not response.is_success:
            logger.error("Workflow API returned an error", url=url, status_code=response.status_code)
            raise UpstreamError("Workflow", status_code=response.status_code, body=response.text)

        if not response.content:
            return {}
        return response.json()
