"""
Supabase REST Client
Relay for the BaaS REST/RPC endpoints used by the proxy

The API key is attached here and nowhere else. Callers can add headers
(e.g. Prefer) but can never replace the credential headers.

Connection pooling follows the same lifecycle as the other HTTP clients:
- Single shared AsyncClient started in the FastAPI lifespan
- Falls back to a per-request client when not started
"""

from datetime import datetime
from typing import Any, Dict, Optional

import httpx
import structlog

from baas_proxy.models.errors import UpstreamError
from baas_proxy.utils.clock import to_iso_timestamp

logger = structlog.get_logger(__name__)

VARIABLES_TABLE = "global_variables"
SUBSCRIPTIONS_TABLE = "subscriptions"
GET_USER_VARIABLES_RPC = "get_user_variables"

RETURN_REPRESENTATION = {"Prefer": "return=representation"}

# Never taken from caller-supplied headers
PROTECTED_HEADERS = frozenset({"apikey", "authorization"})


def eq(value: Any) -> str:
    """PostgREST equality filter value"""
    return f"eq.{value}"


def gt(value: Any) -> str:
    """PostgREST greater-than filter value"""
    return f"gt.{value}"


class SupabaseClient:
    """
    HTTP client for the BaaS REST interface.

    Lifecycle:
        - Call start() during app startup (FastAPI lifespan)
        - Call stop() during app shutdown
        - If not started, falls back to per-request client
    """

    MAX_CONNECTIONS = 100
    MAX_KEEPALIVE = 20
    KEEPALIVE_EXPIRY = 5.0

    CONNECT_TIMEOUT = 5.0
    WRITE_TIMEOUT = 5.0
    POOL_TIMEOUT = 30.0

    def __init__(self, base_url: str, api_key: str, read_timeout: float = 30.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._read_timeout = read_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _timeout(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self.CONNECT_TIMEOUT,
            read=self._read_timeout,
            write=self.WRITE_TIMEOUT,
            pool=self.POOL_TIMEOUT,
        )

    async def start(self):
        """Initialize the shared HTTP client"""
        if self._client is not None:
            logger.warning("SupabaseClient already started")
            return

        limits = httpx.Limits(
            max_connections=self.MAX_CONNECTIONS,
            max_keepalive_connections=self.MAX_KEEPALIVE,
            keepalive_expiry=self.KEEPALIVE_EXPIRY,
        )
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            limits=limits,
            timeout=self._timeout(),
            transport=self._transport,
        )
        logger.info("SupabaseClient started", base_url=self.base_url,
                    max_connections=self.MAX_CONNECTIONS)

    async def stop(self):
        """Close the HTTP client and release resources"""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("SupabaseClient stopped")

    def _build_headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        for name, value in (extra or {}).items():
            if name.lower() in PROTECTED_HEADERS:
                logger.warning("Dropping caller-supplied credential header", header=name)
                continue
            headers[name] = value
        headers["apikey"] = self._api_key
        headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def request(self, path: str, method: str = "GET", params: Optional[Dict[str, Any]] = None,
                      json: Any = None, headers: Optional[Dict[str, str]] = None) -> Any:
        """
        Make one request against the BaaS

        Args:
            path: Path below the base URL, e.g. /rest/v1/subscriptions
            method: HTTP method
            params: Query parameters (URL-encoded by httpx)
            json: JSON body
            headers: Extra headers; credential headers are ignored

        Returns:
            Parsed JSON body, or None for an empty response

        Raises:
            UpstreamError: non-2xx status or transport failure
        """
        request_headers = self._build_headers(headers)
        logger.info("Calling BaaS", method=method, path=path)

        try:
            if self._client:
                response = await self._client.request(
                    method, path, params=params, json=json, headers=request_headers
                )
            else:
                logger.debug("SupabaseClient not started, using per-request client")
                async with httpx.AsyncClient(timeout=self._timeout(), transport=self._transport) as client:
                    response = await client.request(
                        method, f"{self.base_url}{path}", params=params, json=json,
                        headers=request_headers,
                    )
        except httpx.RequestError as e:
            logger.error("BaaS request failed", method=method, path=path, error=str(e))
            raise UpstreamError("Supabase", reason=str(e)) from e

        if not response.is_success:
            logger.error("BaaS returned an error", method=method, path=path,
                         status_code=response.status_code)
            raise UpstreamError("Supabase", status_code=response.status_code, body=response.text)

        if response.status_code == 204 or not response.content:
            return None

        return response.json()

    # Variables

    async def get_user_variables(self, user_id: str, key: Optional[str] = None) -> Any:
        """Fetch a user's variables through the RPC function, optionally for one key"""
        params = {"p_user_id": user_id}
        if key:
            params["p_key"] = key
        return await self.request(f"/rest/v1/rpc/{GET_USER_VARIABLES_RPC}", params=params)

    async def insert_variable(self, row: Dict[str, Any]) -> Any:
        """Insert a variable row and return the stored representation"""
        return await self.request(
            f"/rest/v1/{VARIABLES_TABLE}", method="POST", json=row, headers=RETURN_REPRESENTATION
        )

    async def delete_variables(self, user_id: str, key: str) -> Any:
        """Delete every variable row of a user matching the key"""
        params = {"user_id": eq(user_id), "key": eq(key)}
        return await self.request(f"/rest/v1/{VARIABLES_TABLE}", method="DELETE", params=params)

    # Subscriptions

    async def get_active_subscriptions(self, user_id: str, now: datetime) -> Any:
        """Select the user's subscriptions that expire after now"""
        params = {"user_id": eq(user_id), "expires_at": gt(to_iso_timestamp(now))}
        return await self.request(f"/rest/v1/{SUBSCRIPTIONS_TABLE}", params=params)

    async def insert_subscription(self, row: Dict[str, Any]) -> Any:
        """Insert a subscription row and return the stored representation"""
        return await self.request(
            f"/rest/v1/{SUBSCRIPTIONS_TABLE}", method="POST", json=row, headers=RETURN_REPRESENTATION
        )
