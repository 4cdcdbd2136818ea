"""
Pytest fixtures for BaaS proxy tests

The BaaS and the n8n API are replaced by an in-memory fake served through
httpx.MockTransport, so routes run end to end without network access.
"""

import json
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

# Module-level app creation in baas_proxy.main needs these
os.environ.setdefault("SUPABASE_URL", "https://baas.example.com")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("LOG_FORMAT", "console")

import httpx
import pytest
from fastapi.testclient import TestClient

from baas_proxy.config import Settings
from baas_proxy.main import create_app
from baas_proxy.utils.supabase_client import SupabaseClient
from baas_proxy.utils.workflow_client import WorkflowClient

BAAS_URL = "https://baas.example.com"
BAAS_HOST = "baas.example.com"
API_KEY = "test-anon-key"
N8N_URL = "https://n8n.example.com"
N8N_HOST = "n8n.example.com"

DEVICE_ID = "3f2b8c1e-9d4a-4e6b-8f1c-2a7d5e9b0c34"


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class FakeBaas:
    """
    In-memory stand-in for the BaaS REST interface and an n8n instance.

    Understands the eq./gt. filters and the RPC used by the proxy.
    Every request that reaches it is recorded.
    """

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {"global_variables": [], "subscriptions": []}
        self.workflows: List[Dict[str, Any]] = []
        self.requests: List[httpx.Request] = []
        self.failures: Dict[tuple, tuple] = {}

    @property
    def variables(self) -> List[Dict[str, Any]]:
        return self.tables["global_variables"]

    @property
    def subscriptions(self) -> List[Dict[str, Any]]:
        return self.tables["subscriptions"]

    @property
    def baas_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host == BAAS_HOST]

    @property
    def n8n_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host == N8N_HOST]

    def fail(self, method: str, path: str, status_code: int = 500, text: str = "upstream failure"):
        self.failures[(method, path)] = (status_code, text)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        failure = self.failures.get((request.method, request.url.path))
        if failure:
            status_code, text = failure
            return httpx.Response(status_code, text=text)

        if request.url.host == N8N_HOST:
            return self._handle_n8n(request)

        path = request.url.path
        if path == "/rest/v1/rpc/get_user_variables":
            return self._handle_rpc(request)
        if path.startswith("/rest/v1/"):
            return self._handle_table(request, path[len("/rest/v1/"):])
        return httpx.Response(404, json={"message": "not found"})

    def _matches(self, row: Dict[str, Any], params: httpx.QueryParams) -> bool:
        for column, condition in params.multi_items():
            operator, _, operand = condition.partition(".")
            value = row.get(column)
            if operator == "eq" and str(value) != operand:
                return False
            if operator == "gt" and not _parse_timestamp(value) > _parse_timestamp(operand):
                return False
        return True

    def _handle_rpc(self, request: httpx.Request) -> httpx.Response:
        user_id = request.url.params.get("p_user_id")
        key = request.url.params.get("p_key")
        rows = [
            row for row in self.variables
            if row["user_id"] == user_id and (key is None or row["key"] == key)
        ]
        return httpx.Response(200, json=rows)

    def _handle_table(self, request: httpx.Request, table: str) -> httpx.Response:
        rows = self.tables.get(table)
        if rows is None:
            return httpx.Response(404, json={"message": f"relation {table} does not exist"})

        if request.method == "GET":
            return httpx.Response(200, json=[r for r in rows if self._matches(r, request.url.params)])

        if request.method == "POST":
            payload = json.loads(request.content)
            new_rows = payload if isinstance(payload, list) else [payload]
            rows.extend(new_rows)
            if request.headers.get("Prefer") == "return=representation":
                return httpx.Response(201, json=new_rows)
            return httpx.Response(201)

        if request.method == "DELETE":
            self.tables[table] = [r for r in rows if not self._matches(r, request.url.params)]
            return httpx.Response(204)

        return httpx.Response(405)

    def _handle_n8n(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST" and request.url.path == "/api/v1/workflows":
            workflow = json.loads(request.content)
            workflow_id = f"wf-{len(self.workflows) + 1}"
            self.workflows.append(workflow)
            return httpx.Response(200, json={"id": workflow_id, "name": workflow.get("name")})
        return httpx.Response(404, json={"message": "not found"})


class FakeClock:
    """Wall clock that only moves when told to"""

    def __init__(self, start: datetime = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    """Monotonic clock for rate limiter tests"""

    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float):
        self.value += seconds


@pytest.fixture
def fake_baas() -> FakeBaas:
    return FakeBaas()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url=BAAS_URL,
        supabase_anon_key=API_KEY,
        log_format="console",
    )


@pytest.fixture
def supabase(fake_baas) -> SupabaseClient:
    return SupabaseClient(BAAS_URL, API_KEY, transport=fake_baas.transport())


@pytest.fixture
def app(settings, fake_baas, fake_clock, supabase):
    return create_app(
        settings=settings,
        supabase=supabase,
        workflow_client=WorkflowClient(transport=fake_baas.transport()),
        clock=fake_clock,
    )


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
