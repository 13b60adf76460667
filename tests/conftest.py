# Test configuration
import itertools
import json
import sys
from pathlib import Path
from unittest.mock import AsyncMock

import httpx
import pytest

REPO_ROOT = Path(__file__).parent.parent

# Add repo root to path so tests can import modules
sys.path.insert(0, str(REPO_ROOT))

from n8n_manager.config import Settings  # noqa: E402
from n8n_manager.gateway import N8nApiClient, ResponseCache  # noqa: E402

N8N_URL = "https://n8n.test"
API_PREFIX = "/api/v1"
BASE_URL = f"{N8N_URL}{API_PREFIX}"
API_KEY = "test-api-key"
TIMESTAMP = "2024-05-01T10:00:00.000Z"


class FakeN8n:
    """In-memory stand-in for the n8n public API, served via httpx.MockTransport.

    ``queue`` scripts one-off responses for a method and path; they are
    consumed in order before the normal behaviour applies. ``reject`` makes
    a method always answer 405 for a collection.
    """

    def __init__(self):
        self.workflows: dict[str, dict] = {}
        self.executions: dict[str, dict] = {}
        self.tags: dict[str, dict] = {}
        self.credentials: dict[str, dict] = {}
        self.webhooks: dict[tuple[str, str], dict] = {}
        self.requests: list[httpx.Request] = []
        self.webhook_requests: list[httpx.Request] = []
        self._queued: list[tuple[str, str, int, object]] = []
        self._rejected: set[tuple[str, str]] = set()
        self._ids = itertools.count(1)

    # Scripting

    def queue(self, method: str, path: str, status: int, body: object = None) -> None:
        self._queued.append((method, path, status, body))

    def reject(self, method: str, collection: str) -> None:
        self._rejected.add((method, collection))

    def add_workflow(self, name: str, **fields) -> dict:
        workflow = {
            "id": str(next(self._ids)),
            "name": name,
            "active": False,
            "nodes": [],
            "connections": {},
            "settings": {"executionOrder": "v1"},
            "tags": [],
            "createdAt": TIMESTAMP,
            "updatedAt": TIMESTAMP,
            **fields,
        }
        self.workflows[workflow["id"]] = workflow
        return workflow

    def add_execution(self, workflow_id: str, **fields) -> dict:
        execution = {
            "id": str(next(self._ids)),
            "finished": True,
            "mode": "webhook",
            "status": "success",
            "startedAt": "2024-05-01T10:00:00.000Z",
            "stoppedAt": "2024-05-01T10:00:01.500Z",
            "workflowId": workflow_id,
            **fields,
        }
        self.executions[execution["id"]] = execution
        return execution

    def add_webhook(self, method: str, url: str, response: dict) -> None:
        self.webhooks[(method, url)] = response

    # Inspection

    def calls(self) -> list[tuple[str, str]]:
        return [(r.method, r.url.path.removeprefix(API_PREFIX)) for r in self.requests]

    def body(self, index: int) -> object:
        content = self.requests[index].content
        return json.loads(content) if content else None

    # Transport handlers

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix(API_PREFIX)
        method = request.method

        for index, (q_method, q_path, status, body) in enumerate(self._queued):
            if q_method == method and q_path == path:
                del self._queued[index]
                if isinstance(body, str):
                    return httpx.Response(status, text=body)
                return httpx.Response(status, json=body if body is not None else {"message": f"status {status}"})

        parts = path.strip("/").split("/")
        collection = parts[0]
        identifier = parts[1] if len(parts) > 1 else None
        if (method, collection) in self._rejected:
            return httpx.Response(405, json={"message": "method not allowed"})

        store = getattr(self, collection, None)
        if not isinstance(store, dict):
            return httpx.Response(404, json={"message": "not found"})

        payload = json.loads(request.content) if request.content else None
        if identifier is None:
            if method == "GET":
                return self._list(collection, store, request.url.params)
            if method == "POST":
                record = {"id": str(next(self._ids)), **payload, "createdAt": TIMESTAMP, "updatedAt": TIMESTAMP}
                if collection == "workflows":
                    record.setdefault("active", False)
                store[record["id"]] = record
                return httpx.Response(200, json=record)
            return httpx.Response(405, json={"message": "method not allowed"})

        record = store.get(identifier)
        if record is None:
            return httpx.Response(404, json={"message": f"{collection[:-1].capitalize()} not found"})
        if method == "GET":
            return httpx.Response(200, json=record)
        if method in ("PUT", "PATCH"):
            record.update({k: v for k, v in payload.items() if k != "id"})
            record["updatedAt"] = "2024-05-02T10:00:00.000Z"
            return httpx.Response(200, json=record)
        if method == "DELETE":
            return httpx.Response(200, json=store.pop(identifier))
        return httpx.Response(405, json={"message": "method not allowed"})

    def _list(self, collection: str, store: dict, params: httpx.QueryParams) -> httpx.Response:
        records = sorted(store.values(), key=lambda r: int(r["id"]))
        if params.get("active") is not None:
            active = params["active"] == "true"
            records = [r for r in records if r.get("active") == active]
        if params.get("workflowId"):
            records = [r for r in records if r.get("workflowId") == params["workflowId"]]
        if params.get("status"):
            records = [r for r in records if r.get("status") == params["status"]]

        limit = int(params.get("limit", 100))
        offset = int(params["cursor"].removeprefix("page:")) if params.get("cursor") else 0
        page = records[offset:offset + limit]
        next_offset = offset + limit
        next_cursor = f"page:{next_offset}" if next_offset < len(records) else None
        return httpx.Response(200, json={"data": page, "nextCursor": next_cursor})

    def webhook(self, request: httpx.Request) -> httpx.Response:
        self.webhook_requests.append(request)
        response = self.webhooks.get((request.method, str(request.url)))
        if response is None:
            return httpx.Response(
                404, json={"code": 404, "message": "The requested webhook is not registered."}
            )
        return httpx.Response(200, json=response)


class FakeStream:
    """Async line stream standing in for the wrapped stdin/stdout files."""

    def __init__(self, lines: list[str] | None = None):
        self._lines = [line if line.endswith("\n") else line + "\n" for line in lines or []]
        self.written: list[str] = []
        self.flushes = 0

    @classmethod
    def of_messages(cls, *messages: dict) -> "FakeStream":
        return cls([json.dumps(message) for message in messages])

    async def readline(self) -> str:
        return self._lines.pop(0) if self._lines else ""

    async def write(self, data: str) -> None:
        self.written.append(data)

    async def flush(self) -> None:
        self.flushes += 1

    def frames(self) -> list[dict]:
        return [json.loads(frame) for frame in self.written]


def make_settings(tmp_path: Path | None = None, **overrides) -> Settings:
    """Build settings without reading the process environment's .env file."""
    values = {
        "N8N_API_URL": N8N_URL,
        "N8N_API_KEY": API_KEY,
        "APP_ENV": "test",
        **overrides,
    }
    if tmp_path is not None:
        values.setdefault("LOG_DIR", tmp_path / "logs")
    return Settings(_env_file=None, **values)


def make_client(fake: FakeN8n, sleep=None, **kwargs) -> N8nApiClient:
    kwargs.setdefault("cache", ResponseCache())
    return N8nApiClient(
        BASE_URL,
        API_KEY,
        transport=httpx.MockTransport(fake),
        webhook_transport=httpx.MockTransport(fake.webhook),
        sleep=sleep or AsyncMock(),
        **kwargs,
    )


@pytest.fixture
def fake_n8n() -> FakeN8n:
    return FakeN8n()


@pytest.fixture
def sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def client(fake_n8n, sleep) -> N8nApiClient:
    return make_client(fake_n8n, sleep)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)
