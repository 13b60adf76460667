"""Async HTTP client for the n8n public REST API."""

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, TypeVar
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from n8n_manager.config import Settings

from .cache import ResponseCache
from .exceptions import (
    InvalidResponseError,
    N8nApiError,
    N8nConnectionError,
    N8nRequestError,
    N8nTimeoutError,
    N8nTransportError,
)
from .schemas import (
    Credential,
    Execution,
    ExecutionListParams,
    HealthCheckResponse,
    PageParams,
    PaginatedPage,
    Tag,
    WebhookRequest,
    Workflow,
    WorkflowListParams,
)

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_MAX_CONCURRENT_REQUESTS = 10
DEFAULT_UPDATE_METHODS = ("PUT", "PATCH")
DEFAULT_METHOD_FALLBACK_STATUSES = frozenset({405})
WEBHOOK_WAIT_TIMEOUT_SECONDS = 60.0
WEBHOOK_NO_WAIT_TIMEOUT_SECONDS = 5.0
MAX_PAGE_SIZE = 100

# Fields n8n treats as read-only when a workflow is created
CREATE_READ_ONLY_FIELDS = {"id", "active", "tags", "createdAt", "updatedAt", "versionId"}


@dataclass(frozen=True)
class RequestOutcome:
    """Result of one logical request: either ``data`` or ``error``.

    Attributes:
        data: Decoded response body on success.
        error: Failure after retries, if any.
        attempts: Number of HTTP attempts made.
    """

    data: Any = None
    error: N8nRequestError | None = None
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status_code(self) -> int | None:
        return self.error.status_code if self.error is not None else None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.data


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class N8nApiClient:
    """Client for one n8n instance.

    Every authenticated call goes through a retry loop: transient failures
    (HTTP 429/503/504 or no response) are resent up to ``max_retries`` times,
    waiting ``2**attempt`` seconds before retry ``attempt``. Workflow and tag
    updates fall back from the primary to the secondary update verb once when
    the instance answers with one of ``method_fallback_statuses``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        max_concurrent_requests: int = DEFAULT_MAX_CONCURRENT_REQUESTS,
        update_methods: tuple[str, str] = DEFAULT_UPDATE_METHODS,
        method_fallback_statuses: frozenset[int] = DEFAULT_METHOD_FALLBACK_STATUSES,
        cache: ResponseCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        webhook_transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.update_methods = update_methods
        self.method_fallback_statuses = method_fallback_statuses
        self.cache = cache if cache is not None else ResponseCache(enabled=False)
        self._sleep = sleep
        self._semaphore = asyncio.Semaphore(max_concurrent_requests)
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "X-N8N-API-KEY": api_key,
                "Accept": "application/json",
            },
            timeout=timeout,
            limits=httpx.Limits(
                max_connections=max_concurrent_requests,
                max_keepalive_connections=max_concurrent_requests,
            ),
            transport=transport,
        )
        # webhooks are plain URLs on the instance, called without the API key
        self._webhook_http = httpx.AsyncClient(transport=webhook_transport)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "N8nApiClient":
        """Build a client from application settings."""
        cache = ResponseCache(
            ttl_seconds=settings.CACHE_TTL_SECONDS,
            enabled=settings.CACHE_ENABLED,
        )
        return cls(
            settings.api_base_url,
            settings.N8N_API_KEY,
            timeout=settings.REQUEST_TIMEOUT_SECONDS,
            max_retries=settings.MAX_RETRIES,
            max_concurrent_requests=settings.MAX_CONCURRENT_REQUESTS,
            update_methods=settings.update_methods,
            method_fallback_statuses=settings.method_fallback_statuses,
            cache=cache,
            **kwargs,
        )

    async def aclose(self) -> None:
        await self._http.aclose()
        await self._webhook_http.aclose()

    async def __aenter__(self) -> "N8nApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # Request pipeline

    @staticmethod
    def backoff_delay(attempt: int) -> float:
        """Seconds to wait before retry number ``attempt`` (0-based)."""
        return float(2**attempt)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> RequestOutcome:
        """Issue a single HTTP attempt and capture the outcome."""
        url = f"{self.base_url}{path}"
        logger.debug("api_request", method=method, path=path, params=params)

        async with self._semaphore:
            try:
                response = await self._http.request(method, path, params=params, json=json)
            except httpx.TimeoutException:
                return RequestOutcome(error=N8nTimeoutError(method, url, self.timeout))
            except httpx.ConnectError as exc:
                return RequestOutcome(error=N8nConnectionError(method, url, str(exc) or "Connection failed"))
            except httpx.RequestError as exc:
                return RequestOutcome(error=N8nTransportError(method, url, str(exc) or type(exc).__name__))

        logger.debug("api_response", method=method, path=path, status_code=response.status_code)

        if not response.is_success:
            return RequestOutcome(
                error=N8nApiError(
                    method,
                    url,
                    response.status_code,
                    reason=response.reason_phrase,
                    payload=_decode_body(response),
                )
            )

        data = _decode_body(response)
        if isinstance(data, str):
            return RequestOutcome(error=InvalidResponseError(method, url, "response body is not JSON"))
        return RequestOutcome(data=data)

    async def _execute(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> RequestOutcome:
        """Send a request, retrying transient failures with exponential backoff.

        The same request is resent after each delay. A non-transient failure
        or an exhausted retry budget ends the loop with that failure.
        """
        attempt = 0
        while True:
            outcome = await self._send(method, path, params=params, json=json)
            if outcome.ok or not outcome.error.is_transient or attempt >= self.max_retries:
                return replace(outcome, attempts=attempt + 1)

            delay = self.backoff_delay(attempt)
            logger.warning(
                "retrying_request",
                method=method,
                path=path,
                retry=attempt + 1,
                max_retries=self.max_retries,
                delay_seconds=delay,
                status_code=outcome.status_code,
            )
            await self._sleep(delay)
            attempt += 1

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        outcome = await self._execute(method, path, params=params, json=json)
        return outcome.unwrap()

    async def _update_with_fallback(self, path: str, body: Any) -> Any:
        """Update via the primary verb, retrying once with the secondary verb."""
        primary, secondary = self.update_methods
        outcome = await self._execute(primary, path, json=body)
        if not outcome.ok and outcome.status_code in self.method_fallback_statuses:
            logger.info(
                "update_method_fallback",
                path=path,
                rejected_method=primary,
                fallback_method=secondary,
                status_code=outcome.status_code,
            )
            outcome = await self._execute(secondary, path, json=body)
        return outcome.unwrap()

    # Parsing

    def _parse_record(self, model: type[M], data: Any, method: str, path: str) -> M:
        url = f"{self.base_url}{path}"
        try:
            record = model.model_validate(data)
        except ValidationError as exc:
            raise InvalidResponseError(method, url, f"invalid {model.__name__}: {exc.error_count()} error(s)")
        if getattr(record, "id", None) in (None, ""):
            raise InvalidResponseError(method, url, f"{model.__name__} without an id")
        return record

    def _parse_page(self, model: type[M], data: Any, method: str, path: str) -> PaginatedPage[M]:
        url = f"{self.base_url}{path}"
        try:
            page = PaginatedPage[model].model_validate(data)  # type: ignore[valid-type]
        except ValidationError as exc:
            raise InvalidResponseError(method, url, f"invalid {model.__name__} page: {exc.error_count()} error(s)")
        if any(getattr(record, "id", None) in (None, "") for record in page.data):
            raise InvalidResponseError(method, url, f"{model.__name__} without an id")
        return page

    @staticmethod
    def _body(record: BaseModel | dict[str, Any], exclude: set[str] | None = None) -> dict[str, Any]:
        if isinstance(record, BaseModel):
            return record.model_dump(mode="json", exclude_none=True, exclude=exclude)
        body = dict(record)
        for field in exclude or ():
            body.pop(field, None)
        return body

    @staticmethod
    def _path(collection: str, identifier: str | None = None) -> str:
        if identifier is None:
            return f"/{collection}"
        return f"/{collection}/{quote(str(identifier), safe='')}"

    # Health

    async def health_check(self) -> HealthCheckResponse:
        """Check the instance with a one-record listing. Never raises."""
        try:
            await self._request("GET", self._path("workflows"), params={"limit": 1})
        except N8nRequestError as exc:
            logger.warning("health_check_failed", error=exc.message)
            return HealthCheckResponse(
                status="error",
                timestamp=datetime.now(timezone.utc).isoformat(),
                error=exc.message,
            )
        return HealthCheckResponse(status="ok", timestamp=datetime.now(timezone.utc).isoformat())

    # Workflows

    async def create_workflow(self, workflow: Workflow | dict[str, Any]) -> Workflow:
        path = self._path("workflows")
        try:
            data = await self._request("POST", path, json=self._body(workflow, CREATE_READ_ONLY_FIELDS))
        finally:
            self.cache.invalidate("workflows")
        return self._parse_record(Workflow, data, "POST", path)

    async def get_workflow(self, workflow_id: str) -> Workflow:
        key = ("workflows", "get", workflow_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached  # type: ignore[return-value]
        generation = self.cache.generation(key[0])
        path = self._path("workflows", workflow_id)
        data = await self._request("GET", path)
        return self.cache.set(key, self._parse_record(Workflow, data, "GET", path), generation)

    async def update_workflow(self, workflow_id: str, workflow: Workflow | dict[str, Any]) -> Workflow:
        path = self._path("workflows", workflow_id)
        try:
            data = await self._update_with_fallback(path, self._body(workflow))
        finally:
            self.cache.invalidate("workflows")
        return self._parse_record(Workflow, data, self.update_methods[0], path)

    async def delete_workflow(self, workflow_id: str) -> None:
        try:
            await self._request("DELETE", self._path("workflows", workflow_id))
        finally:
            self.cache.invalidate("workflows")

    async def list_workflows(self, params: WorkflowListParams | None = None) -> PaginatedPage[Workflow]:
        query = (params or WorkflowListParams()).to_query()
        key = ("workflows", "list", tuple(sorted(query.items())))
        cached = self.cache.get(key)
        if cached is not None:
            return cached  # type: ignore[return-value]
        generation = self.cache.generation(key[0])
        path = self._path("workflows")
        data = await self._request("GET", path, params=query)
        return self.cache.set(key, self._parse_page(Workflow, data, "GET", path), generation)

    async def activate_workflow(self, workflow_id: str) -> Workflow:
        return await self._set_active(workflow_id, True)

    async def deactivate_workflow(self, workflow_id: str) -> Workflow:
        return await self._set_active(workflow_id, False)

    async def _set_active(self, workflow_id: str, active: bool) -> Workflow:
        """Flip a workflow's active flag through a three-stage fallback chain.

        1. primary verb with ``{"active": ...}`` only;
        2. on a 400 or fallback status: fetch the full workflow, set the flag,
           and send it with the primary verb;
        3. if stage 2 fails in any way: secondary verb with the minimal body.

        Each stage runs at most once and the first success wins.
        """
        primary, secondary = self.update_methods
        path = self._path("workflows", workflow_id)
        minimal = {"active": active}
        stage_two_statuses = self.method_fallback_statuses | {400}

        try:
            outcome = await self._execute(primary, path, json=minimal)
            if not outcome.ok and outcome.status_code in stage_two_statuses:
                logger.info("activation_fallback", workflow_id=workflow_id, stage="full_resource",
                            status_code=outcome.status_code)
                outcome = await self._send_full_workflow(workflow_id, active)
                if not outcome.ok:
                    logger.info("activation_fallback", workflow_id=workflow_id, stage="secondary_method",
                                status_code=outcome.status_code)
                    outcome = await self._execute(secondary, path, json=minimal)
        finally:
            self.cache.invalidate("workflows")

        return self._parse_record(Workflow, outcome.unwrap(), primary, path)

    async def _send_full_workflow(self, workflow_id: str, active: bool) -> RequestOutcome:
        path = self._path("workflows", workflow_id)
        fetched = await self._execute("GET", path)
        if not fetched.ok:
            return fetched
        try:
            workflow = self._parse_record(Workflow, fetched.data, "GET", path)
        except InvalidResponseError as exc:
            return RequestOutcome(error=exc)
        workflow.active = active
        return await self._execute(self.update_methods[0], path, json=self._body(workflow))

    async def export_workflow(self, workflow_id: str) -> Workflow:
        """Fetch a workflow for export, bypassing the cache and leaving out credentials."""
        path = self._path("workflows", workflow_id)
        data = await self._request("GET", path, params={"excludePinnedData": False})
        workflow = self._parse_record(Workflow, data, "GET", path)
        for node in workflow.nodes:
            node.credentials = None
        return workflow

    async def export_all_workflows(self) -> list[Workflow]:
        """Export every workflow, following ``nextCursor`` until it is absent."""
        exported: list[Workflow] = []
        cursor: str | None = None
        while True:
            page = await self.list_workflows(WorkflowListParams(limit=MAX_PAGE_SIZE, cursor=cursor))
            for workflow in page.data:
                exported.append(await self.export_workflow(workflow.id))
            cursor = page.nextCursor
            if not cursor:
                return exported

    async def import_workflow(self, workflow: Workflow | dict[str, Any]) -> Workflow:
        """Create a new workflow from an exported record."""
        return await self.create_workflow(workflow)

    # Executions

    async def get_execution(self, execution_id: str, include_data: bool = False) -> Execution:
        path = self._path("executions", execution_id)
        data = await self._request("GET", path, params={"includeData": include_data})
        return self._parse_record(Execution, data, "GET", path)

    async def list_executions(self, params: ExecutionListParams | None = None) -> PaginatedPage[Execution]:
        path = self._path("executions")
        data = await self._request("GET", path, params=(params or ExecutionListParams()).to_query())
        return self._parse_page(Execution, data, "GET", path)

    async def delete_execution(self, execution_id: str) -> None:
        await self._request("DELETE", self._path("executions", execution_id))

    async def trigger_webhook(self, request: WebhookRequest) -> Any:
        """Call a webhook URL directly: one attempt, no API key, no retries.

        Raises:
            N8nApiError: On a non-2xx response.
            N8nTimeoutError: If no response arrives within 60s (5s when
                ``waitForResponse`` is false).
            N8nConnectionError: If the host cannot be reached.
        """
        method = request.httpMethod
        url = request.webhookUrl
        timeout = WEBHOOK_WAIT_TIMEOUT_SECONDS if request.waitForResponse else WEBHOOK_NO_WAIT_TIMEOUT_SECONDS
        headers = {**(request.headers or {}), "Content-Type": "application/json"}

        logger.info("webhook_trigger", method=method, url=url, wait_for_response=request.waitForResponse)
        try:
            response = await self._webhook_http.request(
                method, url, json=request.data, headers=headers, timeout=timeout
            )
        except httpx.TimeoutException:
            raise N8nTimeoutError(method, url, timeout)
        except httpx.ConnectError as exc:
            raise N8nConnectionError(method, url, str(exc) or "Connection failed")
        except httpx.RequestError as exc:
            raise N8nTransportError(method, url, str(exc) or type(exc).__name__)

        if not response.is_success:
            raise N8nApiError(
                method,
                url,
                response.status_code,
                reason=response.reason_phrase,
                payload=_decode_body(response),
            )
        return _decode_body(response)

    # Credentials

    async def create_credential(self, credential: Credential | dict[str, Any]) -> Credential:
        path = self._path("credentials")
        try:
            data = await self._request("POST", path, json=self._body(credential, {"id"}))
        finally:
            self.cache.invalidate("credentials")
        return self._parse_record(Credential, data, "POST", path)

    async def get_credential(self, credential_id: str) -> Credential:
        key = ("credentials", "get", credential_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached  # type: ignore[return-value]
        generation = self.cache.generation(key[0])
        path = self._path("credentials", credential_id)
        data = await self._request("GET", path)
        return self.cache.set(key, self._parse_record(Credential, data, "GET", path), generation)

    async def update_credential(self, credential_id: str, credential: Credential | dict[str, Any]) -> Credential:
        path = self._path("credentials", credential_id)
        try:
            data = await self._request("PATCH", path, json=self._body(credential, {"id"}))
        finally:
            self.cache.invalidate("credentials")
        return self._parse_record(Credential, data, "PATCH", path)

    async def delete_credential(self, credential_id: str) -> None:
        try:
            await self._request("DELETE", self._path("credentials", credential_id))
        finally:
            self.cache.invalidate("credentials")

    async def list_credentials(self, params: PageParams | None = None) -> PaginatedPage[Credential]:
        query = (params or PageParams()).to_query()
        key = ("credentials", "list", tuple(sorted(query.items())))
        cached = self.cache.get(key)
        if cached is not None:
            return cached  # type: ignore[return-value]
        generation = self.cache.generation(key[0])
        path = self._path("credentials")
        data = await self._request("GET", path, params=query)
        return self.cache.set(key, self._parse_page(Credential, data, "GET", path), generation)

    # Tags

    async def create_tag(self, name: str) -> Tag:
        path = self._path("tags")
        try:
            data = await self._request("POST", path, json={"name": name})
        finally:
            self.cache.invalidate("tags", "workflows")
        return self._parse_record(Tag, data, "POST", path)

    async def update_tag(self, tag_id: str, name: str) -> Tag:
        path = self._path("tags", tag_id)
        try:
            data = await self._update_with_fallback(path, {"name": name})
        finally:
            self.cache.invalidate("tags", "workflows")
        return self._parse_record(Tag, data, self.update_methods[0], path)

    async def delete_tag(self, tag_id: str) -> None:
        try:
            await self._request("DELETE", self._path("tags", tag_id))
        finally:
            self.cache.invalidate("tags", "workflows")

    async def list_tags(self, params: PageParams | None = None) -> PaginatedPage[Tag]:
        query = (params or PageParams()).to_query()
        query.pop("type", None)
        key = ("tags", "list", tuple(sorted(query.items())))
        cached = self.cache.get(key)
        if cached is not None:
            return cached  # type: ignore[return-value]
        generation = self.cache.generation(key[0])
        path = self._path("tags")
        data = await self._request("GET", path, params=query)
        return self.cache.set(key, self._parse_page(Tag, data, "GET", path), generation)
