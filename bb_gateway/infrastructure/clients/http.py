"""Shared outbound HTTP plumbing: client construction, pre/post hooks, error mapping"""

import inspect
import logging
import ssl
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

import httpx

from bb_gateway.domain.exceptions import (
    MalformedResponseError,
    ServiceUnavailableError,
    UpstreamRejectedError,
)
from bb_gateway.infrastructure.observability.metrics import (
    record_upstream_failure,
    upstream_latency_histogram,
)

logger = logging.getLogger(__name__)

RequestHook = Callable[[httpx.Request], Any]
ResponseHook = Callable[[httpx.Response], Any]

_STARTED_AT = "bb_gateway.started_at"


@dataclass
class RequestHooks:
    """Pre/post callbacks run around every outbound request (sync or async)"""

    on_request: List[RequestHook] = field(default_factory=list)
    on_response: List[ResponseHook] = field(default_factory=list)

    def event_hooks(self) -> Dict[str, List[Callable]]:
        return {
            "request": [_as_async(hook) for hook in self.on_request],
            "response": [_as_async(hook) for hook in self.on_response],
        }


def _as_async(hook: Callable) -> Callable:
    async def run(message):
        result = hook(message)
        if inspect.isawaitable(result):
            await result

    return run


def timing_hooks(target: str) -> RequestHooks:
    """Hooks recording upstream latency per target"""

    def start(request: httpx.Request) -> None:
        request.extensions[_STARTED_AT] = time.perf_counter()

    def stop(response: httpx.Response) -> None:
        started_at = response.request.extensions.get(_STARTED_AT)
        if started_at is None:
            return
        upstream_latency_histogram.labels(target=target, status=response.status_code).observe(
            time.perf_counter() - started_at
        )

    return RequestHooks(on_request=[start], on_response=[stop])


def merge_hooks(*hooks: Optional[RequestHooks]) -> RequestHooks:
    merged = RequestHooks()
    for item in hooks:
        if item is None:
            continue
        merged.on_request.extend(item.on_request)
        merged.on_response.extend(item.on_response)
    return merged


def build_client(
    base_url: str,
    timeout: float,
    ssl_context: Optional[ssl.SSLContext] = None,
    hooks: Optional[RequestHooks] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Build an AsyncClient for one call.

    With an ssl_context the client presents the mTLS identity; without one it
    falls back to default verification and no client certificate.
    """
    options: Dict[str, Any] = {
        "base_url": base_url.rstrip("/"),
        "timeout": timeout,
        "verify": ssl_context if ssl_context is not None else True,
        "event_hooks": (hooks or RequestHooks()).event_hooks(),
    }
    if transport is not None:
        options["transport"] = transport
    return httpx.AsyncClient(**options)


def response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def raise_for_upstream(response: httpx.Response) -> None:
    """Raise UpstreamRejectedError for non-2xx responses, keeping status and body"""
    if response.is_success:
        return
    raise UpstreamRejectedError(response.status_code, response_body(response))


@asynccontextmanager
async def translate_errors(target: str, timeout: float) -> AsyncIterator[None]:
    """Map httpx failures onto the BankAPIError taxonomy. Nothing is retried."""
    try:
        yield
    except httpx.TimeoutException as e:
        record_upstream_failure(ServiceUnavailableError.kind)
        logger.error("Upstream timeout", extra={"target": target, "timeout_seconds": timeout})
        raise ServiceUnavailableError(f"{target} timeout after {timeout}s") from e
    except httpx.RequestError as e:
        record_upstream_failure(ServiceUnavailableError.kind)
        logger.error("Upstream unreachable", extra={"target": target, "error": str(e)})
        raise ServiceUnavailableError(f"{target} unavailable: {e}") from e
    except UpstreamRejectedError as e:
        record_upstream_failure(e.kind)
        logger.error(
            "Upstream rejected request",
            extra={"target": target, "status_code": e.status_code, "body": e.body},
        )
        raise
    except MalformedResponseError as e:
        record_upstream_failure(e.kind)
        logger.error("Malformed upstream payload", extra={"target": target, "error": str(e)})
        raise
