"""
Response classification and the retry/backoff state machine.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Protocol

from github_client.cache import DedupCache, RequestDescriptor
from github_client.clients.requests_transport import ApiResponse
from github_client.exceptions import (
    AccessDenied,
    ApiResponseError,
    DenialCause,
    NetworkFailure,
    NotFound,
    QuotaExhausted,
    UnclassifiedHttpFailure,
)
from github_client.rate_limit import QuotaTracker, RateLimitInfo
from github_client.request_queue import RequestQueue

logger = logging.getLogger(__name__)

DENIED_STATUSES = {403, 429}


class Transport(Protocol):
    """Protocol subset consumed by the controller."""

    async def send(
        self,
        descriptor: RequestDescriptor,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> ApiResponse:
        ...


@dataclass(slots=True)
class RetryConfig:
    """Limits for automatic retries."""

    max_retries: int = 5
    forbidden_increment: float = 2.0
    max_delay: float = 60.0
    network_retries: int = 1
    network_retry_delay: float = 2.0

    def denial_delay(self, forbidden_count: int, retry_after: float | None = None) -> float:
        """
        Wait before replaying a denied request.

        The server hint always wins when it asks for longer than the local
        estimate. The local estimate grows with the denial count up to
        ``max_delay``.
        """
        estimate = min(forbidden_count * self.forbidden_increment, self.max_delay)
        return max(retry_after or 0.0, estimate)


def _error_message(response: ApiResponse) -> str:
    payload = response.payload
    if isinstance(payload, Mapping) and payload.get("message"):
        return str(payload["message"])
    return response.reason or "An unknown error occurred"


def _denial_cause(response: ApiResponse, message: str, info: RateLimitInfo) -> DenialCause:
    lowered = message.lower()
    if (
        response.status == 429
        or info.retry_after is not None
        or "secondary rate limit" in lowered
        or "abuse" in lowered
    ):
        return DenialCause.SECONDARY_RATE_LIMIT
    if isinstance(response.payload, Mapping) and response.payload.get("message"):
        return DenialCause.POLICY
    return DenialCause.UNKNOWN


def classify_response(
    descriptor: RequestDescriptor,
    response: ApiResponse,
    info: RateLimitInfo | None = None,
) -> Any:
    """Return the decoded payload of a success or raise the matching domain error."""

    if response.ok:
        return [] if response.payload is None else response.payload

    info = info or RateLimitInfo.from_headers(response.headers)
    message = _error_message(response)
    target = f"{descriptor.method} {descriptor.path}"

    if response.status in DENIED_STATUSES:
        if info.is_exhausted():
            error: ApiResponseError = QuotaExhausted(
                f"{target}: {message}", status=response.status, reset_at=info.reset_at
            )
        else:
            error = AccessDenied(
                f"{target}: {message}",
                status=response.status,
                retry_after=info.retry_after,
                cause=_denial_cause(response, message, info),
            )
        raise error

    if response.status == 404:
        raise NotFound(f"{target}: {message}")

    raise UnclassifiedHttpFailure(
        f"{target} returned HTTP {response.status}: {message}", status=response.status
    )


class BackoffController:
    """
    Runs one descriptor through the queue until it succeeds or gives up.

    Quota exhaustion and access denials are replayed at the tail of the
    queue up to ``RetryConfig.max_retries`` times. Network failures are
    retried ``network_retries`` times after a fixed delay. Everything else
    surfaces on the first occurrence.
    """

    def __init__(
        self,
        transport: Transport,
        queue: RequestQueue,
        quota: QuotaTracker,
        cache: DedupCache,
        *,
        retry_config: RetryConfig | None = None,
        auth_headers: Callable[[], Mapping[str, str]] = dict,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._queue = queue
        self._quota = quota
        self._cache = cache
        self.retry_config = retry_config or RetryConfig()
        self._auth_headers = auth_headers
        self._sleep = sleep

    async def run(self, descriptor: RequestDescriptor) -> Any:
        config = self.retry_config
        retries = 0
        network_retries = 0

        while True:
            try:
                payload = await self._queue.submit(lambda: self._attempt(descriptor))
            except QuotaExhausted:
                if retries >= config.max_retries:
                    self._release(descriptor)
                    raise
                retries += 1
                logger.info(
                    "Quota exhausted for %s, re-queued (retry %d/%d)",
                    descriptor.path,
                    retries,
                    config.max_retries,
                )
            except AccessDenied as exc:
                count = self._quota.record_forbidden()
                if retries >= config.max_retries:
                    self._release(descriptor)
                    raise
                retries += 1
                delay = config.denial_delay(count, exc.retry_after)
                logger.info(
                    "Access denied for %s (%s), retrying in %.1fs (retry %d/%d)",
                    descriptor.path,
                    exc.cause.value,
                    delay,
                    retries,
                    config.max_retries,
                )
                await self._sleep(delay)
            except NetworkFailure as exc:
                if network_retries >= config.network_retries:
                    self._release(descriptor)
                    raise
                network_retries += 1
                logger.warning(
                    "%s; retrying in %.1fs", exc, config.network_retry_delay
                )
                await self._sleep(config.network_retry_delay)
            except ApiResponseError:
                self._release(descriptor)
                raise
            else:
                self._quota.record_success()
                return payload

    def _release(self, descriptor: RequestDescriptor) -> None:
        """
        Drop the entry for a request that gave up.

        Replays keep the entry, so identical callers arriving during a backoff
        share the replay. Only the task registered under the key may drop it.
        """
        if self._cache.holds(descriptor, asyncio.current_task()):
            self._cache.invalidate(descriptor)

    async def _attempt(self, descriptor: RequestDescriptor) -> Any:
        response = await self._transport.send(descriptor, headers=self._auth_headers())
        info = self._quota.apply_headers(response.headers)
        return classify_response(descriptor, response, info)
