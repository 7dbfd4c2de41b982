"""
Process-wide request pipeline state and the credential lifecycle.

A :class:`ClientContext` owns the quota tracker, the dedup cache, the queue
and the current credential. Applications create one at startup. Tests
create a fresh one per case.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Any, Awaitable, Callable, Mapping

from github_client.backoff import BackoffController, RetryConfig, Transport
from github_client.cache import DedupCache, RequestDescriptor
from github_client.rate_limit import PacingConfig, QuotaState, QuotaTracker
from github_client.request_queue import RequestQueue

logger = logging.getLogger(__name__)

RATE_LIMIT_PATH = "/rate_limit"

_TOKEN_PREFIXES = ("ghp_", "gho_", "ghu_", "ghs_", "ghr_", "github_pat_")
_CLASSIC_TOKEN = re.compile(r"^[0-9a-fA-F]{40}$")


def looks_like_token(value: str) -> bool:
    return value.startswith(_TOKEN_PREFIXES) or bool(_CLASSIC_TOKEN.match(value))


class CredentialManager:
    """
    Holds the opaque access token.

    Accepting a new token purges the dedup cache, resets the quota to the
    authenticated ceiling and probes ``/rate_limit`` in the background.
    """

    def __init__(self, context: "ClientContext", token: str = "") -> None:
        self._context = context
        self._token = token.strip()

    @property
    def token(self) -> str:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token)

    def authorization_header(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    def set_credential(self, value: str) -> asyncio.Task[None] | None:
        token = (value or "").strip()
        if not token:
            logger.warning("Ignoring empty GitHub token")
            return None
        if not looks_like_token(token):
            logger.warning("GitHub token does not look like a known token format; using it anyway")

        self._token = token
        self._context.cache.clear()
        self._context.quota.reset(authenticated=True)
        logger.info("GitHub token updated, cache purged")
        return self._start_probe()

    def clear_credential(self) -> None:
        self._token = ""
        self._context.cache.clear()
        self._context.quota.reset(authenticated=False)
        logger.info("GitHub token cleared, running anonymously")

    def _start_probe(self) -> asyncio.Task[None] | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, skipping rate limit probe")
            return None
        return loop.create_task(self._probe())

    async def _probe(self) -> None:
        descriptor = RequestDescriptor.create(RATE_LIMIT_PATH)
        try:
            payload = await self._context.controller.run(descriptor)
        except Exception as exc:
            logger.warning("Rate limit probe failed: %s", exc)
            return

        core = _core_resource(payload)
        if core is None:
            logger.warning("Rate limit probe returned an unexpected payload")
            return
        self._context.quota.apply_response_signals(
            core.get("remaining"),
            core.get("reset"),
            limit=core.get("limit"),
        )
        logger.info(
            "Rate limit probe: %s/%s remaining",
            core.get("remaining"),
            core.get("limit"),
        )


def _core_resource(payload: Any) -> Mapping[str, Any] | None:
    if not isinstance(payload, Mapping):
        return None
    resources = payload.get("resources")
    core = resources.get("core") if isinstance(resources, Mapping) else payload.get("rate")
    return core if isinstance(core, Mapping) else None


class ClientContext:
    """Owns the pipeline: dedup cache, quota tracker, queue and credential."""

    def __init__(
        self,
        transport: Transport,
        *,
        token: str = "",
        pacing: PacingConfig | None = None,
        retry_config: RetryConfig | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.transport = transport
        self.cache = DedupCache()
        self.quota = QuotaTracker(pacing=pacing or PacingConfig(), clock=clock)
        self.queue = RequestQueue(self.quota, sleep=sleep)
        self.credentials = CredentialManager(self, token)
        if self.credentials.is_authenticated:
            self.quota.reset(authenticated=True)
        self.controller = BackoffController(
            transport,
            self.queue,
            self.quota,
            self.cache,
            retry_config=retry_config,
            auth_headers=self.credentials.authorization_header,
            sleep=sleep,
        )

    @property
    def quota_state(self) -> QuotaState:
        return self.quota.snapshot()

    def request(self, descriptor: RequestDescriptor) -> asyncio.Task[Any]:
        """Shared deferred result for ``descriptor``."""

        return self.cache.get_or_create(descriptor, lambda: self.controller.run(descriptor))

    async def fetch(
        self,
        descriptor: RequestDescriptor,
        *,
        timeout: float | None = None,
    ) -> Any:
        """
        Await the shared result for ``descriptor``.

        Cancelling or timing out this caller leaves the shared task running
        for everyone else awaiting it.
        """
        shared = asyncio.shield(self.request(descriptor))
        if timeout is None:
            return await shared
        return await asyncio.wait_for(shared, timeout)
