"""
Serialized request queue with adaptive pacing.

Every outbound request passes through one :class:`RequestQueue`. The remote
quota is global, so pacing happens here rather than per resource.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from github_client.rate_limit import QuotaTracker

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(slots=True)
class QueueItem:
    work: Callable[[], Awaitable[Any]]
    future: asyncio.Future[Any]


class RequestQueue:
    """FIFO of pending attempts drained by a single pacing loop."""

    def __init__(self, quota: QuotaTracker, *, sleep: Sleep = asyncio.sleep) -> None:
        self._quota = quota
        self._sleep = sleep
        self._items: deque[QueueItem] = deque()
        self._draining = False
        self._running: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        return len(self._items)

    @property
    def is_draining(self) -> bool:
        return self._draining

    def submit(self, work: Callable[[], Awaitable[Any]]) -> asyncio.Future[Any]:
        """Enqueue one attempt and return the future carrying its outcome."""

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._items.append(QueueItem(work, future))
        if not self._draining:
            self._draining = True
            self._track(asyncio.ensure_future(self._drain()))
        return future

    async def _drain(self) -> None:
        try:
            while self._items:
                while self._quota.is_in_cooldown():
                    wait = self._quota.time_until_cooldown_ends()
                    logger.info(
                        "Access denied %d times, pausing queue for %.1fs (%d pending)",
                        self._quota.state.forbidden_count,
                        wait,
                        len(self._items),
                    )
                    await self._sleep(wait)

                delay = self._quota.next_delay()
                logger.debug("Pacing next request by %.2fs", delay)
                await self._sleep(delay)
                # denials from in-flight attempts may have started a cooldown
                if self._quota.is_in_cooldown():
                    continue

                item = self._items.popleft()
                self._track(asyncio.ensure_future(self._execute(item)))
        finally:
            self._draining = False

    def _track(self, task: asyncio.Task[Any]) -> None:
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    @staticmethod
    async def _execute(item: QueueItem) -> None:
        try:
            result = await item.work()
        except asyncio.CancelledError:
            item.future.cancel()
            raise
        except Exception as exc:
            if not item.future.done():
                item.future.set_exception(exc)
        else:
            if not item.future.done():
                item.future.set_result(result)
