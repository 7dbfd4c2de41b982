"""Fakes shared by the unit tests: a controllable clock and a scripted transport."""

from __future__ import annotations

import asyncio
from collections import defaultdict, deque
from typing import Any, Mapping

from github_client.cache import RequestDescriptor
from github_client.clients.requests_transport import ApiResponse

START = 1_700_000_000.0


class FakeClock:
    """Clock whose sleeps advance time instantly and are recorded."""

    def __init__(self, start: float = START) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        await asyncio.sleep(0)
        self.now += max(seconds, 0.0)


def json_response(
    payload: Any,
    *,
    status: int = 200,
    headers: Mapping[str, str] | None = None,
    reason: str = "",
) -> ApiResponse:
    return ApiResponse(status=status, headers=dict(headers or {}), payload=payload, reason=reason)


class FakeTransport:
    """
    Returns scripted responses per path.

    Each path holds a queue of responses or exceptions; the last one repeats
    once the queue is down to a single entry.
    """

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.clock = clock
        self.routes: dict[str, deque[Any]] = defaultdict(deque)
        self.calls: list[tuple[str, dict[str, str], float | None]] = []
        self.descriptors: list[RequestDescriptor] = []

    def add(self, path: str, *results: Any) -> None:
        self.routes[path].extend(results)

    def calls_for(self, path: str) -> int:
        return sum(1 for called, _, _ in self.calls if called == path)

    async def send(
        self,
        descriptor: RequestDescriptor,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> ApiResponse:
        self.descriptors.append(descriptor)
        self.calls.append(
            (descriptor.path, dict(headers or {}), self.clock() if self.clock else None)
        )
        await asyncio.sleep(0)
        queue = self.routes.get(descriptor.path)
        if not queue:
            return json_response({"message": "Not Found"}, status=404, reason="Not Found")
        result = queue.popleft() if len(queue) > 1 else queue[0]
        if isinstance(result, BaseException):
            raise result
        return result


def paged(prefix: str, count: int, page_size: int = 100) -> list[dict[str, Any]]:
    """Split ``count`` numbered items into pages of ``page_size``."""

    items = [{"id": index, "name": f"{prefix}-{index}"} for index in range(count)]
    pages = [items[start : start + page_size] for start in range(0, count, page_size)]
    if count % page_size == 0:
        pages.append([])
    return pages
