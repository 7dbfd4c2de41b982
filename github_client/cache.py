"""
Request deduplication and the disk-backed collection cache.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping

logger = logging.getLogger(__name__)

PERSISTED_TTL_SECONDS = 15 * 60


@dataclass(slots=True, frozen=True)
class RequestDescriptor:
    """Normalized identity of one request, used as the dedup key."""

    path: str
    method: str = "GET"
    headers: tuple[tuple[str, str], ...] = ()
    body: str | None = None

    @classmethod
    def create(
        cls,
        path: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: str | None = None,
    ) -> "RequestDescriptor":
        normalized = tuple(sorted((str(k).lower(), str(v)) for k, v in (headers or {}).items()))
        return cls(path=path, method=method.upper(), headers=normalized, body=body)

    @property
    def cache_key(self) -> str:
        return json.dumps(
            {
                "path": self.path,
                "method": self.method,
                "headers": [list(pair) for pair in self.headers],
                "body": self.body,
            },
            sort_keys=True,
        )

    def header_dict(self) -> dict[str, str]:
        return dict(self.headers)


class DedupCache:
    """
    Collapses concurrent identical requests into one shared task.

    Successful results stay cached until :meth:`clear`. A failed task removes
    its own entry before the failure reaches any awaiting caller, so the next
    request for the same descriptor starts a fresh attempt.
    """

    def __init__(self) -> None:
        self._entries: dict[str, asyncio.Task[Any]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, descriptor: object) -> bool:
        return isinstance(descriptor, RequestDescriptor) and descriptor.cache_key in self._entries

    def get_or_create(
        self,
        descriptor: RequestDescriptor,
        producer: Callable[[], Awaitable[Any]],
    ) -> asyncio.Task[Any]:
        key = descriptor.cache_key
        existing = self._entries.get(key)
        if existing is not None:
            logger.debug("Dedup cache hit for %s %s", descriptor.method, descriptor.path)
            return existing

        task = asyncio.ensure_future(self._guard(key, producer))
        self._entries[key] = task
        return task

    async def _guard(self, key: str, producer: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await producer()
        except BaseException:
            if self._entries.get(key) is asyncio.current_task():
                del self._entries[key]
            raise

    def holds(self, descriptor: RequestDescriptor, task: asyncio.Task[Any] | None) -> bool:
        return task is not None and self._entries.get(descriptor.cache_key) is task

    def invalidate(self, descriptor: RequestDescriptor) -> None:
        self._entries.pop(descriptor.cache_key, None)

    def clear(self) -> None:
        self._entries.clear()


class CorruptEntry(Exception):
    def __init__(self, entry_path: Path) -> None:
        super().__init__(f"Corrupt cache entry at {entry_path}")
        self.entry_path = entry_path


@dataclass(slots=True)
class PersistedCollectionCache:
    """
    JSON files holding materialized collections, keyed by kind, owner and limit.

    Entries older than ``ttl`` seconds are treated as missing.
    """

    directory: Path
    ttl: float = PERSISTED_TTL_SECONDS
    clock: Callable[[], float] = field(default=time.time)

    def _get_path(self, kind: str, owner: str, limit: int) -> Path:
        identity = json.dumps([kind, owner.lower(), int(limit)])
        hashed = hashlib.sha256(identity.encode("utf-8")).hexdigest()
        return self.directory / kind / f"{hashed}.json"

    def _load_entry(self, path: Path) -> dict[str, Any]:
        try:
            with path.open("r", encoding="utf-8") as fp:
                entry = json.load(fp)
        except json.JSONDecodeError as exc:
            raise CorruptEntry(path) from exc

        if not isinstance(entry, Mapping) or not isinstance(entry.get("items"), list):
            raise CorruptEntry(path)
        if not isinstance(entry.get("timestamp"), (int, float)):
            raise CorruptEntry(path)
        return dict(entry)

    def get(self, kind: str, owner: str, limit: int) -> list[Any] | None:
        path = self._get_path(kind, owner, limit)
        if not path.exists():
            return None

        try:
            entry = self._load_entry(path)
        except CorruptEntry as exc:
            logger.warning("Discarding %s", exc)
            path.unlink(missing_ok=True)
            return None

        if self.clock() - entry["timestamp"] >= self.ttl:
            logger.debug("Persisted %s for %s expired", kind, owner)
            return None
        return entry["items"]

    def put(self, kind: str, owner: str, limit: int, items: list[Any]) -> None:
        path = self._get_path(kind, owner, limit)
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_suffix(".tmp")
        with temp_path.open("w", encoding="utf-8") as fp:
            json.dump({"items": items, "timestamp": self.clock()}, fp)
        temp_path.replace(path)

    def delete(self, kind: str, owner: str, limit: int) -> None:
        self._get_path(kind, owner, limit).unlink(missing_ok=True)
