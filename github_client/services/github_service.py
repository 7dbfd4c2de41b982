"""
Typed accessors for GitHub resources built on top of the request pipeline.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import quote, urlencode

from github_client.cache import PersistedCollectionCache, RequestDescriptor
from github_client.context import RATE_LIMIT_PATH, ClientContext
from github_client.models import (
    Commit,
    Contributor,
    Project,
    RateLimitStatus,
    Repository,
    SimpleUser,
    User,
)
from github_client.pagination import MAX_PAGE_SIZE, fetch_all_pages
from github_client.rate_limit import QuotaState

logger = logging.getLogger(__name__)

PERSISTED_KINDS = ("followers", "following")
PROJECTS_PREVIEW_ACCEPT = "application/vnd.github.inertia-preview+json"


def _with_query(path: str, params: Mapping[str, Any]) -> str:
    query = urlencode({key: value for key, value in params.items() if value is not None})
    if not query:
        return path
    separator = "&" if "?" in path else "?"
    return f"{path}{separator}{query}"


def _segment(value: str) -> str:
    return quote(value.strip(), safe="")


@dataclass(slots=True)
class GitHubService:
    """High level accessors consumed by presentation code."""

    context: ClientContext
    persisted_cache: PersistedCollectionCache | None = None

    @property
    def quota(self) -> QuotaState:
        return self.context.quota_state

    def set_credential(self, value: str) -> Any:
        return self.context.credentials.set_credential(value)

    def clear_credential(self) -> None:
        self.context.credentials.clear_credential()

    async def get_resource(
        self,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        descriptor = RequestDescriptor.create(path, headers=headers)
        return await self.context.fetch(descriptor, timeout=timeout)

    async def get_collection(
        self,
        path: str,
        *,
        page_size: int = MAX_PAGE_SIZE,
        sort: str | None = None,
        limit: int = 0,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> list[Any]:
        """Materialize every page of ``path`` (or the first ``limit`` items)."""

        async def fetch_page(page_path: str) -> Any:
            return await self.get_resource(page_path, headers=headers, timeout=timeout)

        def path_builder(page: int) -> str:
            return _with_query(path, {"per_page": page_size, "sort": sort, "page": page})

        return await fetch_all_pages(fetch_page, path_builder, page_size, limit)

    async def get_limited_collection(
        self,
        owner: str,
        kind: str,
        limit: int,
        *,
        force: bool = False,
        timeout: float | None = None,
    ) -> list[Any]:
        """
        Fetch up to ``limit`` entries of ``/users/{owner}/{kind}``.

        Followers and following are served from the persisted cache while it
        is fresh, unless ``force`` is set.
        """
        persisted = self.persisted_cache if kind in PERSISTED_KINDS else None
        if persisted is not None and not force:
            cached = await asyncio.to_thread(persisted.get, kind, owner, limit)
            if cached is not None:
                logger.debug("Serving %s of %s from persisted cache", kind, owner)
                return cached

        items = await self.get_collection(
            f"/users/{_segment(owner)}/{kind}",
            page_size=min(limit, MAX_PAGE_SIZE) if limit > 0 else MAX_PAGE_SIZE,
            limit=limit,
            timeout=timeout,
        )
        if persisted is not None:
            await asyncio.to_thread(persisted.put, kind, owner, limit, items)
        return items

    async def get_user(self, username: str) -> User:
        payload = await self.get_resource(f"/users/{_segment(username)}")
        return User.from_api(payload)

    async def get_repos(self, username: str) -> list[Repository]:
        payload = await self.get_collection(f"/users/{_segment(username)}/repos", sort="pushed")
        return Repository.list_from_api(payload)

    async def get_projects(self, username: str) -> list[Project]:
        payload = await self.get_resource(
            f"/users/{_segment(username)}/projects",
            headers={"Accept": PROJECTS_PREVIEW_ACCEPT},
        )
        return Project.list_from_api(payload)

    async def get_commits(self, full_name: str, *, per_page: int = 5) -> list[Commit]:
        payload = await self.get_resource(
            _with_query(f"/repos/{full_name.strip('/')}/commits", {"per_page": per_page})
        )
        return Commit.list_from_api(payload)

    async def get_contributors(self, full_name: str) -> list[Contributor]:
        payload = await self.get_resource(f"/repos/{full_name.strip('/')}/contributors")
        return Contributor.list_from_api(payload)

    async def get_followers(
        self, username: str, *, limit: int = 100, force: bool = False
    ) -> list[SimpleUser]:
        payload = await self.get_limited_collection(username, "followers", limit, force=force)
        return SimpleUser.list_from_api(payload)

    async def get_following(
        self, username: str, *, limit: int = 100, force: bool = False
    ) -> list[SimpleUser]:
        payload = await self.get_limited_collection(username, "following", limit, force=force)
        return SimpleUser.list_from_api(payload)

    async def get_rate_limit(self) -> RateLimitStatus:
        payload = await self.context.controller.run(RequestDescriptor.create(RATE_LIMIT_PATH))
        status = RateLimitStatus.from_api(payload)
        if status.core is not None:
            self.context.quota.apply_response_signals(
                status.core.remaining, status.core.reset, limit=status.core.limit
            )
        return status
