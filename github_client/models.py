"""
Pydantic models for GitHub API responses used by github_client.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict

ModelT = TypeVar("ModelT", bound="GitHubModel")


def _to_mapping(payload: Any) -> Mapping[str, Any]:
    if isinstance(payload, Mapping):
        return payload
    if hasattr(payload, "__dict__"):
        return _to_mapping(vars(payload))
    raise TypeError(f"Cannot convert payload of type {type(payload)!r} to mapping.")


class GitHubModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    @classmethod
    def from_api(cls: type[ModelT], payload: Any) -> ModelT:
        return cls.model_validate(_to_mapping(payload))

    @classmethod
    def list_from_api(cls: type[ModelT], payload: Any) -> list[ModelT]:
        if not payload:
            return []
        return [cls.from_api(item) for item in payload]


class User(GitHubModel):
    """Normalized representation of a user profile."""

    login: str
    id: int
    avatar_url: str | None = None
    html_url: str | None = None
    name: str | None = None
    company: str | None = None
    blog: str | None = None
    location: str | None = None
    email: str | None = None
    bio: str | None = None
    twitter_username: str | None = None
    public_repos: int = 0
    public_gists: int = 0
    followers: int = 0
    following: int = 0
    created_at: datetime | None = None


class License(GitHubModel):
    name: str


class Repository(GitHubModel):
    id: int
    name: str
    full_name: str
    html_url: str | None = None
    description: str | None = None
    fork: bool = False
    url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    pushed_at: datetime | None = None
    stargazers_count: int = 0
    watchers_count: int = 0
    language: str | None = None
    forks_count: int = 0
    open_issues_count: int = 0
    license: License | None = None
    visibility: str | None = None


class Account(GitHubModel):
    login: str
    avatar_url: str | None = None


class Project(GitHubModel):
    id: int
    name: str
    body: str | None = None
    html_url: str | None = None
    state: str | None = None
    creator: Account | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CommitAuthor(GitHubModel):
    name: str | None = None
    date: datetime | None = None


class CommitDetail(GitHubModel):
    message: str
    author: CommitAuthor | None = None


class Commit(GitHubModel):
    sha: str
    html_url: str | None = None
    commit: CommitDetail
    author: Account | None = None


class Contributor(GitHubModel):
    id: int
    login: str
    avatar_url: str | None = None
    html_url: str | None = None
    contributions: int = 0


class SimpleUser(GitHubModel):
    """Entry of the followers and following collections."""

    id: int
    login: str
    avatar_url: str | None = None
    html_url: str | None = None
    type: str | None = None
    site_admin: bool = False


class RateLimitResource(GitHubModel):
    limit: int
    remaining: int
    reset: int
    used: int | None = None


class RateLimitStatus(GitHubModel):
    """Response of ``GET /rate_limit``."""

    resources: dict[str, RateLimitResource]

    @property
    def core(self) -> RateLimitResource | None:
        return self.resources.get("core")
