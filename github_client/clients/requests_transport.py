"""
Thin wrapper around requests.Session to present a consistent interface.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Mapping

import requests

from github_client.cache import RequestDescriptor
from github_client.exceptions import NetworkFailure

DEFAULT_BASE_URL = "https://api.github.com"
DEFAULT_USER_AGENT = "github-client/0.1"
DEFAULT_API_VERSION = "2022-11-28"
DEFAULT_ACCEPT = "application/vnd.github+json"


@dataclass(slots=True)
class ApiResponse:
    """Status, headers and decoded body of one answered round trip."""

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    payload: Any = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class RequestsTransport:
    """Executes descriptors with requests, off the event loop."""

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 30.0,
    ) -> None:
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Accept": DEFAULT_ACCEPT,
                "User-Agent": user_agent,
                "X-GitHub-Api-Version": api_version,
            }
        )
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @property
    def session(self) -> requests.Session:
        return self._session

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    async def send(
        self,
        descriptor: RequestDescriptor,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> ApiResponse:
        return await asyncio.to_thread(self._send_blocking, descriptor, dict(headers or {}))

    def _send_blocking(self, descriptor: RequestDescriptor, headers: dict[str, str]) -> ApiResponse:
        merged = {**descriptor.header_dict(), **headers}
        try:
            response = self._session.request(
                descriptor.method,
                self.url_for(descriptor.path),
                headers=merged,
                data=descriptor.body,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise NetworkFailure(
                f"{descriptor.method} {descriptor.path} failed: {exc}"
            ) from exc

        return ApiResponse(
            status=response.status_code,
            headers=dict(response.headers),
            payload=self._decode(response),
            reason=response.reason or "",
        )

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def close(self) -> None:
        self._session.close()
