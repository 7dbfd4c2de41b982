"""Integration tests with HTTP mocking using responses library."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from urllib.parse import parse_qs, urlparse

import pytest
import requests
import responses

from github_client.backoff import RetryConfig
from github_client.config import ClientSettings, ConfigManager, GitHubCredentials
from github_client.exceptions import AccessDenied, NetworkFailure, NotFound
from github_client.factory import GitHubClientFactory
from github_client.rate_limit import PacingConfig
from github_client.services.github_service import GitHubService

from .fixtures import (
    API,
    EXHAUSTED_RESPONSE,
    NOT_FOUND_RESPONSE,
    RATE_LIMIT_HEADERS,
    RATE_LIMIT_RESPONSE,
    SECONDARY_LIMIT_RESPONSE,
    USER_RESPONSE,
    follower_payload,
    repo_payload,
)

TOKEN = "ghp_" + "0" * 36
FAST_PACING = PacingConfig(base_delay=0.0, forbidden_penalty=0.0)
FAST_RETRIES = RetryConfig(forbidden_increment=0.0, network_retry_delay=0.0)


def _service(
    tmp_path: Path,
    *,
    token: str = "",
    base_url: str = API,
    retry_config: RetryConfig = FAST_RETRIES,
) -> GitHubService:
    settings = ClientSettings(base_url=base_url, cache_dir=tmp_path / "cache")
    return GitHubClientFactory.create_from_credentials(
        GitHubCredentials(token=token),
        settings,
        pacing=FAST_PACING,
        retry_config=retry_config,
    )


# ============================================================================
# Single Resource Tests
# ============================================================================


@responses.activate
def test_get_user_parses_model_and_quota_headers(tmp_path: Path) -> None:
    responses.add(
        responses.GET,
        f"{API}/users/octocat",
        json=USER_RESPONSE,
        headers=RATE_LIMIT_HEADERS,
        status=200,
    )
    service = _service(tmp_path)

    user = asyncio.run(service.get_user("octocat"))

    assert user.login == "octocat"
    assert user.followers == 12000
    assert user.created_at is not None and user.created_at.year == 2011
    assert service.quota.remaining == 57
    assert service.quota.reset_at == 1728730800


@responses.activate
def test_requests_carry_identification_and_token_headers(tmp_path: Path) -> None:
    responses.add(responses.GET, f"{API}/users/octocat", json=USER_RESPONSE, status=200)
    service = _service(tmp_path, token=TOKEN)

    asyncio.run(service.get_user("octocat"))

    sent = responses.calls[0].request.headers
    assert sent["Authorization"] == f"Bearer {TOKEN}"
    assert sent["User-Agent"] == "github-client/0.1"
    assert sent["X-GitHub-Api-Version"] == "2022-11-28"
    assert sent["Accept"] == "application/vnd.github+json"


@responses.activate
def test_anonymous_requests_carry_no_authorization(tmp_path: Path) -> None:
    responses.add(responses.GET, f"{API}/users/octocat", json=USER_RESPONSE, status=200)
    service = _service(tmp_path)

    asyncio.run(service.get_user("octocat"))

    assert "Authorization" not in responses.calls[0].request.headers


@responses.activate
def test_projects_override_the_accept_header(tmp_path: Path) -> None:
    responses.add(responses.GET, f"{API}/users/octocat/projects", json=[], status=200)
    service = _service(tmp_path)

    assert asyncio.run(service.get_projects("octocat")) == []
    assert (
        responses.calls[0].request.headers["Accept"]
        == "application/vnd.github.inertia-preview+json"
    )


@responses.activate
def test_proxy_base_url_is_honoured(tmp_path: Path) -> None:
    proxy = "https://proxy.example/github"
    responses.add(responses.GET, f"{proxy}/users/octocat", json=USER_RESPONSE, status=200)
    service = _service(tmp_path, base_url=proxy + "/")

    user = asyncio.run(service.get_user("octocat"))

    assert user.login == "octocat"
    assert responses.calls[0].request.url == f"{proxy}/users/octocat"


@responses.activate
def test_no_content_becomes_empty_collection(tmp_path: Path) -> None:
    responses.add(responses.GET, f"{API}/repos/octocat/empty/contributors", status=204)
    service = _service(tmp_path)

    assert asyncio.run(service.get_contributors("octocat/empty")) == []


# ============================================================================
# Failure Classification Tests
# ============================================================================


@responses.activate
def test_missing_user_raises_not_found(tmp_path: Path) -> None:
    responses.add(
        responses.GET, f"{API}/users/nobody", json=NOT_FOUND_RESPONSE, status=404
    )
    service = _service(tmp_path)

    with pytest.raises(NotFound) as exc_info:
        asyncio.run(service.get_user("nobody"))

    assert "GET /users/nobody: Not Found" in str(exc_info.value)
    assert len(responses.calls) == 1


@responses.activate
def test_connection_error_is_retried_once_then_surfaces(tmp_path: Path) -> None:
    responses.add(
        responses.GET,
        f"{API}/users/octocat",
        body=requests.ConnectionError("connection refused"),
    )
    service = _service(tmp_path)

    with pytest.raises(NetworkFailure) as exc_info:
        asyncio.run(service.get_user("octocat"))

    assert isinstance(exc_info.value.__cause__, requests.ConnectionError)
    assert len(responses.calls) == 2


@responses.activate
def test_exhausted_quota_past_its_reset_is_replayed(tmp_path: Path) -> None:
    responses.add(
        responses.GET,
        f"{API}/users/octocat",
        json=EXHAUSTED_RESPONSE,
        status=403,
        headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1"},
    )
    responses.add(responses.GET, f"{API}/users/octocat", json=USER_RESPONSE, status=200)
    service = _service(tmp_path)

    user = asyncio.run(service.get_user("octocat"))

    assert user.login == "octocat"
    assert len(responses.calls) == 2


@responses.activate
def test_persistent_secondary_limit_gives_up(tmp_path: Path) -> None:
    responses.add(
        responses.GET,
        f"{API}/users/octocat",
        json=SECONDARY_LIMIT_RESPONSE,
        status=403,
        headers={"X-RateLimit-Remaining": "4000"},
    )
    service = _service(tmp_path, retry_config=RetryConfig(max_retries=1, forbidden_increment=0.0))

    with pytest.raises(AccessDenied) as exc_info:
        asyncio.run(service.get_user("octocat"))

    assert exc_info.value.cause.value == "secondary_rate_limit"
    assert len(responses.calls) == 2
    assert service.quota.forbidden_count == 2


# ============================================================================
# Collection Tests
# ============================================================================


@responses.activate
def test_repos_are_paginated_through_query_parameters(tmp_path: Path) -> None:
    repos = [repo_payload(index) for index in range(130)]

    def callback(request: requests.PreparedRequest) -> tuple[int, dict[str, str], str]:
        query = parse_qs(urlparse(request.url).query)
        assert query["sort"] == ["pushed"]
        per_page = int(query["per_page"][0])
        page = int(query["page"][0])
        body = repos[(page - 1) * per_page : page * per_page]
        return 200, {"Content-Type": "application/json"}, json.dumps(body)

    responses.add_callback(responses.GET, f"{API}/users/octocat/repos", callback=callback)
    service = _service(tmp_path)

    result = asyncio.run(service.get_repos("octocat"))

    assert [repo.full_name for repo in result] == [f"octocat/repo-{i}" for i in range(130)]
    assert result[0].license is not None and result[0].license.name == "MIT License"
    assert len(responses.calls) == 2


@responses.activate
def test_followers_are_persisted_across_services(tmp_path: Path) -> None:
    responses.add(
        responses.GET,
        f"{API}/users/octocat/followers",
        json=[follower_payload(index) for index in range(3)],
        status=200,
    )

    first = asyncio.run(_service(tmp_path).get_followers("octocat", limit=30))
    second = asyncio.run(_service(tmp_path).get_followers("octocat", limit=30))

    assert [user.login for user in first] == [user.login for user in second]
    assert len(responses.calls) == 1
    assert "per_page=30" in responses.calls[0].request.url


# ============================================================================
# Credential Tests
# ============================================================================


@responses.activate
def test_set_credential_probes_rate_limit(tmp_path: Path) -> None:
    responses.add(responses.GET, f"{API}/rate_limit", json=RATE_LIMIT_RESPONSE, status=200)
    service = _service(tmp_path)

    async def scenario() -> None:
        probe = service.set_credential(TOKEN)
        assert probe is not None
        await probe

    asyncio.run(scenario())

    assert service.quota.remaining == 4999
    assert service.quota.limit == 5000
    assert responses.calls[0].request.headers["Authorization"] == f"Bearer {TOKEN}"


@responses.activate
def test_factory_from_config_reads_environment(tmp_path: Path) -> None:
    responses.add(responses.GET, f"{API}/rate_limit", json=RATE_LIMIT_RESPONSE, status=200)
    env = {
        "GITHUB_TOKEN": TOKEN,
        "GITHUB_CLIENT_CACHE_DIR": str(tmp_path / "cache"),
    }
    manager = ConfigManager(
        credential_path=tmp_path / "github.json", env=env, dotenv_path=tmp_path / ".env"
    )
    service = GitHubClientFactory.create_from_config(
        manager, pacing=FAST_PACING, retry_config=FAST_RETRIES
    )

    status = asyncio.run(service.get_rate_limit())

    assert status.core is not None and status.core.remaining == 4999
    assert responses.calls[0].request.headers["Authorization"] == f"Bearer {TOKEN}"
