"""
Factory for creating GitHub service instances with proper initialization.
"""

from __future__ import annotations

import requests

from github_client.backoff import RetryConfig
from github_client.cache import PersistedCollectionCache
from github_client.clients.requests_transport import RequestsTransport
from github_client.config import ClientSettings, ConfigManager, GitHubCredentials
from github_client.context import ClientContext
from github_client.rate_limit import PacingConfig
from github_client.services.github_service import GitHubService


class GitHubClientFactory:
    """Factory for creating fully wired GitHub services."""

    @staticmethod
    def create_from_config(
        config_manager: ConfigManager,
        *,
        pacing: PacingConfig | None = None,
        retry_config: RetryConfig | None = None,
    ) -> GitHubService:
        """
        Create a GitHubService from configured credentials and settings.

        Args:
            config_manager: ConfigManager used to load the token and settings.
            pacing: Optional pacer tunables.
            retry_config: Optional retry limits.

        Returns:
            GitHubService running anonymously when no token is configured.
        """
        credentials = config_manager.load_credentials(allow_anonymous=True)
        settings = config_manager.load_settings()
        return GitHubClientFactory.create_from_credentials(
            credentials,
            settings,
            pacing=pacing,
            retry_config=retry_config,
        )

    @staticmethod
    def create_from_credentials(
        credentials: GitHubCredentials,
        settings: ClientSettings | None = None,
        *,
        session: requests.Session | None = None,
        pacing: PacingConfig | None = None,
        retry_config: RetryConfig | None = None,
    ) -> GitHubService:
        """
        Create a GitHubService directly from credentials.

        Args:
            credentials: GitHubCredentials, possibly empty for anonymous use.
            settings: Transport and cache settings (defaults when omitted).
            session: Optional pre-configured requests session.

        Returns:
            Fully initialized GitHubService
        """
        settings = settings or ClientSettings()
        transport = RequestsTransport(
            session,
            base_url=settings.base_url,
            user_agent=settings.user_agent,
            api_version=settings.api_version,
            timeout=settings.request_timeout,
        )
        context = ClientContext(
            transport,
            token=credentials.token or "",
            pacing=pacing,
            retry_config=retry_config,
        )
        persisted = PersistedCollectionCache(settings.cache_dir, ttl=settings.persisted_ttl)
        return GitHubService(context, persisted)
