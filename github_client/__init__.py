"""Rate-aware, deduplicating access layer for the GitHub REST API."""

from __future__ import annotations

import logging

__all__ = [
    "ClientContext",
    "GitHubClientFactory",
    "GitHubService",
]

from .context import ClientContext
from .factory import GitHubClientFactory
from .services.github_service import GitHubService

logging.getLogger(__name__).addHandler(logging.NullHandler())
