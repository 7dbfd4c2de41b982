"""
Generic "fetch every page until a short page or the limit" loop.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


async def fetch_all_pages(
    fetch_page: Callable[[str], Awaitable[Any]],
    path_builder: Callable[[int], str],
    page_size: int = MAX_PAGE_SIZE,
    limit: int = 0,
) -> list[Any]:
    """
    Collect a paginated collection in the order the server returns it.

    Args:
        fetch_page: Coroutine function requesting one path through the pipeline.
        path_builder: Maps a 1-based page number to the resource path.
        page_size: Items the server returns per full page (1..100).
        limit: Maximum number of items to return. ``0`` collects every page.

    Returns:
        The accumulated items. Pages stop once a page comes back short or
        the limit is filled, the last page truncated to fit exactly.

    Raises:
        ValueError: If ``page_size`` or ``limit`` is out of range.
        GitHubClientError: Whatever the failing page raised. Pages fetched
            before the failure are discarded.
    """
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")
    if limit < 0:
        raise ValueError("limit must be zero (unbounded) or a positive integer")

    items: list[Any] = []
    page = 1
    while True:
        batch = await fetch_page(path_builder(page))
        if not isinstance(batch, list):
            raise TypeError(f"Expected a list page, got {type(batch).__name__}")

        if limit > 0:
            items.extend(batch[: limit - len(items)])
            if len(items) >= limit:
                break
        else:
            items.extend(batch)

        if len(batch) < page_size:
            break
        page += 1

    logger.debug("Collected %d items over %d page(s)", len(items), page)
    return items
