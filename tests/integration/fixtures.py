"""Mock responses for GitHub REST API integration tests."""

from __future__ import annotations

API = "https://api.github.com"

USER_RESPONSE = {
    "login": "octocat",
    "id": 583231,
    "avatar_url": "https://avatars.githubusercontent.com/u/583231?v=4",
    "html_url": "https://github.com/octocat",
    "type": "User",
    "name": "The Octocat",
    "company": "@github",
    "blog": "https://github.blog",
    "location": "San Francisco",
    "email": None,
    "bio": None,
    "twitter_username": None,
    "public_repos": 8,
    "public_gists": 8,
    "followers": 12000,
    "following": 9,
    "created_at": "2011-01-25T18:44:36Z",
}

RATE_LIMIT_HEADERS = {
    "X-RateLimit-Limit": "60",
    "X-RateLimit-Remaining": "57",
    "X-RateLimit-Reset": "1728730800",
    "X-RateLimit-Used": "3",
}

EXHAUSTED_RESPONSE = {
    "message": "API rate limit exceeded for 203.0.113.7.",
    "documentation_url": "https://docs.github.com/rest/overview/resources-in-the-rest-api#rate-limiting",
}

SECONDARY_LIMIT_RESPONSE = {
    "message": "You have exceeded a secondary rate limit. Please wait a few minutes before you try again.",
    "documentation_url": "https://docs.github.com/rest/overview/rate-limits-for-the-rest-api",
}

NOT_FOUND_RESPONSE = {
    "message": "Not Found",
    "documentation_url": "https://docs.github.com/rest/users/users#get-a-user",
}

RATE_LIMIT_RESPONSE = {
    "resources": {
        "core": {"limit": 5000, "remaining": 4999, "reset": 1728730800, "used": 1},
        "search": {"limit": 30, "remaining": 30, "reset": 1728727260, "used": 0},
    },
    "rate": {"limit": 5000, "remaining": 4999, "reset": 1728730800, "used": 1},
}


def repo_payload(index: int, owner: str = "octocat") -> dict[str, object]:
    return {
        "id": 1000 + index,
        "name": f"repo-{index}",
        "full_name": f"{owner}/repo-{index}",
        "html_url": f"https://github.com/{owner}/repo-{index}",
        "fork": False,
        "stargazers_count": index,
        "language": "Python",
        "license": {"key": "mit", "name": "MIT License"},
        "pushed_at": "2024-10-01T12:00:00Z",
    }


def follower_payload(index: int) -> dict[str, object]:
    return {
        "login": f"follower-{index}",
        "id": 5000 + index,
        "avatar_url": f"https://avatars.githubusercontent.com/u/{5000 + index}?v=4",
        "type": "User",
        "site_admin": False,
    }
