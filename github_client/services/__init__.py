"""
Service layer modules expose typed GitHub accessors (users, repositories,
followers, etc.) on top of the request pipeline.
"""

__all__ = [
    "github_service",
]
