"""Transport adapters that execute request descriptors over HTTP."""

__all__ = [
    "requests_transport",
]
