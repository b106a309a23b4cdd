"""Remote data access."""

from .fetcher import RetryingFetcher, resolve_url

__all__ = ["RetryingFetcher", "resolve_url"]
