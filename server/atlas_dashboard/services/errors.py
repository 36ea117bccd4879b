"""Upstream error types shared by the cache and the providers."""

from typing import Optional


class UpstreamFetchError(Exception):
    """An upstream read failed (network, auth, rate limit, bad response)."""


class NotConfiguredError(UpstreamFetchError):
    """A provider is missing the credentials it needs."""


class ColdMissError(UpstreamFetchError):
    """The fetch for a key failed and nothing was cached for it yet."""

    def __init__(self, key: str, cause: Optional[BaseException] = None):
        self.key = key
        self.cause = cause
        message = f"Fetching {key} failed and no cached value exists"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
