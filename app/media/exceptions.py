from __future__ import annotations

from typing import Optional


class MediaProxyError(Exception):
    """Base error for media proxy failures."""


class BlockedHostError(MediaProxyError):
    """Raised when the media URL points at a host outside the allow-list."""


class MediaFetchFailedError(MediaProxyError):
    """Raised when the upstream media cannot be fetched before streaming starts."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.timed_out = timed_out
