from __future__ import annotations

from typing import Any, Optional, Sequence


class InstagramScraperError(Exception):
    """Base error for Instagram post resolution failures."""

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.details = details


class InvalidInstagramUrlError(InstagramScraperError):
    """Raised when no shortcode can be derived from the supplied URL."""


class UnsupportedResponseShapeError(InstagramScraperError):
    """Raised when no post object can be located in the GraphQL payload."""

    def __init__(
        self,
        message: str,
        *,
        document_ids: Sequence[str] = (),
        details: Any = None,
    ) -> None:
        super().__init__(message, details=details)
        self.document_ids = list(document_ids)


class InstagramTimeoutError(InstagramScraperError):
    """Raised when an outbound Instagram request exceeds its deadline."""


class InstagramRequestError(InstagramScraperError):
    """Raised when Instagram returns a non-success response or cannot be reached."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        details = {"status": status_code, "body": body} if status_code is not None else body
        super().__init__(message, details=details)
        self.status_code = status_code
        self.body = body
