from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx

from app.config import Settings
from app.media.url_utils import is_allowed_host
from .exceptions import (
    InstagramRequestError,
    InstagramTimeoutError,
    UnsupportedResponseShapeError,
)
from .query import build_query
from .types import RedirectOutcome, TokenOutcome
from .url_utils import INSTAGRAM_HOSTS, is_share_url


logger = logging.getLogger(__name__)


class InstagramClient:
    """Talks to the public Instagram web endpoints over a shared httpx client."""

    _CSRF_COOKIE = "csrftoken"

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http_client = http_client

    async def resolve_share_url(self, url: str) -> RedirectOutcome:
        if not is_share_url(url):
            return RedirectOutcome(url=url)
        host = urlparse(url).hostname or ""
        if not is_allowed_host(host, INSTAGRAM_HOSTS):
            logger.warning("Not resolving share link on non-Instagram host %s", host or url)
            return RedirectOutcome(url=url, error=f"Share link host is not Instagram: {host or url}")

        try:
            response = await self._http_client.get(
                url,
                headers={"User-Agent": self._settings.user_agent},
                follow_redirects=True,
                timeout=self._settings.request_timeout,
            )
        except httpx.TooManyRedirects as exc:
            logger.warning("Redirect resolution for %s exceeded the redirect limit: %s", url, exc)
            return RedirectOutcome(url=url, error=str(exc))
        except httpx.HTTPError as exc:
            logger.warning("Redirect resolution failed for %s: %s", url, exc)
            return RedirectOutcome(url=url, error=str(exc) or exc.__class__.__name__)

        if not response.history:
            logger.debug("Share link %s did not redirect (status=%s)", url, response.status_code)
            return RedirectOutcome(url=url, error=f"No redirect (HTTP {response.status_code})")

        final_url = str(response.url)
        logger.debug("Resolved share link %s to %s", url, final_url)
        return RedirectOutcome(url=final_url, resolved=True)

    async def fetch_csrf_token(self) -> TokenOutcome:
        try:
            response = await self._http_client.get(
                f"{self._settings.instagram_base_url}/",
                headers={"User-Agent": self._settings.user_agent},
                timeout=self._settings.request_timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning("Unable to fetch Instagram landing page for CSRF token: %s", exc)
            return TokenOutcome(error=str(exc) or exc.__class__.__name__)

        token = self._extract_cookie(response, self._CSRF_COOKIE)
        if not token:
            logger.warning("Instagram landing page did not set a %s cookie", self._CSRF_COOKIE)
            return TokenOutcome(error=f"Missing {self._CSRF_COOKIE} cookie")
        return TokenOutcome(token=token)

    async def query_post(
        self,
        shortcode: str,
        document_id: str,
        *,
        csrf_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        query = build_query(
            shortcode,
            document_id,
            user_agent=self._settings.user_agent,
            referer=f"{self._settings.instagram_base_url}/",
            csrf_token=csrf_token,
        )
        logger.debug("Querying Instagram GraphQL for %s (doc_id=%s)", shortcode, document_id)

        try:
            response = await self._http_client.post(
                self._settings.graphql_url,
                data=query.form,
                headers=query.headers,
                timeout=self._settings.request_timeout,
            )
        except httpx.TimeoutException as exc:
            raise InstagramTimeoutError(
                "Network timeout while querying Instagram", details=str(exc)
            ) from exc
        except httpx.HTTPError as exc:
            raise InstagramRequestError(
                "Network error: No response received from Instagram", body=str(exc)
            ) from exc

        if response.status_code >= 400:
            logger.warning(
                "Instagram returned HTTP %s for %s (doc_id=%s)",
                response.status_code,
                shortcode,
                document_id,
            )
            raise InstagramRequestError(
                f"Instagram API error: {response.status_code} {response.reason_phrase}".rstrip(),
                status_code=response.status_code,
                body=response.text,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            logger.debug("Instagram GraphQL payload decode error: %s", response.text[:200])
            raise UnsupportedResponseShapeError(
                "Instagram returned a non-JSON response",
                document_ids=[document_id],
                details=response.text[:500],
            ) from exc

        if not payload:
            raise UnsupportedResponseShapeError(
                "No data from Instagram GraphQL", document_ids=[document_id]
            )
        return payload

    @staticmethod
    def _extract_cookie(response: httpx.Response, name: str) -> Optional[str]:
        prefix = f"{name}="
        for raw in response.headers.get_list("set-cookie"):
            if not raw or not raw.startswith(prefix):
                continue
            value = raw.split(";", 1)[0][len(prefix):]
            if value:
                return value
        return None
