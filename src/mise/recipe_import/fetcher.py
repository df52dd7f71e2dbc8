"""Page fetching for recipe import."""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from mise.config import settings

logger = logging.getLogger(__name__)

MOBILE_USER_AGENT = (
    "Mozilla/5.0 (Linux; Android 10) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.120 Mobile Safari/537.36"
)
CRAWLER_USER_AGENT = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"

_LOGIN_INDICATORS = (
    "sign in to continue",
    "log in to view",
    "subscribe to read",
    "subscription required",
    "create an account",
    "please log in",
    "members only",
)


class FetchError(Exception):
    """The page could not be fetched (non-2xx, timeout, or transport error)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class FetchedPage:
    """Raw page content after redirects."""

    url: str
    final_url: str
    html: str
    status_code: int = 200


def is_login_page(html: str) -> bool:
    """Detect if the page is a login/paywall page."""
    html_lower = html.lower()
    return any(indicator in html_lower for indicator in _LOGIN_INDICATORS)


class PageFetcher:
    """
    HTTP GET with browser-like headers.

    A client may be injected (tests pass one built on httpx.MockTransport);
    otherwise a short-lived client is created per call.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
    ):
        self._client = client
        self.timeout = timeout if timeout is not None else settings.fetch_timeout_seconds
        self.user_agent = user_agent or settings.fetch_user_agent

    def _headers(self, extra: dict[str, str] | None) -> dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        }
        if extra:
            headers.update(extra)
        return headers

    async def _get(self, url: str, headers: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, headers=headers, follow_redirects=True)

        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=httpx.Timeout(self.timeout),
        ) as client:
            return await client.get(url, headers=headers)

    async def fetch(self, url: str, headers: dict[str, str] | None = None) -> FetchedPage:
        """
        Fetch a page's HTML.

        Raises:
            FetchError: On non-2xx status, timeout, or transport failure
        """
        try:
            response = await self._get(url, self._headers(headers))
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise FetchError("Request timed out") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 403:
                raise FetchError("This website blocked our request", status) from e
            if status == 404:
                raise FetchError("Recipe page not found", status) from e
            raise FetchError(
                f"Failed to fetch URL: HTTP {status} {e.response.reason_phrase}".rstrip(),
                status,
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch URL: {e}") from e

        logger.debug(f"Fetched {url} ({len(response.text)} chars)")
        return FetchedPage(
            url=url,
            final_url=str(response.url),
            html=response.text,
            status_code=response.status_code,
        )

    async def fetch_json(self, url: str) -> dict[str, Any] | None:
        """
        Fetch a JSON document (oEmbed endpoints).

        Returns None on any failure or when the body is not a JSON object.
        """
        try:
            response = await self._get(url, self._headers({"Accept": "application/json"}))
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"JSON fetch failed for {url}: {e}")
            return None

        return data if isinstance(data, dict) else None
