"""HTTP session client for the ADT Pulse portal."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

import aiohttp

from .const import (
    BASE_URL_TEMPLATE,
    DEFAULT_HEADERS,
    DEFAULT_RETRIES,
    DEFAULT_RETRY_BACKOFF,
    DEFAULT_TIMEOUT,
)
from .exceptions import (
    PulseNetworkError,
    PulseNotInitializedError,
    PulsePortalFormatError,
    PulseUnauthenticatedError,
)
from .extractor import match_path

_LOGGER = logging.getLogger(__name__)

SIGN_IN_PAGES = ("sign_in", "sign_in_failed", "sign_out")


class ResponseKind(Enum):
    """Classification of a portal response."""

    SUCCESS = "success"
    AUTHENTICATION_REQUIRED = "authentication_required"
    NOT_FOUND = "not_found"
    SERVER_ERROR = "server_error"
    UNEXPECTED_FORMAT = "unexpected_format"


@dataclass
class PortalResponse:
    """A portal response after redirects."""

    status: int
    path: str
    text: str
    kind: ResponseKind
    version: str | None = None


class PulseSession:
    """Cookie based session against one portal region."""

    def __init__(
        self,
        subdomain: str,
        session: aiohttp.ClientSession | None = None,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = DEFAULT_RETRIES,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
    ) -> None:
        """Initialize the session client."""
        self.subdomain = subdomain
        self.base_url = (base_url or BASE_URL_TEMPLATE.format(subdomain=subdomain)).rstrip("/")
        self._session = session
        self._own_session = session is None
        self._timeout = timeout
        self._retries = retries
        self._retry_backoff = retry_backoff

        self.portal_version: str | None = None
        self.network_id: str | None = None
        self.backup_sat: str | None = None
        self.authenticated = False
        self.is_clean_state = True
        self.last_activity: float | None = None
        self.generation = 0

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(cookie_jar=aiohttp.CookieJar())
            self._own_session = True
        return self._session

    async def close(self) -> None:
        """Close the session if we own it."""
        if self._own_session and self._session and not self._session.closed:
            await self._session.close()

    def reset(self) -> None:
        """Forget cookies and every scraped token."""
        _LOGGER.debug("Resetting session for %s", self.subdomain)
        if self._session is not None:
            self._session.cookie_jar.clear()
        self.portal_version = None
        self.network_id = None
        self.backup_sat = None
        self.authenticated = False
        self.is_clean_state = True
        self.last_activity = None
        self.generation += 1

    def next_generation(self) -> int:
        """Invalidate previously scraped commands and return the new generation."""
        self.generation += 1
        return self.generation

    def url(self, path: str) -> str:
        """Return the absolute URL of a page below /myhome/<version>/."""
        if self.portal_version is None:
            raise PulseNotInitializedError("Portal version is not known, sign in first")
        return f"{self.base_url}/myhome/{self.portal_version}/{path}"

    def _classify(self, status: int, path: str, expect: str | None) -> tuple[ResponseKind, str | None]:
        if status >= 500:
            return ResponseKind.SERVER_ERROR, None
        if status == 404:
            return ResponseKind.NOT_FOUND, None
        if status in (401, 403):
            return ResponseKind.AUTHENTICATION_REQUIRED, None

        if expect is None:
            if status < 400:
                return ResponseKind.SUCCESS, None
            return ResponseKind.UNEXPECTED_FORMAT, None

        version = match_path(expect, path)
        if version is not None:
            return ResponseKind.SUCCESS, version
        if any(match_path(page, path) is not None for page in SIGN_IN_PAGES):
            return ResponseKind.AUTHENTICATION_REQUIRED, None
        return ResponseKind.UNEXPECTED_FORMAT, None

    async def _send(
        self,
        method: str,
        url: str,
        data: Any,
        headers: dict[str, str],
        expect: str | None,
    ) -> PortalResponse:
        session = await self._get_session()
        async with session.request(
            method,
            url,
            data=data,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=self._timeout),
        ) as response:
            path = response.url.raw_path_qs
            text = await response.text() if method != "HEAD" else ""
            kind, version = self._classify(response.status, path, expect)
            _LOGGER.debug("%s %s -> %s (%s)", method, path, response.status, kind.value)
            return PortalResponse(response.status, path, text, kind, version)

    async def request(
        self,
        method: str,
        url: str,
        *,
        data: Any = None,
        headers: dict[str, str] | None = None,
        expect: str | None = None,
        idempotent: bool = False,
    ) -> PortalResponse:
        """Send a request and classify where it landed.

        ``expect`` names the page (see ``extractor.PATH_PATTERNS``) the request
        should end on. Idempotent requests are retried with exponential backoff
        on network failures and server errors; anything else is sent once.
        """
        request_headers = {**DEFAULT_HEADERS, **(headers or {})}
        attempts = 1 + (self._retries if idempotent else 0)

        for attempt in range(attempts):
            try:
                response = await self._send(method, url, data, request_headers, expect)
            except (aiohttp.ClientError, asyncio.TimeoutError) as err:
                if attempt + 1 >= attempts:
                    raise PulseNetworkError(f"Connection error: {err}") from err
                _LOGGER.debug("%s %s failed (%s), retrying", method, url, err)
            else:
                if response.kind is not ResponseKind.SERVER_ERROR or attempt + 1 >= attempts:
                    if response.kind is ResponseKind.SUCCESS:
                        self.last_activity = time.monotonic()
                    return response
                _LOGGER.debug("%s %s returned %s, retrying", method, url, response.status)

            await asyncio.sleep(self._retry_backoff * 2**attempt)

        raise PulseNetworkError(f"{method} {url} was not attempted")

    def ensure_success(self, response: PortalResponse, page: str) -> PortalResponse:
        """Raise the matching error unless the response landed on the page."""
        if response.kind is ResponseKind.SUCCESS:
            return response
        if response.kind is ResponseKind.AUTHENTICATION_REQUIRED:
            self.reset()
            raise PulseUnauthenticatedError(
                f'"{response.path}" is the sign-in page, the session has expired'
            )
        if response.kind is ResponseKind.SERVER_ERROR:
            raise PulseNetworkError(
                f"Portal returned HTTP {response.status} for the {page} page",
                status=response.status,
            )
        if response.kind is ResponseKind.NOT_FOUND:
            raise PulsePortalFormatError(f'"{response.path}" was not found')
        raise PulsePortalFormatError(f'"{response.path}" is not the {page} page')
