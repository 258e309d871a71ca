"""HTTP fetch capability shared by the extractor and the downloader."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

import requests

from .errors import ReelDownloaderError

logger = logging.getLogger(__name__)


class FetchError(ReelDownloaderError):
    """Raised when a request fails at the transport level."""


@dataclass
class HttpResponse:
    """Status, headers and decoded body of a completed GET request."""

    status_code: int
    headers: Mapping[str, str]
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HttpFetcher:
    """Thin wrapper around a requests session with optional proxy routing."""

    def __init__(self, proxy: Optional[str] = None, session: Optional[requests.Session] = None):
        self.proxy = proxy
        self.session = session or requests.Session()

    @property
    def proxies(self) -> Optional[Dict[str, str]]:
        if not self.proxy:
            return None
        return {"http": self.proxy, "https": self.proxy}

    def get(self, url: str, headers: Mapping[str, str], timeout: float) -> HttpResponse:
        """
        Issue a GET request and return the response whatever its status.

        Raises:
            FetchError: On connection errors, timeouts and other transport failures.
        """
        try:
            response = self.session.get(
                url,
                headers=dict(headers),
                timeout=timeout,
                proxies=self.proxies,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            logger.debug("Request failed (GET %s): %s", url, exc)
            raise FetchError(f"Request to {url} failed: {exc}") from exc

        return HttpResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            text=response.text or "",
        )

    def stream(self, url: str, headers: Mapping[str, str], timeout: float) -> requests.Response:
        """
        Open a streaming GET request for binary downloads.

        Raises:
            FetchError: On transport failures and non-2xx responses.
        """
        try:
            response = self.session.get(
                url,
                headers=dict(headers),
                timeout=timeout,
                proxies=self.proxies,
                stream=True,
            )
            response.raise_for_status()
            return response
        except requests.RequestException as exc:
            logger.debug("Streaming request failed (GET %s): %s", url, exc)
            raise FetchError(f"Server responded with error for {url}: {exc}") from exc
