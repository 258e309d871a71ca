"""Instagram reel extractor that negotiates a page fetch and runs the extraction cascade.

The cascade has three layers, each an ordered list of pure strategies:
document patterns that isolate embedded JSON, direct-URL patterns for pages
without usable JSON, and field-path shapes that locate the media URL inside
whatever was recovered.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Tuple, Union

from .diagnostics import DiagnosticsSink
from .errors import FetchExhaustedError, NoMediaFoundError
from .http_client import FetchError, HttpFetcher
from .instagram_url import canonical_post_url, extract_shortcode
from .media_shapes import resolve_fields
from .models import ClientProfile, DirectUrlMatch, FetchAttempt, PageResponse, ReelMedia
from .page_parsers import find_direct_url, find_document, parse_json_body

logger = logging.getLogger(__name__)

Document = Union[Dict[str, Any], DirectUrlMatch]


class InstagramReelExtractor:
    """Resolve a shortcode to a direct video URL by trying several public page variants."""

    DESKTOP_USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    MOBILE_USER_AGENT = (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 16_0 like Mac OS X) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/16.0 Mobile/15E148 Safari/604.1"
    )
    FAILURE_PREVIEW_CHARS = 1000

    def __init__(
        self,
        fetcher: Optional[HttpFetcher] = None,
        timeout: float = 15.0,
        user_agent: Optional[str] = None,
        mobile_user_agent: Optional[str] = None,
        proxy: Optional[str] = None,
        save_raw_pages: bool = False,
    ) -> None:
        self.fetcher = fetcher or HttpFetcher(proxy=proxy)
        self.timeout = timeout
        # Raw bodies go to the diagnostics sink only when asked for
        self.save_raw_pages = save_raw_pages
        self.user_agents: Dict[ClientProfile, str] = {
            "desktop": user_agent or self.DESKTOP_USER_AGENT,
            "mobile": mobile_user_agent or self.MOBILE_USER_AGENT,
        }

    def get_media_info(self, url: str, diagnostics: Optional[DiagnosticsSink] = None) -> ReelMedia:
        """Normalize an Instagram URL and resolve its media."""
        shortcode = extract_shortcode(url)
        logger.debug("Extracted shortcode: %s", shortcode)
        return self.resolve(shortcode, diagnostics=diagnostics, source_url=url)

    def resolve(
        self,
        shortcode: str,
        diagnostics: Optional[DiagnosticsSink] = None,
        source_url: Optional[str] = None,
    ) -> ReelMedia:
        """
        Fetch the content page for a shortcode and recover its media URL and metadata.

        Raises:
            FetchExhaustedError: No fetch attempt returned a usable response.
            NoMediaFoundError: A page was fetched but no strategy found a media URL.
        """
        page = self._fetch_page(shortcode)
        if diagnostics is not None and self.save_raw_pages:
            diagnostics.write(f"raw-response-{shortcode}", page.text)

        document, pattern = self._extract_document(page, shortcode, diagnostics)
        if diagnostics is not None:
            payload = asdict(document) if isinstance(document, DirectUrlMatch) else document
            diagnostics.write(f"extracted-json-{shortcode}-{pattern}", payload)

        resolved = resolve_fields(document, page.text, shortcode)
        if resolved is None:
            if diagnostics is not None:
                diagnostics.write(f"no-video-url-{shortcode}", document)
            raise NoMediaFoundError(
                shortcode,
                "Could not find video URL in Instagram response. "
                "This could be due to: 1. The post is not a video/reel "
                "2. The post is private 3. Instagram has changed their API structure. "
                "Please ensure you are using a public video/reel URL.",
                stage="fields",
                attempt_url=page.attempt.url,
                pattern=pattern,
            )

        shape, fields = resolved
        logger.info("Found video URL for %s using %s / %s", shortcode, pattern, shape)
        return ReelMedia(
            media_url=fields.media_url,
            file_name=f"{shortcode}.mp4",
            source_url=source_url or canonical_post_url(shortcode),
            thumbnail_url=fields.thumbnail_url,
            caption=fields.caption,
            owner=fields.owner,
            like_count=fields.like_count,
            comment_count=fields.comment_count,
            view_count=fields.view_count,
            shape=shape,
        )

    def build_attempts(self, shortcode: str) -> List[FetchAttempt]:
        """Ordered URL/client variants to try for a shortcode."""
        return [
            FetchAttempt(f"https://www.instagram.com/p/{shortcode}/", "desktop"),
            FetchAttempt(f"https://www.instagram.com/reel/{shortcode}/", "desktop"),
            FetchAttempt(f"https://www.instagram.com/p/{shortcode}/", "mobile"),
            FetchAttempt(f"https://www.instagram.com/reel/{shortcode}/?__a=1&__d=dis", "mobile", json_hint=True),
        ]

    def _fetch_page(self, shortcode: str) -> PageResponse:
        """Try each attempt in order and return the first usable response."""
        failures: List[Tuple[str, str, str]] = []

        for attempt in self.build_attempts(shortcode):
            logger.debug("Trying URL format: %s with %s client", attempt.url, attempt.profile)
            try:
                response = self.fetcher.get(attempt.url, self._headers(attempt.profile), self.timeout)
            except FetchError as exc:
                failures.append((attempt.url, attempt.profile, str(exc)))
                continue

            if not response.ok:
                failures.append((attempt.url, attempt.profile, f"HTTP {response.status_code}"))
                logger.debug("Failed to fetch %s: HTTP %s", attempt.url, response.status_code)
                continue
            if not response.text.strip():
                failures.append((attempt.url, attempt.profile, "empty body"))
                logger.debug("Failed to fetch %s: empty body", attempt.url)
                continue

            logger.debug("Successfully fetched content from: %s", attempt.url)
            return PageResponse(
                attempt=attempt,
                status_code=response.status_code,
                headers=response.headers,
                text=response.text,
            )

        logger.warning("All %d fetch attempts failed for %s", len(failures), shortcode)
        raise FetchExhaustedError(shortcode, failures)

    def _extract_document(
        self,
        page: PageResponse,
        shortcode: str,
        diagnostics: Optional[DiagnosticsSink],
    ) -> Tuple[Document, str]:
        """Recover structured data from the page, falling back to a bare media URL."""
        if page.attempt.json_hint and "application/json" in page.content_type:
            payload = parse_json_body(page.text)
            if payload is not None:
                return payload, "direct-api-response"
            logger.debug("Response for %s declared JSON but did not parse as an object", page.attempt.url)

        found = find_document(page.text)
        if found is not None:
            name, payload = found
            logger.debug("Extracted JSON data using pattern: %s", name)
            return payload, name

        logger.debug("Could not extract JSON data, trying to find direct video URLs in page content")
        direct = find_direct_url(page.text)
        if direct is not None:
            logger.debug("Found direct video URL with pattern %s: %.100s", direct.pattern, direct.url)
            return direct, direct.pattern

        if diagnostics is not None:
            diagnostics.write(
                f"failed-extraction-{shortcode}",
                {
                    "url": page.attempt.url,
                    "profile": page.attempt.profile,
                    "userAgent": self.user_agents[page.attempt.profile],
                    "status": page.status_code,
                    "responseHeaders": dict(page.headers),
                    "responsePreview": page.text[: self.FAILURE_PREVIEW_CHARS],
                },
            )
        raise NoMediaFoundError(
            shortcode,
            "Could not extract JSON data or video URL from Instagram page. "
            "Instagram may have changed their page structure.",
            stage="document",
            attempt_url=page.attempt.url,
        )

    def _headers(self, profile: ClientProfile) -> Dict[str, str]:
        """Browser-like headers for page requests."""
        return {
            "User-Agent": self.user_agents[profile],
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
            "Referer": "https://www.instagram.com/",
            "sec-fetch-dest": "document",
            "sec-fetch-mode": "navigate",
            "sec-fetch-site": "same-origin",
            "sec-fetch-user": "?1",
            "upgrade-insecure-requests": "1",
        }
