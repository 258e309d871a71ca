"""Exception hierarchy shared by the URL normalizer, extractor and downloader."""
from typing import List, Optional, Tuple


class ReelDownloaderError(Exception):
    """Base exception for all reel downloader errors."""


class InvalidUrlError(ReelDownloaderError):
    """Raised when a URL cannot be turned into a shortcode."""

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url


class InvalidDomainError(InvalidUrlError):
    """Raised when the URL host is not an Instagram domain."""

    def __init__(self, url: str):
        super().__init__(url, f"Not an Instagram URL: {url}")


class UnrecognizedUrlError(InvalidUrlError):
    """Raised when the URL path is not a post, reel or TV link."""

    def __init__(self, url: str):
        super().__init__(
            url,
            f"Could not extract shortcode from URL: {url}. "
            "Please use a direct link to an Instagram post, reel, or TV.",
        )


class ExtractionError(ReelDownloaderError):
    """Base exception for failures while resolving a shortcode."""

    def __init__(self, shortcode: str, message: str):
        super().__init__(message)
        self.shortcode = shortcode


class FetchExhaustedError(ExtractionError):
    """Raised when every fetch attempt for a shortcode failed."""

    def __init__(self, shortcode: str, failures: Optional[List[Tuple[str, str, str]]] = None):
        super().__init__(
            shortcode,
            f"Failed to fetch Instagram content for shortcode: {shortcode}",
        )
        # (url, profile, reason) per attempt, in the order they were tried
        self.failures = failures or []


class NoMediaFoundError(ExtractionError):
    """Raised when a page was fetched but no media URL could be recovered."""

    def __init__(
        self,
        shortcode: str,
        message: str,
        stage: str,
        attempt_url: str = "",
        pattern: str = "",
    ):
        super().__init__(shortcode, message)
        self.stage = stage
        self.attempt_url = attempt_url
        self.pattern = pattern
