"""Instagram URL validation and shortcode extraction."""

from __future__ import annotations

from urllib.parse import urlparse

from .errors import InvalidDomainError, UnrecognizedUrlError

INSTAGRAM_DOMAIN = "instagram.com"

# Path markers that precede the shortcode: post, reel and long-form TV video
CONTENT_PATH_MARKERS = ("p", "reel", "tv")


def is_instagram_host(host: str) -> bool:
    """Return whether host is instagram.com or one of its subdomains."""
    host = host.lower().rstrip(".")
    return host == INSTAGRAM_DOMAIN or host.endswith("." + INSTAGRAM_DOMAIN)


def extract_shortcode(url: str) -> str:
    """
    Extract the content shortcode from an Instagram post, reel or TV URL.

    Supported shapes:
        https://www.instagram.com/p/{shortcode}/
        https://www.instagram.com/reel/{shortcode}/
        https://www.instagram.com/tv/{shortcode}/
        https://www.instagram.com/{username}/reel/{shortcode}/

    Raises:
        InvalidDomainError: The host is not an Instagram domain.
        UnrecognizedUrlError: The path does not end in a known marker and shortcode.
    """
    cleaned = url.strip()
    if cleaned and "://" not in cleaned:
        cleaned = "https://" + cleaned

    parsed = urlparse(cleaned)
    if not parsed.hostname or not is_instagram_host(parsed.hostname):
        raise InvalidDomainError(url)

    path = parsed.path
    if path.endswith("/"):
        path = path[:-1]

    segments = path.split("/")
    if len(segments) >= 3 and segments[-2] in CONTENT_PATH_MARKERS and segments[-1]:
        return segments[-1]

    raise UnrecognizedUrlError(url)


def canonical_post_url(shortcode: str) -> str:
    """Build the canonical post URL for a shortcode."""
    return f"https://www.instagram.com/p/{shortcode}/"
