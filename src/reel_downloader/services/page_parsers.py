"""Pattern tables that pull structured data or bare media URLs out of Instagram pages.

Every strategy here is a pure function over the page text. A strategy that does
not apply returns ``None``; malformed fragments are treated the same way.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Dict, List, Optional, Pattern, Tuple
from urllib.parse import urlparse

from .models import DirectUrlMatch

DocumentStrategy = Callable[[str], Optional[Dict[str, Any]]]

_ESCAPED_CHARS = {
    "0026": "&",
    "003d": "=",
    "002f": "/",
    "003a": ":",
    "003f": "?",
    "0025": "%",
}
_ENTITY_CHARS = {
    "amp": "&",
    "#38": "&",
    "#x26": "&",
    "#61": "=",
    "#x3d": "=",
    "#47": "/",
    "#x2f": "/",
    "#58": ":",
    "#x3a": ":",
    "#63": "?",
    "#x3f": "?",
}
_ESCAPE_RE = re.compile(
    r"\\u(0026|003[dDaAfF]|002[fF]|0025)"
    r"|\\([/\"])"
    r"|&(amp|#38|#[xX]26|#61|#[xX]3[dDaAfF]|#47|#[xX]2[fF]|#58|#63);"
)


def _replace_escape(match: "re.Match[str]") -> str:
    unicode_code, backslashed, entity = match.groups()
    if unicode_code:
        return _ESCAPED_CHARS[unicode_code.lower()]
    if backslashed:
        return backslashed
    return _ENTITY_CHARS[entity.lower()]


def unescape_url(value: str) -> str:
    """
    Turn an escaped URL from page source back into a literal, fetchable URL.

    Handles ``\\u0026``-style escapes, backslash-escaped slashes and quotes, and
    HTML entities for ``& = / : ?``. Substitution repeats until nothing changes,
    so the result is stable under a second pass.
    """
    previous = None
    while previous != value:
        previous = value
        value = _ESCAPE_RE.sub(_replace_escape, value)
    return value


def absolute_url(value: Any) -> Optional[str]:
    """De-escape value and return it only if it is a fully-qualified http(s) URL."""
    if not isinstance(value, str) or not value:
        return None
    url = unescape_url(value.strip())
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return url


def _decode_json_string(raw: str) -> str:
    try:
        decoded = json.loads(f'"{raw}"')
    except ValueError:
        return raw
    return decoded if isinstance(decoded, str) else raw


def _parse_object(fragment: str) -> Optional[Dict[str, Any]]:
    try:
        payload = json.loads(fragment)
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


def _fragment_strategy(pattern: Pattern[str]) -> DocumentStrategy:
    def strategy(text: str) -> Optional[Dict[str, Any]]:
        match = pattern.search(text)
        if not match or not match.group(1):
            return None
        return _parse_object(match.group(1))

    return strategy


def _direct_json(text: str) -> Optional[Dict[str, Any]]:
    stripped = text.strip()
    if not stripped.startswith('{"items":'):
        return None
    return _parse_object(stripped)


_GRAPHQL_PREFIX = '{"graphql":{"shortcode_media":'


def _graphql_prefix(text: str) -> Optional[Dict[str, Any]]:
    start = text.find(_GRAPHQL_PREFIX)
    if start < 0:
        return None
    try:
        payload, _ = json.JSONDecoder().raw_decode(text, start)
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


DOCUMENT_STRATEGIES: List[Tuple[str, DocumentStrategy]] = [
    ("data-sjs-script", _fragment_strategy(re.compile(r'<script type="application/json" data-sjs>(.*?)</script>'))),
    ("additional-data-loaded", _fragment_strategy(re.compile(r"window\.__additionalDataLoaded\('.*?',(.*?)\);"))),
    (
        "shared-data",
        _fragment_strategy(re.compile(r'<script type="text/javascript">window\._sharedData = (.*?);</script>')),
    ),
    ("apollo-state", _fragment_strategy(re.compile(r"window\.__APOLLO_STATE__ = (.*?);</script>"))),
    ("initial-data", _fragment_strategy(re.compile(r"window\.__INITIAL_DATA__ = (.*?);</script>"))),
    ("direct-json", _direct_json),
    ("graphql-prefix", _graphql_prefix),
]


def find_document(text: str) -> Optional[Tuple[str, Dict[str, Any]]]:
    """Return the name and parsed payload of the first document pattern that yields a JSON object."""
    for name, strategy in DOCUMENT_STRATEGIES:
        payload = strategy(text)
        if payload is not None:
            return name, payload
    return None


def parse_json_body(text: str) -> Optional[Dict[str, Any]]:
    """Parse a whole response body that was served as JSON."""
    return _parse_object(text.strip())


_HTTPS_PREFIX = r"https:(?:\\?/){2}"

DIRECT_URL_PATTERNS: List[Tuple[str, Pattern[str]]] = [
    ("video-versions", re.compile(r'"video_versions":\[\{"width":\d+,"height":\d+,"url":"([^"]+)"')),
    ("video-url", re.compile(r'"video_url":"(' + _HTTPS_PREFIX + r'[^"]+)"')),
    ("og-video", re.compile(r'property="og:video" content="(https://[^"]+)"')),
    ("playable-url", re.compile(r'"playable_url":"(' + _HTTPS_PREFIX + r'[^"]+)"')),
    ("mp4-src", re.compile(r'"src":"(' + _HTTPS_PREFIX + r'[^"]+\.mp4[^"]*)"')),
]

_LIKE_COUNT = re.compile(r'"like_count":(\d+)')
_COMMENT_COUNT = re.compile(r'"comment_count":(\d+)')
_VIEW_COUNT = re.compile(r'"view_count":(\d+)')
_PLAY_COUNT = re.compile(r'"play_count":(\d+)')
_USERNAME = re.compile(r'"username":"([^"\\]+)"')
_CAPTION = re.compile(r'"caption":\{"text":"((?:[^"\\]|\\.)*)"')


def extract_loose_metadata(text: str) -> Dict[str, Any]:
    """
    Pick individual metadata fields out of page text.

    The result mirrors the layout of a mobile API media item so it can be read
    by the same field mapping. Fields that are not found are left out.
    """
    metadata: Dict[str, Any] = {}

    for key, pattern in (
        ("like_count", _LIKE_COUNT),
        ("comment_count", _COMMENT_COUNT),
        ("view_count", _VIEW_COUNT),
        ("play_count", _PLAY_COUNT),
    ):
        match = pattern.search(text)
        if match:
            metadata[key] = int(match.group(1))

    username = _USERNAME.search(text)
    if username:
        metadata["user"] = {"username": username.group(1)}

    caption = _CAPTION.search(text)
    if caption:
        metadata["caption"] = {"text": _decode_json_string(caption.group(1))}

    return metadata


def find_direct_url(text: str) -> Optional[DirectUrlMatch]:
    """
    Scan page text for a bare media URL, attaching whatever metadata fields are present.

    Matches that do not de-escape to an absolute http(s) URL are skipped.
    """
    for name, pattern in DIRECT_URL_PATTERNS:
        for match in pattern.finditer(text):
            url = absolute_url(match.group(1))
            if url is None:
                continue
            return DirectUrlMatch(
                url=url,
                pattern=name,
                metadata=extract_loose_metadata(text),
            )
    return None
