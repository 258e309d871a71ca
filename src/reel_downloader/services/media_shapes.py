"""Field-path shapes for the object graphs Instagram has served its post data in.

Each shape knows one historical layout. Shapes are tried in order and the
first one that yields an absolute media URL wins; a layout that is present
but has no media URL does not count as a match.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from .models import DirectUrlMatch
from .page_parsers import absolute_url


@dataclass
class ShapeResult:
    """Media URL and metadata recovered by one shape."""

    media_url: str
    thumbnail_url: str = ""
    caption: str = ""
    owner: str = ""
    like_count: int = 0
    comment_count: int = 0
    view_count: int = 0


Shape = Callable[[Any, str, str], Optional[ShapeResult]]


def _dig(value: Any, *path: Any) -> Any:
    """Walk nested dicts/lists, returning None as soon as a step is missing."""
    for key in path:
        if isinstance(key, int):
            if not isinstance(value, list) or len(value) <= key:
                return None
            value = value[key]
        else:
            if not isinstance(value, dict):
                return None
            value = value.get(key)
    return value


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _first_count(node: Dict[str, Any], *paths: Tuple[str, ...]) -> int:
    for path in paths:
        count = _to_int(_dig(node, *path))
        if count:
            return count
    return 0


def pick_highest_resolution_video(video_versions: Any) -> Optional[str]:
    """Pick best video candidate by pixel area; the first entry wins ties."""
    if not isinstance(video_versions, list):
        return None

    best_url: Optional[str] = None
    best_area = -1
    for item in video_versions:
        if not isinstance(item, dict) or not item.get("url"):
            continue
        area = _to_int(item.get("width")) * _to_int(item.get("height"))
        if area > best_area:
            best_area = area
            best_url = str(item["url"])
    return best_url


def _result(media_url: Any, thumbnail_url: Any = "", **fields: Any) -> Optional[ShapeResult]:
    url = absolute_url(media_url)
    if url is None:
        return None
    return ShapeResult(media_url=url, thumbnail_url=absolute_url(thumbnail_url) or "", **fields)


def _from_api_item(item: Dict[str, Any], media_url: Any = None) -> Optional[ShapeResult]:
    """Read a mobile API style media item (``video_versions``, ``user``, ``like_count``)."""
    if media_url is None:
        media_url = pick_highest_resolution_video(item.get("video_versions"))
    return _result(
        media_url,
        thumbnail_url=_dig(item, "image_versions2", "candidates", 0, "url"),
        caption=_text(_dig(item, "caption", "text")),
        owner=_text(_dig(item, "user", "username")),
        like_count=_to_int(item.get("like_count")),
        comment_count=_to_int(item.get("comment_count")),
        view_count=_to_int(item.get("view_count") or item.get("play_count")),
    )


def _from_graphql_node(node: Dict[str, Any], owner: Any = None) -> Optional[ShapeResult]:
    """Read a web GraphQL ``shortcode_media`` style node."""
    if owner is None:
        owner = node.get("owner")
    return _result(
        node.get("video_url"),
        thumbnail_url=node.get("display_url") or node.get("thumbnail_src"),
        caption=_text(_dig(node, "edge_media_to_caption", "edges", 0, "node", "text")),
        owner=_text(_dig(owner, "username")),
        like_count=_first_count(node, ("edge_media_preview_like", "count"), ("edge_liked_by", "count"), ("like_count",)),
        comment_count=_first_count(
            node,
            ("edge_media_to_comment", "count"),
            ("edge_media_to_parent_comment", "count"),
            ("comment_count",),
        ),
        view_count=_first_count(node, ("video_view_count",), ("video_play_count",), ("view_count",)),
    )


def _video_node(node: Any) -> Optional[ShapeResult]:
    if isinstance(node, dict) and node.get("is_video"):
        return _from_graphql_node(node)
    return None


def _direct_url(document: Any, page_text: str, shortcode: str) -> Optional[ShapeResult]:
    if not isinstance(document, DirectUrlMatch):
        return None
    return _from_api_item(document.metadata, media_url=document.url)


def _post_page_require(document: Any, page_text: str, shortcode: str) -> Optional[ShapeResult]:
    entries = _dig(document, "require")
    if not isinstance(entries, list):
        return None

    entry = next(
        (
            candidate
            for candidate in entries
            if isinstance(candidate, list)
            and candidate
            and (
                candidate[0] == "PostPage"
                or any(isinstance(sub, dict) and sub.get("shortcode") == shortcode for sub in candidate)
            )
        ),
        None,
    )
    if entry is None:
        return None

    payload = _dig(entry, 1)
    media = _dig(payload, "graphql", "shortcode_media")
    if isinstance(media, dict):
        return _video_node(media)

    item = _dig(payload, "items", 0)
    if isinstance(item, dict):
        return _from_api_item(item)
    return None


def _shared_data_entry(document: Any, page_text: str, shortcode: str) -> Optional[ShapeResult]:
    return _video_node(_dig(document, "entry_data", "PostPage", 0, "graphql", "shortcode_media"))


def _api_items(document: Any, page_text: str, shortcode: str) -> Optional[ShapeResult]:
    item = _dig(document, "items", 0)
    if isinstance(item, dict):
        return _from_api_item(item)
    return None


def _resolve_ref(cache: Dict[str, Any], value: Any) -> Any:
    """Follow an Apollo cache reference (``__ref`` or legacy ``{"type": "id"}``) if value is one."""
    if isinstance(value, dict):
        ref = value.get("__ref")
        if ref is None and value.get("type") == "id":
            ref = value.get("id")
        if isinstance(ref, str) and isinstance(cache.get(ref), dict):
            return cache[ref]
    return value


def _apollo_state(document: Any, page_text: str, shortcode: str) -> Optional[ShapeResult]:
    if not isinstance(document, dict) or "ROOT_QUERY" not in document:
        return None

    keys = [key for key in document if f"Media:{shortcode}" in key or f"ShortcodeMedia:{shortcode}" in key]
    if not keys:
        return None

    media = document[keys[0]]
    if not isinstance(media, dict):
        return None

    owner = _resolve_ref(document, media.get("owner"))
    if media.get("video_url"):
        return _from_graphql_node(media, owner=owner)

    if media.get("videoUrl"):
        return _result(
            media.get("videoUrl"),
            thumbnail_url=media.get("displayUrl") or media.get("thumbnailSrc"),
            caption=_text(media.get("caption")),
            owner=_text(_dig(owner, "username")),
            like_count=_to_int(media.get("likeCount")),
            comment_count=_to_int(media.get("commentCount")),
            view_count=_to_int(media.get("viewCount")),
        )
    return None


def _graphql_media(document: Any, page_text: str, shortcode: str) -> Optional[ShapeResult]:
    return _video_node(_dig(document, "graphql", "shortcode_media"))


_MAX_WALK_DEPTH = 64
_WEB_INFO_KEY = "xdt_api__v1__media__shortcode__web_info"
_MEDIA_NODE_KEYS = ("xdt_shortcode_media", "shortcode_media")


def _walk(value: Any, depth: int = 0) -> Iterator[Dict[str, Any]]:
    if depth > _MAX_WALK_DEPTH:
        return
    if isinstance(value, dict):
        yield value
        children = value.values()
    elif isinstance(value, list):
        children = value
    else:
        return
    for child in children:
        yield from _walk(child, depth + 1)


def _relay_web_info(document: Any, page_text: str, shortcode: str) -> Optional[ShapeResult]:
    if not isinstance(document, dict):
        return None

    for node in _walk(document):
        item = _dig(node, _WEB_INFO_KEY, "items", 0)
        if isinstance(item, dict):
            result = _from_api_item(item)
            if result:
                return result

        for key in _MEDIA_NODE_KEYS:
            media = node.get(key)
            if isinstance(media, dict) and media.get("video_url"):
                result = _from_graphql_node(media)
                if result:
                    return result
    return None


_PAGE_TEXT_PATTERNS = [
    re.compile(r'"video_versions":\[\{[^\}]*"url":"([^"]+)"', re.IGNORECASE),
    re.compile(r'"url":"(https:(?:\\?/){2}[^"]+\.mp4[^"]*)"', re.IGNORECASE),
    # Also catches prefixed keys such as "video_url" and "playable_url"
    re.compile(r'url":"(https:(?:\\?/){2}[^"]+\.mp4[^"]*)"', re.IGNORECASE),
    re.compile(r'"url":\s*"([^"]+\.mp4[^"]*)"', re.IGNORECASE),
    re.compile(r'url:\s*"([^"]+\.mp4[^"]*)"', re.IGNORECASE),
    re.compile(r'"contentUrl":"([^"]+\.mp4[^"]*)"', re.IGNORECASE),
]
_PRELOADER_MARKER = "PolarisPostRootQueryRelayPreloader"


def _preloader_item(page_text: str) -> Optional[Dict[str, Any]]:
    marker = page_text.find(_PRELOADER_MARKER)
    if marker < 0:
        return None
    start = page_text.find('{"__bbox":', marker)
    if start < 0:
        return None
    try:
        payload, _ = json.JSONDecoder().raw_decode(page_text, start)
    except ValueError:
        return None
    item = _dig(payload, "__bbox", "result", "data", _WEB_INFO_KEY, "items", 0)
    return item if isinstance(item, dict) else None


def _page_text(document: Any, page_text: str, shortcode: str) -> Optional[ShapeResult]:
    # The preloader payload carries metadata, bare URL patterns do not
    item = _preloader_item(page_text)
    if item is not None:
        result = _from_api_item(item)
        if result:
            return result

    for pattern in _PAGE_TEXT_PATTERNS:
        match = pattern.search(page_text)
        if match:
            result = _result(match.group(1))
            if result:
                return result
    return None


SHAPES: List[Tuple[str, Shape]] = [
    ("direct-url", _direct_url),
    ("post-page-require", _post_page_require),
    ("shared-data-entry", _shared_data_entry),
    ("api-items", _api_items),
    ("apollo-state", _apollo_state),
    ("graphql-media", _graphql_media),
    ("relay-web-info", _relay_web_info),
    ("page-text", _page_text),
]


def resolve_fields(document: Any, page_text: str, shortcode: str) -> Optional[Tuple[str, ShapeResult]]:
    """Return the name and result of the first shape that finds a media URL."""
    for name, shape in SHAPES:
        result = shape(document, page_text, shortcode)
        if result is not None:
            return name, result
    return None
