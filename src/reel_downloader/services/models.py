"""Data containers passed between the fetcher, the extraction cascade and the downloader."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Mapping, Optional

ClientProfile = Literal["desktop", "mobile"]


@dataclass(frozen=True)
class FetchAttempt:
    """One URL variant paired with the simulated client that requests it."""

    url: str
    profile: ClientProfile
    json_hint: bool = False


@dataclass
class PageResponse:
    """Raw body of the fetch attempt that succeeded."""

    attempt: FetchAttempt
    status_code: int
    headers: Mapping[str, str]
    text: str

    @property
    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return str(value).lower()
        return ""


@dataclass
class DirectUrlMatch:
    """Media URL found by scanning the page text, plus any loose metadata fields."""

    url: str
    pattern: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ReelMedia:
    """Resolved direct media URL and metadata before local download."""

    media_url: str
    file_name: str
    source_url: str
    thumbnail_url: str = ""
    caption: str = ""
    owner: str = ""
    like_count: int = 0
    comment_count: int = 0
    view_count: int = 0
    # Name of the field-path shape that produced this result
    shape: str = ""

    def to_metadata(self, downloaded_at: str, video_file_name: Optional[str] = None) -> Dict[str, Any]:
        """Build the JSON sidecar document for a downloaded video."""
        return {
            "originalUrl": self.source_url,
            "owner": self.owner,
            "likes": self.like_count,
            "comments": self.comment_count,
            "views": self.view_count,
            "caption": self.caption,
            "downloadedAt": downloaded_at,
            "videoFileName": video_file_name or self.file_name,
            "thumbnailUrl": self.thumbnail_url,
        }
