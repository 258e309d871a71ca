"""Instagram reel downloading service built on the page extractor."""
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import requests

from .diagnostics import DiagnosticsSink
from .errors import ReelDownloaderError
from .http_client import FetchError, HttpFetcher
from .instagram_extractor import InstagramReelExtractor
from .instagram_url import extract_shortcode
from .models import ReelMedia
from ..utils.file_naming import unique_path

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 64


class DownloadError(ReelDownloaderError):
    """Raised when a reel could not be resolved or written to disk."""


@dataclass
class DownloadResult:
    """Files produced for one reel URL."""

    url: str
    video_path: Path
    media: Optional[ReelMedia] = None
    thumbnail_path: Optional[Path] = None
    metadata_path: Optional[Path] = None
    skipped: bool = False


@dataclass
class BatchResult:
    """Outcome of downloading several URLs in sequence."""

    results: List[DownloadResult] = field(default_factory=list)
    errors: List[Tuple[str, str]] = field(default_factory=list)


class VideoDownloader:
    """Service for downloading Instagram reels, thumbnails and metadata sidecars."""

    def __init__(
        self,
        output_dir: Path,
        extractor: Optional[InstagramReelExtractor] = None,
        fetcher: Optional[HttpFetcher] = None,
        save_metadata: bool = False,
        skip_existing: bool = False,
        diagnostics: Optional[DiagnosticsSink] = None,
        timeout: float = 30.0,
    ):
        """Initialize the video downloader."""
        self.output_dir = Path(output_dir)
        self.extractor = extractor or InstagramReelExtractor(fetcher=fetcher)
        self.fetcher = fetcher or self.extractor.fetcher
        self.save_metadata = save_metadata
        self.skip_existing = skip_existing
        self.diagnostics = diagnostics
        self.timeout = timeout

    def download_reel(self, url: str) -> DownloadResult:
        """Resolve an Instagram URL and save its video, thumbnail and metadata."""
        logger.info("Fetching information for: %s", url)
        try:
            existing = self._find_existing(url)
            if existing is not None:
                logger.info("Skipping %s, already downloaded to %s", url, existing.video_path)
                return existing

            media = self.extractor.get_media_info(url, diagnostics=self.diagnostics)
            logger.info("Downloading reel: %s", media.file_name)
            if media.owner:
                logger.info("Creator: %s", media.owner)
            if media.caption:
                short_caption = media.caption[:50] + "..." if len(media.caption) > 50 else media.caption
                logger.info("Caption: %s", short_caption)

            video_path = self._download_file(media.media_url, media.file_name)
        except DownloadError:
            raise
        except ReelDownloaderError as e:
            raise DownloadError(f"Failed to download reel: {e}") from e

        result = DownloadResult(url=url, video_path=video_path, media=media)

        if media.thumbnail_url:
            try:
                result.thumbnail_path = self._download_file(
                    media.thumbnail_url, f"{video_path.stem}.jpg", quiet=True
                )
                logger.info("Thumbnail saved to: %s", result.thumbnail_path)
            except DownloadError as e:
                logger.warning("Failed to download thumbnail: %s", e)

        if self.save_metadata:
            result.metadata_path = self._write_metadata(media, video_path)

        logger.info("Successfully downloaded to: %s", video_path)
        return result

    def download_reels(self, urls: Iterable[str], continue_on_error: bool = False) -> BatchResult:
        """Download several reels one after another."""
        batch = BatchResult()
        for url in urls:
            try:
                batch.results.append(self.download_reel(url))
            except DownloadError as e:
                logger.error("Failed to download %s: %s", url, e)
                batch.errors.append((url, str(e)))
                if not continue_on_error:
                    break

        if batch.errors:
            logger.error("Errors occurred while downloading reels:")
            for url, error in batch.errors:
                logger.error("- %s: %s", url, error)
        return batch

    def download_from_file(self, path: Path, continue_on_error: bool = False) -> BatchResult:
        """Download every URL listed in a text file (one per line, # for comments)."""
        try:
            lines = Path(path).read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise DownloadError(f"Failed to read URL file {path}: {e}") from e

        urls = [line.strip() for line in lines if line.strip() and not line.strip().startswith("#")]
        logger.info("Found %d URLs in %s", len(urls), path)
        return self.download_reels(urls, continue_on_error=continue_on_error)

    def _find_existing(self, url: str) -> Optional[DownloadResult]:
        """Return a skipped result when the video (and sidecar, if enabled) is already on disk."""
        if not self.skip_existing:
            return None

        shortcode = extract_shortcode(url)
        video_path = self.output_dir / f"{shortcode}.mp4"
        metadata_path = video_path.with_suffix(".json")
        if not video_path.exists():
            return None
        if self.save_metadata and not metadata_path.exists():
            return None

        return DownloadResult(
            url=url,
            video_path=video_path,
            metadata_path=metadata_path if metadata_path.exists() else None,
            skipped=True,
        )

    def _download_file(self, url: str, file_name: str, quiet: bool = False) -> Path:
        """Stream url into a non-colliding file in the output directory."""
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DownloadError(f"Failed to create output directory {self.output_dir}: {e}") from e
        out_path = unique_path(self.output_dir, file_name)
        if out_path.name != file_name and not quiet:
            logger.info("File already exists. Using unique filename: %s", out_path.name)

        logger.debug("Downloading from: %s", url)
        try:
            response = self.fetcher.stream(url, self._download_headers(), self.timeout)
        except FetchError as e:
            raise DownloadError(f"Failed to download file: {e}") from e

        total_size = int(response.headers.get("content-length") or 0)
        total_written = 0
        last_logged_percent = 0
        try:
            with open(out_path, "wb") as file_handle:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    file_handle.write(chunk)
                    total_written += len(chunk)

                    if total_size > 0 and not quiet:
                        percent = total_written * 100 // total_size
                        if percent >= last_logged_percent + 10:
                            logger.info(
                                "Download progress: %d%% (%d / %d bytes)", percent, total_written, total_size
                            )
                            last_logged_percent = percent // 10 * 10
        except (requests.RequestException, OSError) as e:
            out_path.unlink(missing_ok=True)
            raise DownloadError(f"Connection error during download: {e}") from e
        finally:
            response.close()

        if total_written <= 0:
            out_path.unlink(missing_ok=True)
            raise DownloadError("Failed to download file: Downloaded file is empty")

        if not quiet:
            logger.info("Download completed: %s", out_path.name)
        return out_path

    def _write_metadata(self, media: ReelMedia, video_path: Path) -> Path:
        """Write the JSON sidecar next to the video."""
        metadata_path = video_path.with_suffix(".json")
        downloaded_at = datetime.now(timezone.utc).isoformat()
        document = media.to_metadata(downloaded_at=downloaded_at, video_file_name=video_path.name)
        try:
            metadata_path.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            raise DownloadError(f"Failed to write metadata {metadata_path}: {e}") from e
        logger.info("Metadata saved to: %s", metadata_path)
        return metadata_path

    def _download_headers(self) -> Dict[str, str]:
        """Headers for media binary downloads."""
        return {
            "User-Agent": self.extractor.user_agents["desktop"],
            "Accept": "*/*",
            "Accept-Language": "en-US,en;q=0.9",
            "Referer": "https://www.instagram.com/",
            "Origin": "https://www.instagram.com",
            "Connection": "keep-alive",
            "Sec-Fetch-Dest": "video",
            "Sec-Fetch-Mode": "cors",
            "Sec-Fetch-Site": "cross-site",
            "Pragma": "no-cache",
            "Cache-Control": "no-cache",
        }
