# src/reel_downloader/__main__.py
"""Command line entry point for the Instagram Reel Downloader."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config.settings import settings
from .services.diagnostics import DirectoryDiagnosticsSink
from .services.errors import (
    FetchExhaustedError,
    InvalidUrlError,
    NoMediaFoundError,
)
from .services.instagram_extractor import InstagramReelExtractor
from .services.video_downloader import BatchResult, DownloadError, VideoDownloader

logger = logging.getLogger(__name__)

def setup_logging(level: str) -> None:
    """Configure logging for the application."""
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=log_format,
        stream=sys.stdout,
        force=True,
    )

    # Set external loggers to WARNING level
    logging.getLogger("urllib3").setLevel(logging.WARNING)

def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with download, batch and from-file commands."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-o", "--output", type=Path, default=settings.OUTPUT_DIR, help="Output directory")
    common.add_argument("-q", "--quiet", action="store_true", help="Suppress progress output")
    common.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    common.add_argument("-d", "--debug", action="store_true", default=settings.DEBUG,
                        help="Enable debug mode for troubleshooting")
    common.add_argument("--debug-dir", type=Path, default=settings.DEBUG_DIR,
                        help="Directory to save debug information")
    common.add_argument("--save-raw", action="store_true", default=settings.SAVE_RAW_PAGES,
                        help="Also save every fetched page body to the debug directory")
    common.add_argument("-m", "--save-metadata", action="store_true", help="Save reel metadata as JSON file")

    multi = argparse.ArgumentParser(add_help=False)
    multi.add_argument("-s", "--skip-existing", action="store_true",
                       help="Skip downloading if video and metadata files already exist")
    multi.add_argument("-c", "--continue-on-error", action="store_true",
                       help="Continue downloading if one URL fails")

    parser = argparse.ArgumentParser(
        prog="reel-downloader",
        description="Download Instagram reels from URLs",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    download = subparsers.add_parser("download", parents=[common], help="Download a single Instagram reel")
    download.add_argument("url", help="Instagram reel URL")

    batch = subparsers.add_parser("batch", parents=[common, multi], help="Download multiple Instagram reels")
    batch.add_argument("urls", nargs="+", help="Instagram reel URLs (space-separated)")

    from_file = subparsers.add_parser(
        "from-file", parents=[common, multi], help="Download Instagram reels listed in a file (one per line)"
    )
    from_file.add_argument("file", type=Path, help="Path to file containing URLs")

    return parser

def build_downloader(args: argparse.Namespace) -> VideoDownloader:
    """Create the downloader from parsed arguments and settings."""
    extractor = InstagramReelExtractor(
        timeout=settings.REQUEST_TIMEOUT,
        user_agent=settings.USER_AGENT,
        mobile_user_agent=settings.MOBILE_USER_AGENT,
        proxy=settings.get_proxy(),
        save_raw_pages=args.save_raw,
    )

    diagnostics = None
    if args.debug or args.save_raw:
        try:
            diagnostics = DirectoryDiagnosticsSink(args.debug_dir)
        except OSError as e:
            raise DownloadError(f"Failed to create debug directory {args.debug_dir}: {e}") from e

    return VideoDownloader(
        output_dir=args.output,
        extractor=extractor,
        save_metadata=args.save_metadata,
        skip_existing=getattr(args, "skip_existing", False),
        diagnostics=diagnostics,
        timeout=settings.DOWNLOAD_TIMEOUT,
    )

def troubleshooting_tip(error: BaseException) -> str:
    """Pick a hint for the user based on what failed."""
    cause = error.__cause__ or error
    if isinstance(cause, InvalidUrlError):
        return ("Make sure you are using a valid Instagram URL. "
                "Example: https://www.instagram.com/reel/ABC123xyz/")
    if isinstance(cause, NoMediaFoundError):
        return "This might be a private post or not a video/reel. Make sure the content is public."
    if isinstance(cause, FetchExhaustedError):
        return "Check your internet connection or try again later. Instagram might be rate-limiting requests."
    return ""

def _report_failure(error: BaseException, debug: bool) -> None:
    print("\n❌ Download failed!", file=sys.stderr)
    for line in str(error).splitlines():
        print(f"   {line}", file=sys.stderr)

    tip = troubleshooting_tip(error)
    if tip:
        print(f"\n💡 Tip: {tip}", file=sys.stderr)
    if debug:
        print("\n🔍 Debug mode is enabled. Check the debug directory for more information.", file=sys.stderr)
    else:
        print("\n💡 Tip: Try again with --debug flag for more detailed error information.", file=sys.stderr)

def _report_batch(batch: BatchResult, quiet: bool) -> int:
    downloaded = [result for result in batch.results if not result.skipped]
    skipped = [result for result in batch.results if result.skipped]
    if not quiet:
        print(f"\n✅ Downloaded: {len(downloaded)}  ⏭️  Skipped: {len(skipped)}  ❌ Failed: {len(batch.errors)}")
    # Skipped reels are already on disk and count as success
    return 0 if batch.results else 1

def main(argv: Optional[List[str]] = None) -> int:
    """Application entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = "DEBUG" if args.verbose else ("WARNING" if args.quiet else settings.LOG_LEVEL)
    setup_logging(level)

    try:
        downloader = build_downloader(args)

        if args.command == "download":
            if not args.quiet:
                print(f"\n📱 Instagram Reel Downloader\n🔗 URL: {args.url}\n📁 Output directory: {args.output}\n")
            result = downloader.download_reel(args.url)
            if not args.quiet:
                size_mb = result.video_path.stat().st_size / (1024 * 1024)
                print("\n✅ Download completed successfully!")
                print(f"📂 File saved to: {result.video_path}")
                print(f"📊 File size: {size_mb:.2f} MB")
            return 0

        if args.command == "batch":
            batch = downloader.download_reels(args.urls, continue_on_error=args.continue_on_error)
        else:
            batch = downloader.download_from_file(args.file, continue_on_error=args.continue_on_error)
        return _report_batch(batch, args.quiet)

    except DownloadError as e:
        _report_failure(e, args.debug)
        return 1
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        return 1

def run() -> None:
    """Console script wrapper that exits with the command status."""
    sys.exit(main())

if __name__ == "__main__":
    run()
