# src/reel_downloader/config/settings.py
"""Application settings and configuration management."""
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

class Settings(BaseSettings):
    """Application settings."""

    # Output
    OUTPUT_DIR: Path = Path("downloads")

    # Debug artifacts
    DEBUG: bool = False
    DEBUG_DIR: Path = Path("debug")
    SAVE_RAW_PAGES: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    # Request identity
    USER_AGENT: Optional[str] = None
    MOBILE_USER_AGENT: Optional[str] = None

    # Timeouts in seconds
    REQUEST_TIMEOUT: float = 15.0
    DOWNLOAD_TIMEOUT: float = 30.0

    # Proxy: user:pass@host:port, host:port or host:port:user:pass
    PROXY: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def get_proxy(self) -> Optional[str]:
        """Get the configured proxy as a URL, or None."""
        if not self.PROXY:
            return None

        normalized = self._normalize_proxy(self.PROXY)
        if not normalized:
            logging.getLogger(__name__).warning(
                "Skipping invalid proxy definition: %s", self.PROXY
            )
        return normalized

    @staticmethod
    def _normalize_proxy(proxy: str) -> Optional[str]:
        """Normalize various proxy formats into a URL with credentials."""
        proxy = proxy.strip()
        if not proxy:
            return None

        scheme = "http"
        remainder = proxy

        if "://" in proxy:
            scheme, remainder = proxy.split("://", 1)
            scheme = scheme or "http"

        if "@" in remainder:
            # Already contains credentials separator
            return f"{scheme}://{remainder}"

        parts = remainder.split(":")
        if len(parts) == 2:
            host, port = parts
            return f"{scheme}://{host}:{port}"

        if len(parts) == 4:
            host, port, username, password = parts
            return f"{scheme}://{username}:{password}@{host}:{port}"

        return None

settings = Settings()
