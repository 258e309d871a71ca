"""Diagnostics sinks that persist raw pages and extraction artifacts for troubleshooting."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)

_UNSAFE_LABEL_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


class DiagnosticsSink(Protocol):
    """Anything that can store a labelled diagnostic artifact."""

    def write(self, label: str, content: Any) -> None:
        ...


class DirectoryDiagnosticsSink:
    """Write each artifact to a timestamped JSON file in a directory."""

    def __init__(self, debug_dir: Path):
        self.debug_dir = Path(debug_dir)
        self.debug_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Debug mode enabled. Debug files will be saved to: %s", self.debug_dir)

    def write(self, label: str, content: Any) -> Optional[Path]:
        """Persist content; failures are logged and never propagated."""
        timestamp = datetime.now(timezone.utc).isoformat().replace(":", "-").replace(".", "-")
        safe_label = _UNSAFE_LABEL_CHARS.sub("-", label).strip("-") or "artifact"
        file_path = self.debug_dir / f"{timestamp}-{safe_label}.json"

        try:
            if isinstance(content, str):
                payload = content
            else:
                payload = json.dumps(content, indent=2, ensure_ascii=False, default=str)
            file_path.write_text(payload, encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to save debug info %s: %s", file_path, exc)
            return None

        logger.debug("Debug info saved to: %s", file_path)
        return file_path
