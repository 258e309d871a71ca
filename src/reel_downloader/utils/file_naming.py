"""Helpers for picking non-colliding output file names."""
from pathlib import Path


def unique_path(directory: Path, file_name: str) -> Path:
    """
    Return a path in directory that does not exist yet.

    ``reel.mp4`` becomes ``reel_1.mp4``, ``reel_2.mp4`` and so on while the
    previous candidate is taken.
    """
    candidate = directory / file_name
    stem, suffix = candidate.stem, candidate.suffix
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem}_{counter}{suffix}"
        counter += 1
    return candidate
