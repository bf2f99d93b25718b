"""Path helpers shared by the pipeline and the site's image references."""

from __future__ import annotations

from pathlib import Path

UPLOADS_PREFIX = "/uploads/"
WEB_PREFIX = "/images/web/"


def optimized_image_path(upload_path: str) -> str:
    """Convert a CMS upload path to its optimized web image path.

    ``/uploads/artists/artist.jpg`` becomes ``/images/web/artists/artist.jpg``.
    Only the first occurrence of the prefix is replaced; empty input yields an
    empty string.
    """
    if not upload_path:
        return ""
    return upload_path.replace(UPLOADS_PREFIX, WEB_PREFIX, 1)


def temp_path_for(path: Path, suffix: str = ".tmp") -> Path:
    return path.with_name(path.name + suffix)


def heic_output_path(path: Path) -> Path:
    """HEIC sources are always written out as ``.jpg``."""
    return path.with_suffix(".jpg")
