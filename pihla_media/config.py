"""Configuration objects and constants for the media pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

DEFAULT_MAX_WIDTH = 1920
DEFAULT_QUALITY = 85
MIN_OPTIMIZE_BYTES = 100 * 1024
ASSETS_BACKUP_SUBDIR = "assets"


@dataclass
class PipelineConfig:
    """Roots, thresholds and encoder settings shared by every pipeline stage."""

    upload_root: Path
    web_root: Path
    assets_root: Path
    backup_root: Path
    content_root: Path
    max_width: int = DEFAULT_MAX_WIDTH
    max_height: Optional[int] = None
    jpeg_quality: int = DEFAULT_QUALITY
    png_quality: int = DEFAULT_QUALITY
    png_compress_level: int = 9
    webp_quality: int = DEFAULT_QUALITY
    webp_method: int = 6
    heic_intermediate_quality: int = 100
    min_size_bytes: int = MIN_OPTIMIZE_BYTES
    include_heic: bool = True
    temp_suffix: str = ".tmp"

    @classmethod
    def from_public_root(cls, public_root: Path, **overrides: Any) -> "PipelineConfig":
        """Build a config for the site's standard ``public/`` layout."""
        public_root = Path(public_root)
        roots = {
            "upload_root": public_root / "images" / "uploads",
            "web_root": public_root / "images" / "web",
            "assets_root": public_root / "assets",
            "backup_root": public_root / "images" / "originals",
            "content_root": public_root / "content",
        }
        roots.update(overrides)
        return cls(**roots)
