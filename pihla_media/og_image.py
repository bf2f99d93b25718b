"""Open Graph share image built from the site logo."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple

from PIL import Image

from .optimizer import target_size

logger = logging.getLogger("pihla_media.og_image")

OG_SIZE = (1200, 630)
OG_BACKGROUND = (244, 244, 244)


def build_og_image(
    logo_path: Path,
    output_path: Path,
    size: Tuple[int, int] = OG_SIZE,
    background: Tuple[int, int, int] = OG_BACKGROUND,
    logo_width_ratio: float = 0.6,
    quality: int = 90,
) -> Tuple[int, int]:
    """Centre the logo on a solid canvas and save it as JPEG.

    The logo is scaled down to ``logo_width_ratio`` of the canvas width and
    to the canvas height, never up. Returns the final logo size.
    """
    width, height = size
    canvas = Image.new("RGB", size, background)
    with Image.open(logo_path) as raw_logo:
        logger.info("Logo dimensions: %dx%dpx", raw_logo.width, raw_logo.height)
        logo = raw_logo.convert("RGBA")
        logo_size = target_size(logo.size, int(round(width * logo_width_ratio)), height)
        if logo_size != logo.size:
            logo = logo.resize(logo_size, Image.Resampling.LANCZOS)

    offset = ((width - logo.width) // 2, (height - logo.height) // 2)
    canvas.paste(logo, offset, mask=logo)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    canvas.save(output_path, format="JPEG", quality=quality)
    logger.info("✓ Created %s (%dx%dpx)", output_path.name, width, height)
    logger.info("  Logo size: %dx%dpx", logo.width, logo.height)
    return logo.size
