"""HEIC to JPEG bridge used before optimization."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Optional

from filetype import guess
from PIL import Image, ImageOps
from pillow_heif import register_heif_opener

from .errors import HeicDecodeError
from .scanner import HEIC_SUFFIXES

logger = logging.getLogger("pihla_media.heic")

register_heif_opener()

# Formats Pillow can already decode, so a mislabelled file is passed through as-is.
PASSTHROUGH_FORMATS = {"jpg", "png", "webp"}


def is_heic(path: Path) -> bool:
    return path.suffix.lower() in HEIC_SUFFIXES


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


class HeicNormalizer:
    """Decode HEIC files into JPEG bytes the optimizer can consume.

    The intermediate JPEG is written at maximum quality; size control
    happens later in the optimizer.
    """

    def __init__(self, quality: int = 100) -> None:
        self.quality = quality

    def to_jpeg_bytes(self, path: Path) -> bytes:
        data = path.read_bytes()
        detected = detect_image_format(data)
        if detected in PASSTHROUGH_FORMATS:
            logger.debug("%s is actually %s data; passing through", path, detected)
            return data

        try:
            with Image.open(io.BytesIO(data)) as raw_image:
                icc_profile = raw_image.info.get("icc_profile")
                image = ImageOps.exif_transpose(raw_image)
                if image.mode != "RGB":
                    image = image.convert("RGB")
                output = io.BytesIO()
                save_args = {"icc_profile": icc_profile} if icc_profile else {}
                image.save(output, format="JPEG", quality=self.quality, **save_args)
        except Exception as exc:  # noqa: BLE001
            raise HeicDecodeError(path, f"could not decode HEIC ({exc})") from exc

        logger.debug(
            "Converted %s to JPEG intermediate (%d -> %d bytes)",
            path,
            len(data),
            output.tell(),
        )
        return output.getvalue()
