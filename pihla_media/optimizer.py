"""Resize and re-encode images, in place or into a mirrored tree."""

from __future__ import annotations

import asyncio
import io
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from PIL import Image, ImageOps

from .backup import CATEGORY_WEB, BackupLedger
from .config import PipelineConfig
from .errors import UnsupportedFormatError
from .heic import HeicNormalizer, is_heic
from .models import STATUS_FAILED, STATUS_OPTIMIZED, OptimizeResult, SourceAsset
from .paths import heic_output_path, temp_path_for

logger = logging.getLogger("pihla_media.optimizer")

ImageSource = Union[Path, bytes]

OUTPUT_FORMATS = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
    ".webp": "WEBP",
}


def target_size(
    size: Tuple[int, int],
    max_width: int,
    max_height: Optional[int] = None,
) -> Tuple[int, int]:
    """Return the size that fits the bounds without ever enlarging."""
    width, height = size
    scale = 1.0
    if max_width and width > max_width:
        scale = max_width / float(width)
    if max_height and height * scale > max_height:
        scale = max_height / float(height)
    if scale >= 1.0:
        return size
    return (
        max(1, int(round(width * scale))),
        max(1, int(round(height * scale))),
    )


def _has_alpha(image: Image.Image) -> bool:
    return image.mode in ("RGBA", "LA", "PA") or "transparency" in image.info


def _prepare_png(image: Image.Image, config: PipelineConfig) -> Image.Image:
    if config.png_quality >= 100 or image.mode == "P":
        return image
    # Palette quantization; FASTOCTREE is the only method that keeps alpha.
    if _has_alpha(image):
        return image.convert("RGBA").quantize(colors=256, method=Image.Quantize.FASTOCTREE)
    return image.convert("RGB").quantize(colors=256, method=Image.Quantize.MEDIANCUT)


def _icc_profile(image: Image.Image) -> Dict[str, bytes]:
    """Save kwargs that carry the source colour profile; CMYK profiles are dropped with the conversion."""
    profile = image.info.get("icc_profile")
    if not profile or image.mode == "CMYK":
        return {}
    return {"icc_profile": profile}


def encode_image(source: ImageSource, suffix: str, config: PipelineConfig) -> bytes:
    """Resize ``source`` and encode it for ``suffix`` using the configured settings."""
    image_format = OUTPUT_FORMATS.get(suffix.lower())
    label = source if isinstance(source, Path) else Path(f"<buffer>{suffix}")
    if image_format is None:
        raise UnsupportedFormatError(label, f"no encoder for '{suffix}'")

    opened = Image.open(io.BytesIO(source)) if isinstance(source, bytes) else Image.open(source)
    with opened as raw_image:
        icc_profile = _icc_profile(raw_image)
        image = ImageOps.exif_transpose(raw_image)
        new_size = target_size(image.size, config.max_width, config.max_height)
        if new_size != image.size:
            image = image.resize(new_size, Image.Resampling.LANCZOS)

        output = io.BytesIO()
        if image_format == "JPEG":
            if image.mode not in ("RGB", "L"):
                image = image.convert("RGB")
            image.save(
                output,
                format="JPEG",
                quality=config.jpeg_quality,
                progressive=True,
                optimize=True,
                **icc_profile,
            )
        elif image_format == "PNG":
            image = _prepare_png(image, config)
            image.save(
                output,
                format="PNG",
                optimize=True,
                compress_level=config.png_compress_level,
                **icc_profile,
            )
        else:
            if image.mode not in ("RGB", "RGBA"):
                image = image.convert("RGBA" if _has_alpha(image) else "RGB")
            image.save(
                output,
                format="WEBP",
                quality=config.webp_quality,
                method=config.webp_method,
                **icc_profile,
            )
    return output.getvalue()


def is_destination_fresh(source: Path, destination: Path) -> bool:
    """True when ``destination`` exists and was modified strictly after ``source``."""
    if not destination.exists():
        return False
    return destination.stat().st_mtime > source.stat().st_mtime


def copy_collision(path: Path) -> Optional[Path]:
    """Return a sibling source that writes to the same copy-mode destination."""
    if is_heic(path):
        candidates = [heic_output_path(path)]
    elif path.suffix == ".jpg":
        candidates = [path.with_suffix(suffix) for suffix in (".heic", ".HEIC")]
    else:
        return None
    for candidate in candidates:
        if candidate != path and candidate.is_file():
            return candidate
    return None


def _discard(temp_path: Path) -> None:
    try:
        if temp_path.exists():
            temp_path.unlink()
    except OSError as exc:
        logger.warning("Could not remove temporary file %s: %s", temp_path, exc)


def _kb(size: int) -> int:
    return int(round(size / 1024))


class ImageOptimizer:
    """Runs the per-file optimize step for both in-place and copy modes."""

    def __init__(
        self,
        config: PipelineConfig,
        ledger: Optional[BackupLedger] = None,
        normalizer: Optional[HeicNormalizer] = None,
    ) -> None:
        self.config = config
        self.ledger = ledger or BackupLedger(config)
        self.normalizer = normalizer or HeicNormalizer(config.heic_intermediate_quality)

    def _load_source(self, path: Path) -> ImageSource:
        if is_heic(path):
            return self.normalizer.to_jpeg_bytes(path)
        return path

    def _encode_to(self, path: Path, output_suffix: str, temp_path: Path) -> int:
        source = self._load_source(path)
        data = encode_image(source, output_suffix, self.config)
        temp_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path.write_bytes(data)
        return len(data)

    async def optimize_in_place(
        self,
        asset: SourceAsset,
        category: str = CATEGORY_WEB,
    ) -> OptimizeResult:
        """Replace ``asset`` with a smaller encoding, backing up the original first.

        HEIC files are replaced by a ``.jpg`` sibling and removed once the
        JPEG has been committed.
        """
        path = asset.path
        relative = asset.relative_path
        heic = is_heic(path)
        target = heic_output_path(path) if heic else path
        temp_path = temp_path_for(target, self.config.temp_suffix)

        if not heic and asset.size < self.config.min_size_bytes:
            logger.info("⊘ %s - Already optimized (%dKB), skipping", relative, _kb(asset.size))
            return OptimizeResult(path=path, reason="already optimized")

        try:
            await asyncio.to_thread(self.ledger.ensure_backup, asset, category)
            output_size = await asyncio.to_thread(self._encode_to, path, target.suffix, temp_path)

            if output_size >= asset.size:
                await asyncio.to_thread(temp_path.unlink)
                logger.info(
                    "⊘ %s - No improvement, keeping original (%dKB)",
                    relative,
                    _kb(asset.size),
                )
                return OptimizeResult(path=path, reason="no improvement")

            await asyncio.to_thread(os.replace, temp_path, target)
            if heic:
                await asyncio.to_thread(path.unlink)
        except Exception as exc:  # noqa: BLE001
            _discard(temp_path)
            logger.error("✗ Failed to process %s: %s", path, exc)
            return OptimizeResult(path=path, status=STATUS_FAILED, reason=str(exc))

        saved = asset.size - output_size
        logger.info("✓ %s", relative if not heic else f"{relative} → {target.name}")
        logger.info(
            "  %dKB → %dKB (saved %dKB, %d%% smaller)",
            _kb(asset.size),
            _kb(output_size),
            _kb(saved),
            int(round(100 * saved / float(asset.size))),
        )
        return OptimizeResult(
            path=path,
            bytes_saved=saved,
            was_modified=True,
            status=STATUS_OPTIMIZED,
            output_path=target,
        )

    async def optimize_copy(self, asset: SourceAsset, dest_root: Path) -> OptimizeResult:
        """Write an optimized copy of ``asset`` under ``dest_root``.

        The source is never modified. Destinations newer than their source are
        left alone; otherwise the output is written regardless of its size.
        """
        path = asset.path
        relative = asset.relative_path
        destination = dest_root / relative
        if is_heic(path):
            destination = heic_output_path(destination)

        collision = copy_collision(path)
        if collision is not None:
            logger.warning(
                "%s and %s both map to %s; the newer source wins",
                relative,
                collision.name,
                destination.relative_to(dest_root),
            )

        temp_path = temp_path_for(destination, self.config.temp_suffix)
        try:
            if is_destination_fresh(path, destination):
                logger.info("⊘ %s - Up to date, skipping", relative)
                return OptimizeResult(path=path, reason="up to date", output_path=destination)
            output_size = await asyncio.to_thread(
                self._encode_to, path, destination.suffix, temp_path
            )
            await asyncio.to_thread(os.replace, temp_path, destination)
        except Exception as exc:  # noqa: BLE001
            _discard(temp_path)
            logger.error("✗ Failed to process %s: %s", path, exc)
            return OptimizeResult(path=path, status=STATUS_FAILED, reason=str(exc))

        saved = max(0, asset.size - output_size)
        logger.info(
            "✓ %s → %s (%dKB → %dKB)",
            relative,
            destination.relative_to(dest_root),
            _kb(asset.size),
            _kb(output_size),
        )
        return OptimizeResult(
            path=path,
            bytes_saved=saved,
            was_modified=True,
            status=STATUS_OPTIMIZED,
            output_path=destination,
        )
