"""Batch drivers: scan each root and optimize its images one file at a time."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .backup import CATEGORY_ASSETS, CATEGORY_WEB, BackupLedger
from .config import PipelineConfig
from .models import STATUS_FAILED, BatchSummary, OptimizeResult, RestoreSummary, SourceAsset
from .optimizer import ImageOptimizer
from .scanner import iter_images

logger = logging.getLogger("pihla_media.pipeline")


def _stat_asset(path: Path, root: Path, summary: BatchSummary) -> Optional[SourceAsset]:
    try:
        return SourceAsset.from_path(path, root)
    except OSError as exc:
        logger.error("✗ Failed to read %s: %s", path, exc)
        summary.add(OptimizeResult(path=path, status=STATUS_FAILED, reason=str(exc)))
        return None


async def optimize_root_in_place(
    optimizer: ImageOptimizer,
    root: Path,
    category: str,
    recursive: bool = True,
) -> BatchSummary:
    """Optimize every image under ``root`` in place, sequentially."""
    summary = BatchSummary()
    if not root.is_dir():
        logger.info("%s not found, nothing to do", root)
        return summary

    logger.info("Optimizing images in %s...", root)
    for path in iter_images(root, recursive=recursive, include_heic=optimizer.config.include_heic):
        asset = _stat_asset(path, root, summary)
        if asset is not None:
            summary.add(await optimizer.optimize_in_place(asset, category))
    return summary


async def optimize_in_place_roots(
    config: PipelineConfig,
    include_web: bool = True,
    include_assets: bool = True,
    optimizer: Optional[ImageOptimizer] = None,
) -> BatchSummary:
    """Optimize the web tree (recursive) and the flat assets folder in place."""
    optimizer = optimizer or ImageOptimizer(config)
    summary = BatchSummary()
    if include_web:
        summary.merge(await optimize_root_in_place(optimizer, config.web_root, CATEGORY_WEB))
    if include_assets:
        summary.merge(
            await optimize_root_in_place(
                optimizer, config.assets_root, CATEGORY_ASSETS, recursive=False
            )
        )
    return summary


async def sync_uploads(
    config: PipelineConfig,
    optimizer: Optional[ImageOptimizer] = None,
) -> BatchSummary:
    """Write optimized copies of CMS uploads into the web tree.

    The upload root is left untouched; it stays the source of truth.
    """
    optimizer = optimizer or ImageOptimizer(config)
    summary = BatchSummary()
    if not config.upload_root.is_dir():
        logger.info("%s not found, nothing to do", config.upload_root)
        return summary

    logger.info("Optimizing uploads from %s into %s...", config.upload_root, config.web_root)
    for path in iter_images(config.upload_root, recursive=True, include_heic=config.include_heic):
        asset = _stat_asset(path, config.upload_root, summary)
        if asset is not None:
            summary.add(await optimizer.optimize_copy(asset, config.web_root))
    return summary


async def restore_originals(config: PipelineConfig) -> RestoreSummary:
    return await BackupLedger(config).restore()


def log_summary(summary: BatchSummary) -> None:
    saved_mb = summary.total_bytes_saved / 1024 / 1024
    logger.info("========================================")
    logger.info("Image optimization complete!")
    logger.info("Processed: %d images", summary.files_processed)
    logger.info("Skipped: %d, failed: %d", summary.files_skipped, summary.files_failed)
    logger.info("Total saved: %.2fMB", saved_mb)
