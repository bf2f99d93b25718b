"""Backup capture and restore for images optimized in place.

Backups mirror the live tree under ``backup_root``. Web images keep their
relative path; flat site assets live under ``backup_root/assets`` so the two
categories never collide. A backup is written once and never overwritten,
which keeps the pristine original even after repeated optimize runs.

Backup and restore are not locked against each other. Do not run them
concurrently on the same roots.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

from .config import ASSETS_BACKUP_SUBDIR, PipelineConfig
from .models import RestoreSummary, SourceAsset

logger = logging.getLogger("pihla_media.backup")

CATEGORY_WEB = "web"
CATEGORY_ASSETS = "assets"


class BackupLedger:
    """Maps live images to their backup copies and back."""

    def __init__(self, config: PipelineConfig) -> None:
        self.config = config

    def backup_path_for(self, asset: SourceAsset, category: str = CATEGORY_WEB) -> Path:
        if category == CATEGORY_ASSETS:
            return self.config.backup_root / ASSETS_BACKUP_SUBDIR / asset.relative_path
        if category == CATEGORY_WEB:
            return self.config.backup_root / asset.relative_path
        raise ValueError(f"Unknown backup category: {category}")

    def live_path_for(self, backup_file: Path) -> Path:
        relative = backup_file.relative_to(self.config.backup_root)
        parts = relative.parts
        if len(parts) > 1 and parts[0] == ASSETS_BACKUP_SUBDIR:
            return self.config.assets_root.joinpath(*parts[1:])
        return self.config.web_root / relative

    @staticmethod
    def is_already_backed_up(backup_path: Path) -> bool:
        return backup_path.exists()

    def ensure_backup(self, asset: SourceAsset, category: str = CATEGORY_WEB) -> bool:
        """Copy the asset to its backup path unless a backup already exists.

        Returns True when a new backup was written.
        """
        backup_path = self.backup_path_for(asset, category)
        if self.is_already_backed_up(backup_path):
            logger.debug("Backup already present for %s", asset.relative_path)
            return False
        backup_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(asset.path, backup_path)
        logger.debug("Backed up %s to %s", asset.path, backup_path)
        return True

    def _restore_file(self, backup_file: Path, target: Path) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(backup_file, target)

    async def restore(self) -> RestoreSummary:
        """Copy every backup over its live location, overwriting optimized files."""
        summary = RestoreSummary()
        backup_root = self.config.backup_root
        if not backup_root.is_dir():
            logger.info("No backup folder found. Nothing to restore.")
            return summary

        logger.info("Restoring original images from %s", backup_root)
        for backup_file in sorted(backup_root.rglob("*")):
            if not backup_file.is_file():
                continue
            relative = backup_file.relative_to(backup_root)
            target = self.live_path_for(backup_file)
            try:
                await asyncio.to_thread(self._restore_file, backup_file, target)
            except OSError as exc:
                logger.error("✗ Failed to restore %s: %s", relative, exc)
                summary.failed += 1
                continue
            logger.info("✓ Restored %s", relative)
            summary.restored += 1
            summary.restored_paths.append(target)

        logger.info("Restore complete! Restored %d files.", summary.restored)
        return summary
