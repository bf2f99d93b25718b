"""One-time migration of the legacy flat ``public/assets`` layout.

New structure:

- ``public/assets/``            site infrastructure (logos, wallpapers, patterns)
- ``public/images/downloads/``  developer staging area
- ``public/images/uploads/``    high-res sources from the CMS
- ``public/images/web/``        optimized web images organized by page/section

Files are copied, never moved, so a partial run can simply be repeated.
Content JSON is rewritten as plain text: every ``from`` substring is replaced
globally, which also hits any unrelated string that happens to contain it.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import ReorganizeSummary

logger = logging.getLogger("pihla_media.reorganize")

NEW_FOLDERS = (
    "images/downloads",
    "images/uploads",
    "images/web/media/carousel",
    "images/web/artists",
    "images/web/productions",
    "images/web/home",
)

SITE_ASSET_FILES = (
    "pihla-folk-logo.png",
    "pihla-folk-text-logo.png",
    "pihla-folk-icon.png",
    "wallpaper-home-bg.jpg",
    "wallpaper-bg.jpg",
    "wallpaper-productions-bg.jpg",
    "pattern-bg.jpg",
    "pattern-background.jpg",
    "hero-bg-pihlafolk.jpg",
)

CAROUSEL_ORIGINALS = (
    "ilona-korhonen-ensemble-piot.jpg",
    "mari-etnogaala.jpg",
    "mari-jani-snellman.jpg",
    "pol00820.jpg",
)

CAROUSEL_FOLDER = "images/web/media/carousel"

# Legacy filename -> destination relative to the public root.
IMAGE_MAP: Dict[str, str] = {name: f"assets/{name}" for name in SITE_ASSET_FILES}
IMAGE_MAP.update(
    {
        name: f"{CAROUSEL_FOLDER}/{name}"
        for name in (
            "carousel-1.jpg",
            "carousel-2.jpg",
            "carousel-3.jpg",
            "carousel-4.jpg",
            "carousel-5.jpg",
        )
        + CAROUSEL_ORIGINALS
    }
)

LEGACY_SUBFOLDERS = ("artists", "productions")

# Applied in order. The patterns do not overlap.
PATH_REPLACEMENTS: Tuple[Tuple[str, str], ...] = (
    ("/assets/carousel-", "/images/web/media/carousel/carousel-"),
    ("/assets/ilona-korhonen-ensemble-piot.jpg", "/images/web/media/carousel/ilona-korhonen-ensemble-piot.jpg"),
    ("/assets/mari-etnogaala.jpg", "/images/web/media/carousel/mari-etnogaala.jpg"),
    ("/assets/mari-jani-snellman.jpg", "/images/web/media/carousel/mari-jani-snellman.jpg"),
    ("/assets/mari-paakkonen.jpg", "/images/web/media/carousel/mari-paakkonen.jpg"),
    ("/assets/pol00820.jpg", "/images/web/media/carousel/pol00820.jpg"),
    ("/assets/artists/", "/images/web/artists/"),
    ("/assets/productions/", "/images/web/productions/"),
)


def classify_original(filename: str) -> Optional[str]:
    """Return the uploads subfolder for a legacy original, or None for site assets."""
    if filename.startswith("carousel-") or filename in CAROUSEL_ORIGINALS:
        return "media/carousel"
    if filename in SITE_ASSET_FILES:
        return None
    # Remaining content images default to the carousel.
    return "media/carousel"


def apply_replacements(
    text: str,
    replacements: Iterable[Tuple[str, str]] = PATH_REPLACEMENTS,
) -> Tuple[str, bool]:
    """Replace every ``from`` substring in order; report whether anything changed."""
    changed = False
    for old, new in replacements:
        if old in text:
            text = text.replace(old, new)
            changed = True
    return text, changed


def _copy(source: Path, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, destination)


class Reorganizer:
    """Copies legacy assets into the new layout and patches content references."""

    def __init__(
        self,
        public_root: Path,
        content_root: Optional[Path] = None,
        image_map: Optional[Dict[str, str]] = None,
        replacements: Sequence[Tuple[str, str]] = PATH_REPLACEMENTS,
    ) -> None:
        self.public_root = Path(public_root)
        self.assets_root = self.public_root / "assets"
        self.upload_root = self.public_root / "images" / "uploads"
        self.web_root = self.public_root / "images" / "web"
        self.content_root = content_root or self.public_root / "content"
        self.image_map = IMAGE_MAP if image_map is None else image_map
        self.replacements = list(replacements)

    def create_folders(self) -> int:
        created = 0
        for folder in NEW_FOLDERS:
            folder_path = self.public_root / folder
            if not folder_path.exists():
                folder_path.mkdir(parents=True, exist_ok=True)
                logger.info("  ✓ Created %s", folder)
                created += 1
        return created

    def copy_mapped_files(self) -> int:
        copied = 0
        for filename, new_path in self.image_map.items():
            source = self.assets_root / filename
            if not source.is_file():
                continue
            destination = self.public_root / new_path
            if source.resolve() == destination.resolve():
                continue
            _copy(source, destination)
            logger.info("  ✓ %s → %s", filename, new_path)
            copied += 1
        return copied

    def copy_originals(self) -> int:
        originals_dir = self.assets_root / "originals"
        if not originals_dir.is_dir():
            logger.info("  No originals folder, skipping")
            return 0
        copied = 0
        for source in sorted(originals_dir.iterdir()):
            if not source.is_file():
                continue
            subfolder = classify_original(source.name)
            if subfolder is None:
                continue
            _copy(source, self.upload_root / subfolder / source.name)
            logger.info("  ✓ %s → images/uploads/%s/%s", source.name, subfolder, source.name)
            copied += 1
        logger.info("Copied %d high-res originals to uploads/", copied)
        return copied

    def copy_subfolders(self) -> int:
        copied = 0
        for subfolder in LEGACY_SUBFOLDERS:
            source_folder = self.assets_root / subfolder
            if not source_folder.is_dir():
                continue
            for source in sorted(source_folder.iterdir()):
                if not source.is_file():
                    continue
                _copy(source, self.web_root / subfolder / source.name)
                logger.info(
                    "  ✓ %s/%s → images/web/%s/%s",
                    subfolder,
                    source.name,
                    subfolder,
                    source.name,
                )
                copied += 1
        return copied

    def update_documents(self) -> List[Path]:
        """Rewrite asset references in every JSON file of the content directory."""
        if not self.content_root.is_dir():
            raise FileNotFoundError(f"Content directory does not exist: {self.content_root}")
        updated: List[Path] = []
        for document in sorted(self.content_root.glob("*.json")):
            text = document.read_bytes().decode("utf-8")
            new_text, changed = apply_replacements(text, self.replacements)
            if changed:
                document.write_bytes(new_text.encode("utf-8"))
                logger.info("  ✓ Updated %s", document.name)
                updated.append(document)
        return updated

    def run(self) -> ReorganizeSummary:
        logger.info("Starting image reorganization...")
        summary = ReorganizeSummary()

        logger.info("Creating new folder structure...")
        summary.folders_created = self.create_folders()

        logger.info("Copying files...")
        summary.files_copied = self.copy_mapped_files()

        logger.info("Copying originals to uploads folder...")
        summary.originals_copied = self.copy_originals()

        logger.info("Copying existing subfolders...")
        summary.subfolder_files_copied = self.copy_subfolders()

        logger.info("Updating JSON file references...")
        summary.documents_updated = self.update_documents()

        logger.info("========================================")
        logger.info("Reorganization complete!")
        logger.info("Files copied: %d", summary.files_copied)
        logger.info("Old files remain in public/assets/; delete them once the site checks out.")
        return summary
