"""Directory traversal yielding candidate image files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

logger = logging.getLogger("pihla_media.scanner")

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp"}
HEIC_SUFFIXES = {".heic"}


def accepted_suffixes(include_heic: bool = True) -> set:
    if include_heic:
        return IMAGE_SUFFIXES | HEIC_SUFFIXES
    return set(IMAGE_SUFFIXES)


def iter_images(root: Path, recursive: bool = True, include_heic: bool = True) -> Iterator[Path]:
    """Yield image files under ``root`` in sorted order.

    A missing root yields nothing. Files with other extensions are ignored.
    """
    if not root.is_dir():
        logger.debug("Scan root %s does not exist", root)
        return
    suffixes = accepted_suffixes(include_heic)
    for entry in sorted(root.iterdir()):
        if entry.is_dir():
            if recursive:
                yield from iter_images(entry, recursive=True, include_heic=include_heic)
            continue
        if entry.is_file() and entry.suffix.lower() in suffixes:
            yield entry
