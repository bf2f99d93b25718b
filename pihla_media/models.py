"""Data models used throughout the media pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

STATUS_OPTIMIZED = "optimized"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class SourceAsset:
    """An image found under one of the pipeline roots."""

    path: Path
    root: Path
    size: int
    mtime: float

    @classmethod
    def from_path(cls, path: Path, root: Path) -> "SourceAsset":
        stat = path.stat()
        return cls(path=path, root=root, size=stat.st_size, mtime=stat.st_mtime)

    @property
    def relative_path(self) -> Path:
        """Identity key shared by the source, backup and destination trees."""
        return self.path.relative_to(self.root)

    @property
    def format(self) -> str:
        suffix = self.path.suffix.lower().lstrip(".")
        return "jpg" if suffix == "jpeg" else suffix


@dataclass
class OptimizeResult:
    """Outcome of optimizing a single file."""

    path: Path
    bytes_saved: int = 0
    was_modified: bool = False
    status: str = STATUS_SKIPPED
    reason: Optional[str] = None
    output_path: Optional[Path] = None


@dataclass
class BatchSummary:
    """Aggregated results for a pipeline run."""

    total_bytes_saved: int = 0
    files_processed: int = 0
    files_skipped: int = 0
    files_failed: int = 0
    results: List[OptimizeResult] = field(default_factory=list)

    def add(self, result: OptimizeResult) -> None:
        self.results.append(result)
        self.total_bytes_saved += result.bytes_saved
        if result.was_modified:
            self.files_processed += 1
        elif result.status == STATUS_FAILED:
            self.files_failed += 1
        else:
            self.files_skipped += 1

    def merge(self, other: "BatchSummary") -> None:
        for result in other.results:
            self.add(result)


@dataclass
class RestoreSummary:
    """Counts reported by a restore run."""

    restored: int = 0
    failed: int = 0
    restored_paths: List[Path] = field(default_factory=list)


@dataclass
class ReorganizeSummary:
    """Counts reported by the layout migration."""

    folders_created: int = 0
    files_copied: int = 0
    originals_copied: int = 0
    subfolder_files_copied: int = 0
    documents_updated: List[Path] = field(default_factory=list)
