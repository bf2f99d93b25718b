"""Exceptions raised by the media pipeline."""

from __future__ import annotations

from pathlib import Path


class MediaPipelineError(Exception):
    """Base class for pipeline failures that concern a single file."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class HeicDecodeError(MediaPipelineError):
    """A HEIC/HEIF file could not be decoded."""


class UnsupportedFormatError(MediaPipelineError):
    """No encoder is configured for the file's extension."""
