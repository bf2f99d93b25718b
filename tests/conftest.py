from __future__ import annotations

import io
import os
from pathlib import Path
from typing import Tuple

import pytest
from PIL import Image

from pihla_media.config import PipelineConfig


def noise_image(size: Tuple[int, int], mode: str = "RGB") -> Image.Image:
    """Random pixels compress poorly, which keeps test files above the skip threshold."""
    width, height = size
    channels = len(mode)
    return Image.frombytes(mode, size, os.urandom(width * height * channels))


def write_image(path: Path, size: Tuple[int, int], image_format: str, **save_args) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    mode = "RGBA" if image_format == "PNG" and save_args.pop("alpha", False) else "RGB"
    noise_image(size, mode).save(path, format=image_format, **save_args)
    return path


def jpeg_bytes(size: Tuple[int, int], quality: int = 100) -> bytes:
    output = io.BytesIO()
    noise_image(size).save(output, format="JPEG", quality=quality)
    return output.getvalue()


class FakeNormalizer:
    """Stands in for HEIC decoding so tests do not depend on a HEIF encoder."""

    def __init__(self, size: Tuple[int, int] = (2400, 300)) -> None:
        self.size = size
        self.calls = []

    def to_jpeg_bytes(self, path: Path) -> bytes:
        self.calls.append(path)
        return jpeg_bytes(self.size)


@pytest.fixture
def public_root(tmp_path: Path) -> Path:
    root = tmp_path / "public"
    root.mkdir()
    return root


@pytest.fixture
def config(public_root: Path) -> PipelineConfig:
    return PipelineConfig.from_public_root(public_root)
