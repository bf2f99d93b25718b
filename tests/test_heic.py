import asyncio
import io
import os

import pytest
from PIL import Image, ImageCms

from conftest import jpeg_bytes
from pihla_media.errors import HeicDecodeError
from pihla_media.heic import HeicNormalizer, detect_image_format, is_heic
from pihla_media.models import SourceAsset
from pihla_media.optimizer import ImageOptimizer


def _write_heic(path, size=(2000, 200)):
    gradient = Image.linear_gradient("L").resize(size).convert("RGB")
    try:
        gradient.save(path, format="HEIF", quality=90)
    except (KeyError, OSError, ValueError, RuntimeError) as exc:
        pytest.skip(f"HEIF encoding unavailable: {exc}")
    return path


def test_is_heic_by_extension(tmp_path):
    assert is_heic(tmp_path / "a.heic")
    assert is_heic(tmp_path / "a.HEIC")
    assert not is_heic(tmp_path / "a.jpg")


def test_detect_image_format():
    assert detect_image_format(jpeg_bytes((8, 8))) == "jpg"
    assert detect_image_format(b"plain text") is None


def test_decodes_heic_to_jpeg(tmp_path):
    path = _write_heic(tmp_path / "portrait.heic")

    data = HeicNormalizer().to_jpeg_bytes(path)

    with Image.open(io.BytesIO(data)) as image:
        assert image.format == "JPEG"
        assert image.size == (2000, 200)


def test_mislabelled_jpeg_passes_through(tmp_path):
    data = jpeg_bytes((16, 16))
    path = tmp_path / "iphone.heic"
    path.write_bytes(data)

    assert HeicNormalizer().to_jpeg_bytes(path) == data


def test_corrupt_heic_raises(tmp_path):
    path = tmp_path / "broken.heic"
    path.write_bytes(os.urandom(4096))

    with pytest.raises(HeicDecodeError) as excinfo:
        HeicNormalizer().to_jpeg_bytes(path)

    assert excinfo.value.path == path


def test_real_heic_copy_mode(config):
    source = config.upload_root / "artists" / "portrait.heic"
    source.parent.mkdir(parents=True)
    _write_heic(source)
    before = source.read_bytes()
    asset = SourceAsset.from_path(source, config.upload_root)

    result = asyncio.run(ImageOptimizer(config).optimize_copy(asset, config.web_root))

    destination = config.web_root / "artists" / "portrait.jpg"
    assert result.output_path == destination
    assert source.read_bytes() == before
    with Image.open(destination) as image:
        assert image.format == "JPEG"
        assert image.width == 1920


def test_corrupt_heic_is_skipped_in_place(config, caplog):
    path = config.assets_root / "broken.heic"
    path.parent.mkdir(parents=True)
    path.write_bytes(os.urandom(200 * 1024))
    asset = SourceAsset.from_path(path, config.assets_root)

    with caplog.at_level("ERROR"):
        result = asyncio.run(ImageOptimizer(config).optimize_in_place(asset))

    assert result.status == "failed"
    assert path.exists()
    assert not (config.assets_root / "broken.jpg").exists()
    assert not (config.assets_root / "broken.jpg.tmp").exists()
    assert "broken.heic" in caplog.text


def test_bridge_keeps_colour_profile(tmp_path, monkeypatch):
    profile = ImageCms.ImageCmsProfile(ImageCms.createProfile("sRGB")).tobytes()
    path = tmp_path / "p3.heic"
    Image.new("RGB", (32, 32), (200, 30, 30)).save(path, format="JPEG", icc_profile=profile)
    # Force the decode branch so the container format does not matter.
    monkeypatch.setattr("pihla_media.heic.detect_image_format", lambda data: "heic")

    data = HeicNormalizer().to_jpeg_bytes(path)

    with Image.open(io.BytesIO(data)) as image:
        assert image.info.get("icc_profile") == profile
