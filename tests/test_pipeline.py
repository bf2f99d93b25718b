import asyncio
import hashlib
import os
import time

from PIL import Image

from conftest import FakeNormalizer, jpeg_bytes, write_image
from pihla_media.optimizer import ImageOptimizer
from pihla_media.pipeline import (
    log_summary,
    optimize_in_place_roots,
    restore_originals,
    sync_uploads,
)


def _digest(path):
    return hashlib.sha256(path.read_bytes()).hexdigest()


def test_in_place_twice_keeps_single_pristine_backup(config):
    jane = write_image(config.web_root / "artists" / "jane.png", (2400, 300), "PNG")
    pristine = jane.read_bytes()

    first = asyncio.run(optimize_in_place_roots(config, include_assets=False))
    optimized = jane.read_bytes()
    second = asyncio.run(optimize_in_place_roots(config, include_assets=False))

    backups = [p for p in config.backup_root.rglob("*") if p.is_file()]
    assert backups == [config.backup_root / "artists" / "jane.png"]
    assert backups[0].read_bytes() == pristine
    assert backups[0].read_bytes() != optimized
    assert first.files_processed == 1
    assert first.total_bytes_saved == len(pristine) - len(optimized)
    assert second.files_failed == 0


def test_assets_are_not_scanned_recursively(config):
    write_image(config.assets_root / "wallpaper-bg.jpg", (2400, 300), "JPEG", quality=95)
    nested = write_image(config.assets_root / "originals" / "carousel-1.jpg", (2400, 300), "JPEG", quality=95)
    nested_before = nested.read_bytes()

    summary = asyncio.run(optimize_in_place_roots(config, include_web=False))

    assert summary.files_processed == 1
    assert nested.read_bytes() == nested_before
    assert (config.backup_root / "assets" / "wallpaper-bg.jpg").exists()


def test_heic_asset_converted_in_place(config):
    heic = config.assets_root / "portrait.heic"
    heic.parent.mkdir(parents=True)
    heic.write_bytes(os.urandom(8 * 1024 * 1024))
    optimizer = ImageOptimizer(config, normalizer=FakeNormalizer())

    summary = asyncio.run(
        optimize_in_place_roots(config, include_web=False, optimizer=optimizer)
    )

    jpg = config.assets_root / "portrait.jpg"
    assert summary.files_processed == 1
    assert not heic.exists()
    assert jpg.stat().st_size < 8 * 1024 * 1024 // 4
    with Image.open(jpg) as image:
        assert image.width <= 1920


def test_restore_round_trip_after_repeated_passes(config):
    jane = write_image(config.web_root / "artists" / "jane.png", (2400, 300), "PNG")
    logo = write_image(config.assets_root / "logo.jpg", (2400, 300), "JPEG", quality=95)
    jane_original = jane.read_bytes()
    logo_original = logo.read_bytes()

    for _ in range(3):
        asyncio.run(optimize_in_place_roots(config))
    assert jane.read_bytes() != jane_original

    summary = asyncio.run(restore_originals(config))

    assert summary.restored == 2
    assert jane.read_bytes() == jane_original
    assert logo.read_bytes() == logo_original


def test_batch_continues_past_corrupt_file(config):
    broken = config.web_root / "a-broken.jpg"
    broken.parent.mkdir(parents=True)
    broken.write_bytes(os.urandom(150 * 1024))
    write_image(config.web_root / "b-good.jpg", (2400, 300), "JPEG", quality=95)

    summary = asyncio.run(optimize_in_place_roots(config, include_assets=False))

    assert summary.files_failed == 1
    assert summary.files_processed == 1
    assert not list(config.web_root.glob("*.tmp"))


def test_missing_roots_are_nothing_to_do(config, caplog):
    with caplog.at_level("INFO"):
        in_place = asyncio.run(optimize_in_place_roots(config))
        synced = asyncio.run(sync_uploads(config))

    assert in_place.files_processed == synced.files_processed == 0
    assert "nothing to do" in caplog.text


def test_sync_uploads_mirrors_tree_and_skips_fresh_outputs(config):
    write_image(config.upload_root / "artists" / "jane.jpg", (2400, 300), "JPEG", quality=95)
    small = config.upload_root / "productions" / "poster.jpg"
    small.parent.mkdir(parents=True)
    small.write_bytes(jpeg_bytes((200, 100), quality=70))
    uploads_before = {p: _digest(p) for p in config.upload_root.rglob("*.jpg")}

    first = asyncio.run(sync_uploads(config))

    jane_web = config.web_root / "artists" / "jane.jpg"
    poster_web = config.web_root / "productions" / "poster.jpg"
    assert first.files_processed == 2
    assert jane_web.exists() and poster_web.exists()
    assert {p: _digest(p) for p in config.upload_root.rglob("*.jpg")} == uploads_before

    future = time.time() + 60
    os.utime(jane_web, (future, future))
    os.utime(poster_web, (future, future))
    digest, mtime = _digest(jane_web), jane_web.stat().st_mtime

    second = asyncio.run(sync_uploads(config))

    assert second.files_processed == 0
    assert second.files_skipped == 2
    assert _digest(jane_web) == digest
    assert jane_web.stat().st_mtime == mtime


def test_sync_uploads_refreshes_stale_outputs(config):
    source = write_image(config.upload_root / "a.jpg", (400, 300), "JPEG")
    destination = config.web_root / "a.jpg"
    destination.parent.mkdir(parents=True)
    destination.write_bytes(b"stale")
    past = time.time() - 3600
    os.utime(destination, (past, past))
    os.utime(source, (past + 60, past + 60))

    summary = asyncio.run(sync_uploads(config))

    assert summary.files_processed == 1
    with Image.open(destination) as image:
        assert image.size == (400, 300)


def test_log_summary_reports_totals(config, caplog):
    write_image(config.web_root / "a.jpg", (2400, 300), "JPEG", quality=95)
    summary = asyncio.run(optimize_in_place_roots(config, include_assets=False))

    with caplog.at_level("INFO"):
        log_summary(summary)

    assert "Processed: 1 images" in caplog.text
    assert "Total saved:" in caplog.text
