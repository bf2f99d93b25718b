"""Command-line entry point for the media pipeline."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, Sequence

from .config import DEFAULT_MAX_WIDTH, DEFAULT_QUALITY, MIN_OPTIMIZE_BYTES, PipelineConfig
from .og_image import build_og_image
from .pipeline import log_summary, optimize_in_place_roots, restore_originals, sync_uploads
from .reorganize import Reorganizer

logger = logging.getLogger("pihla_media.cli")

DEFAULT_COMMAND = "optimize"


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return (DEFAULT_COMMAND,)
    first = argv[0]
    if first in commands or first in ("-h", "--help"):
        return argv
    return (DEFAULT_COMMAND, *argv)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--public-root",
        default="public",
        type=Path,
        help="Site public directory containing images/, assets/ and content/",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_optimize_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--restore",
        action="store_true",
        help="Restore original images from the backup folder instead of optimizing",
    )
    parser.add_argument(
        "--assets",
        action="store_true",
        help="Also optimize the flat site assets folder (logos, wallpapers) in place",
    )
    parser.add_argument(
        "--in-place-web",
        action="store_true",
        help="Optimize images/web in place with backups instead of syncing from uploads",
    )
    parser.add_argument(
        "--max-width",
        type=int,
        default=DEFAULT_MAX_WIDTH,
        help="Downscale images wider than this many pixels (default: 1920)",
    )
    parser.add_argument(
        "--quality",
        type=int,
        default=DEFAULT_QUALITY,
        help="JPEG/PNG/WEBP quality (default: 85)",
    )
    parser.add_argument(
        "--min-kb",
        type=int,
        default=MIN_OPTIMIZE_BYTES // 1024,
        help="Skip in-place optimization for files smaller than this (default: 100)",
    )
    parser.add_argument(
        "--backup-root",
        type=Path,
        default=None,
        help="Override the backup folder (default: <public-root>/images/originals)",
    )
    parser.add_argument(
        "--no-heic",
        action="store_true",
        help="Ignore .heic files",
    )


def _add_og_image_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--logo",
        type=Path,
        default=None,
        help="Logo to place on the share image (default: <public-root>/assets/pihla-folk-logo.png)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Where to write the JPEG (default: <public-root>/og-image.jpg)",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Optimize, back up and reorganize images for the Pihla Folk website.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    optimize_parser = subparsers.add_parser(
        "optimize", help="Optimize images (default command)"
    )
    _add_common_arguments(optimize_parser)
    _add_optimize_arguments(optimize_parser)

    reorganize_parser = subparsers.add_parser(
        "reorganize", help="Migrate the legacy assets layout and update content JSON"
    )
    _add_common_arguments(reorganize_parser)

    og_parser = subparsers.add_parser(
        "og-image", help="Create the Open Graph share image from the logo"
    )
    _add_common_arguments(og_parser)
    _add_og_image_arguments(og_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> PipelineConfig:
    overrides = {
        "max_width": args.max_width,
        "jpeg_quality": args.quality,
        "png_quality": args.quality,
        "webp_quality": args.quality,
        "min_size_bytes": args.min_kb * 1024,
        "include_heic": not args.no_heic,
    }
    if args.backup_root is not None:
        overrides["backup_root"] = args.backup_root.resolve()
    return PipelineConfig.from_public_root(args.public_root.resolve(), **overrides)


def _run_optimize(args: argparse.Namespace) -> None:
    config = build_config(args)

    if args.restore:
        summary = asyncio.run(restore_originals(config))
        logger.info("Restored %d files (%d failed)", summary.restored, summary.failed)
        return

    overall_start = time.perf_counter()
    if args.in_place_web:
        result = asyncio.run(
            optimize_in_place_roots(config, include_web=True, include_assets=args.assets)
        )
    else:
        result = asyncio.run(sync_uploads(config))
        if args.assets:
            result.merge(
                asyncio.run(
                    optimize_in_place_roots(config, include_web=False, include_assets=True)
                )
            )
    log_summary(result)
    logger.info("Finished in %.2fs", time.perf_counter() - overall_start)
    if args.in_place_web or args.assets:
        logger.info("Originals backed up to: %s", config.backup_root)
        logger.info("To restore originals: pihla-media --restore")


def _run_reorganize(args: argparse.Namespace) -> None:
    Reorganizer(args.public_root.resolve()).run()


def _run_og_image(args: argparse.Namespace) -> None:
    public_root = args.public_root.resolve()
    logo = args.logo or public_root / "assets" / "pihla-folk-logo.png"
    output = args.output or public_root / "og-image.jpg"
    build_og_image(logo, output)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    try:
        if args.command == "optimize":
            _run_optimize(args)
        elif args.command == "reorganize":
            _run_reorganize(args)
        else:
            _run_og_image(args)
    except Exception:  # pylint: disable=broad-except
        logger.exception("%s failed", args.command)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
