# -- coding: utf-8 --

import argparse
import asyncio
import json
import logging
import os
import time

from camera import create_camera_from_loaded_config
from core.config import ConfigError, load_config, validate_config
from core.contracts import FillOutcome
from core.pipeline import ScanPipeline
from core.scanner import BarcodeScanner, ScanMode, ScannerConfig
from detect import create_detector_from_loaded_config, encode_image_jpeg
from extract import Category, MediaKind
from lookup import CatalogClient, CoverResolver
from output.filler import (
    AUDIO_FIELDS,
    BOOK_FIELDS,
    TITLE_FIELD,
    VIDEO_FIELDS,
    VOLUME_FIELDS,
    VOLUME_TITLE_FIELD,
    VOLUMES_GROUP,
    FieldFiller,
)
from output.sink import JsonFormSink, MemoryFieldSink

_DEFAULT_FIELDS = {
    MediaKind.BOOKS: BOOK_FIELDS,
    MediaKind.AUDIO: AUDIO_FIELDS,
    MediaKind.VIDEO: VIDEO_FIELDS,
}
_PREVIEW_NAME = "overlay_preview.jpg"


def parse_args():
    p = argparse.ArgumentParser(
        description="Scan a media barcode and fill its catalog fields (config-driven)",
    )
    p.add_argument(
        "--config-dir", default="config", help="Directory containing main_*.yaml"
    )
    p.add_argument("--verbose", action="store_true", help="Debug log")
    p.add_argument(
        "--log-level", default="", help="Override log level (debug/info/warning/error)"
    )
    p.add_argument(
        "--category",
        default="",
        help=f"Destination category ({'/'.join(c.value for c in Category)})",
    )
    p.add_argument("--barcode", default="", help="Skip the camera and look up this barcode")
    p.add_argument("--form", default="", help="JSON form file to fill (written back in place)")
    p.add_argument("--debug", action="store_true", help="Overlay mode: pick the code to use")
    p.add_argument("--device", default="", help="Camera device id (default: config preference)")
    return p.parse_args()


def setup_logging(verbose: bool, log_level: str = ""):
    if verbose:
        level = logging.DEBUG
    else:
        level_map = {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "warn": logging.WARNING,
            "error": logging.ERROR,
            "critical": logging.CRITICAL,
        }
        level = level_map.get(str(log_level or "").strip().lower(), logging.INFO)
    # Use UTC for all %(asctime)s timestamps in logs.
    logging.Formatter.converter = time.gmtime
    logging.basicConfig(
        level=level, format="%(asctime)sZ [%(levelname)s] %(message)s", force=True
    )
    if not verbose:
        # Connection-pool chatter from requests.
        for name in ("urllib3", "urllib3.connectionpool"):
            logging.getLogger(name).setLevel(logging.WARNING)


def build_default_sink(category: Category) -> MemoryFieldSink:
    """Empty form with every field the category's filler knows about."""
    kind = category.kind
    fields = dict.fromkeys([TITLE_FIELD] + [f for _, f in _DEFAULT_FIELDS[kind]], "")
    groups = {}
    if kind is MediaKind.BOOKS:
        groups[VOLUMES_GROUP] = [f for _, f in VOLUME_FIELDS] + [VOLUME_TITLE_FIELD]
    return MemoryFieldSink(fields, groups)


def build_scanner_config(cfg, debug: bool) -> ScannerConfig:
    return ScannerConfig(
        interval_ms=int(cfg.scanner.interval_ms),
        cooldown_ms=int(cfg.scanner.cooldown_ms),
        mode=ScanMode.DEBUG.value if debug else str(cfg.scanner.mode).lower(),
        preferred_label=str(cfg.scanner.preferred_label),
    )


async def scan_barcode(cfg, *, debug: bool = False, device_id: str = "") -> str | None:
    """Open the camera and return the first barcode (auto) or the picked one (debug)."""
    host = create_camera_from_loaded_config(cfg)
    found: asyncio.Queue[str] = asyncio.Queue()
    scanner = BarcodeScanner(
        host,
        lambda: create_detector_from_loaded_config(cfg),
        result_sink=found.put_nowait,
        config=build_scanner_config(cfg, debug),
        error_sink=lambda e: logging.error("Scanner: %s", e),
    )
    async with scanner:
        if not scanner.available:
            return None
        devices = await scanner.start()
        if not devices:
            return None
        if device_id and device_id != scanner.device_id:
            if not await scanner.change_device(device_id):
                return None
        logging.info("Scanning on %s (Ctrl+C to abort)", scanner.device_id)
        if scanner.mode is ScanMode.DEBUG:
            return await _pick_from_overlay(scanner, cfg.runtime.save_dir, found)
        return await found.get()


async def _pick_from_overlay(scanner: BarcodeScanner, save_dir: str, found: asyncio.Queue):
    os.makedirs(save_dir, exist_ok=True)
    preview_path = os.path.join(save_dir, _PREVIEW_NAME)
    while found.empty():
        await asyncio.sleep(0.5)
        regions = list(scanner.regions)
        if not regions:
            continue
        frame = scanner.render_overlay()
        if frame is not None:
            data, _ = encode_image_jpeg(frame)
            with open(preview_path, "wb") as f:
                f.write(data)
        for i, region in enumerate(regions):
            logging.info("  [%d] %s at %s", i, region.value, region.svg_points)
        answer = await asyncio.to_thread(
            input, f"Pick a code 0-{len(regions) - 1} (preview: {preview_path}, Enter to refresh): "
        )
        answer = answer.strip()
        if answer.isdigit() and int(answer) < len(regions):
            scanner.select_region(regions[int(answer)])
    return await found.get()


async def run(cfg, args, category: Category) -> FillOutcome | None:
    catalog = CatalogClient.from_config(cfg.lookup)
    cover = CoverResolver.from_config(cfg.cover) if cfg.cover.enabled else None
    filler = FieldFiller(cover, overwrite_title_kinds=cfg.filler.overwrite_title_kinds)
    pipeline = ScanPipeline(catalog, filler)
    sink = JsonFormSink.load(args.form) if args.form else build_default_sink(category)
    try:
        barcode = args.barcode or await scan_barcode(
            cfg, debug=args.debug, device_id=args.device
        )
        if not barcode:
            logging.warning("No barcode scanned")
            return None
        outcome = await pipeline.process(barcode, category, sink)
    finally:
        catalog.close()
        if cover is not None:
            cover.close()
    if isinstance(sink, JsonFormSink):
        sink.save()
    for message in outcome.messages:
        logging.info("%s", message)
    print(json.dumps(sink.to_dict(), ensure_ascii=False, indent=2))
    return outcome


def main():
    args = parse_args()
    setup_logging(args.verbose, args.log_level)
    try:
        cfg = load_config(args.config_dir)
    except ConfigError as e:
        logging.error("Config load failed: %s", e)
        raise SystemExit(1)
    # Config-driven log level (unless overridden by CLI).
    if not args.verbose and not args.log_level:
        setup_logging(args.verbose, getattr(cfg.runtime, "log_level", "info"))

    try:
        validate_config(cfg)
        category = Category.parse(args.category or cfg.filler.default_category)
        if category is None:
            raise ConfigError(f"unknown category {args.category!r}")
    except ConfigError as e:
        logging.error("Config invalid: %s", e)
        raise SystemExit(1) from e

    logging.info(
        "Starting: camera=%s detector=%s mode=%s category=%s catalog=%s",
        cfg.camera.type if not args.barcode else "off",
        cfg.scanner.detector,
        "debug" if args.debug else cfg.scanner.mode,
        category.value,
        cfg.lookup.base_url,
    )
    logging.info("Config files: main=%s", cfg.paths.get("main"))

    try:
        outcome = asyncio.run(run(cfg, args, category))
        logging.info("Done")
    except KeyboardInterrupt:
        logging.info("Scan STOPPED by user (Ctrl+C)")
        return
    except Exception:
        logging.exception("Error")
        raise
    if outcome is None or not outcome.ok:
        raise SystemExit(2)


if __name__ == "__main__":
    main()
