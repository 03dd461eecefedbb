from __future__ import annotations

import argparse
import asyncio
import io
import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from PIL import Image, UnidentifiedImageError

from page_translate.backends import DummyBackend, GenerateApiBackend, TranslationBackend
from page_translate.config import LANGUAGE_NAMES, Settings, SettingsStore, load_settings
from page_translate.controller import PipelineController
from page_translate.errors import FetchError, PageTranslateError, TranslationError
from page_translate.fetch import ImageFetcher
from page_translate.ocr import OcrEngine, PytesseractOcrEngine
from page_translate.page import HeadlessPage
from page_translate.pipeline import PipelineContext

IMAGE_GAP_PX = 10

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="page-translate",
        description="OCR and translate text inside images, laid out on a headless page.",
    )
    parser.add_argument("images", nargs="*", help="Image URLs to place on the page")
    parser.add_argument("--settings", type=Path, help="Settings file (JSON with api_url / source_lang)")
    parser.add_argument("--api-url", type=str, help="Base URL of the text-generation server")
    parser.add_argument(
        "--source-lang",
        type=str,
        choices=sorted(LANGUAGE_NAMES),
        help="Language of the text inside the images",
    )
    parser.add_argument("--backend", type=str, default="generate", help="Translation backend id (generate, dummy)")
    parser.add_argument("--viewport-width", type=int, default=1280, help="Headless viewport width in pixels")
    parser.add_argument("--timeout", type=float, default=600.0, help="Translation deadline in seconds")
    parser.add_argument("--debounce", type=float, default=0.5, help="Per-image debounce delay in seconds")
    parser.add_argument("--check", action="store_true", help="Test the connection to the translation server and exit")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    return parser.parse_args(argv)


def load_store(args: argparse.Namespace) -> SettingsStore:
    settings = load_settings(args.settings) if args.settings else Settings()
    store = SettingsStore(settings)
    changes = {}
    if args.api_url:
        changes["api_url"] = args.api_url
    if args.source_lang:
        changes["source_lang"] = args.source_lang
    if changes:
        store.update(**changes)
    return store


def load_backend(name: str, store: SettingsStore, timeout: float) -> TranslationBackend:
    normalized = name.lower()
    if normalized == "dummy":
        return DummyBackend()
    if normalized in ("generate", "kobold"):
        return GenerateApiBackend(store, timeout=timeout)
    raise ValueError(f"Unknown backend: {name}")


def load_ocr_engine() -> OcrEngine:
    return PytesseractOcrEngine()


async def build_page(urls: Sequence[str], fetcher: ImageFetcher, viewport_width: int) -> HeadlessPage:
    """
    Stack the images vertically at their natural size, with a viewport tall
    enough to show all of them.
    """
    sizes: List[tuple] = []
    for url in urls:
        try:
            data = await fetcher.fetch(url)
            with Image.open(io.BytesIO(data)) as image:
                sizes.append((url, image.size))
            fetcher.preload(url, data)
        except (FetchError, UnidentifiedImageError, OSError) as exc:
            logger.warning("Skipping %s: %s", url, exc)

    total_height = sum(size[1] for _, size in sizes) + IMAGE_GAP_PX * max(len(sizes) - 1, 0)
    page = HeadlessPage(viewport_width=viewport_width, viewport_height=max(total_height, 1))
    top = 0
    for url, (width, height) in sizes:
        page.add_image(url, left=0, top=top, width=width, height=height)
        top += height + IMAGE_GAP_PX
    return page


async def run(args: argparse.Namespace) -> int:
    store = load_store(args)
    backend = load_backend(args.backend, store, args.timeout)

    if args.check:
        try:
            status = await backend.check_connection()
        except TranslationError as exc:
            logger.error("Connection test failed: %s", exc)
            return 1
        finally:
            await backend.aclose()
        print(f"Connected: {status}")
        return 0

    fetcher = ImageFetcher()
    page = await build_page(args.images, fetcher, args.viewport_width)
    context = PipelineContext.create(
        page,
        settings=store,
        ocr=load_ocr_engine(),
        translator=backend,
        fetcher=fetcher,
    )
    controller = PipelineController(context, debounce_delay=args.debounce)
    try:
        await controller.start_translation()
        await controller.wait_idle()
        results = [
            {
                "src": overlay.target.src,
                "text": overlay.text,
                "left": overlay.rect.left,
                "top": overlay.rect.top,
                "width": overlay.rect.width,
                "height": overlay.rect.height,
            }
            for overlay in context.renderer.overlays
        ]
    finally:
        await controller.aclose()
    print(json.dumps(results, indent=2, ensure_ascii=False))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level))
    try:
        code = asyncio.run(run(args))
    except PageTranslateError as exc:
        logger.error("%s", exc)
        code = 2
    raise SystemExit(code)


if __name__ == "__main__":
    main()
