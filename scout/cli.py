#!/usr/bin/env python3
"""
visual-scout command line.

    visual-scout search path/to/ring.jpg [--json]
    visual-scout keyword "gold hoop earrings"
    visual-scout warmup

SIGINT/SIGTERM cancel the running command; the browser is closed on every
exit path so Chromium never outlives the process.
"""

import argparse
import asyncio
import json
import logging
import signal
import sys

from scout.config import settings
from scout.errors import ScoutError
from scout.profile_warmup import warmup_profile
from scout.static_search import search_by_keyword
from scout.visual_search import close_bot, search_by_image

logger = logging.getLogger("scout.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="visual-scout", description="Image-based supplier search")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="visual search with an image file")
    search.add_argument("image", help="path to the image")
    search.add_argument("--json", action="store_true", help="print results as JSON")

    keyword = sub.add_parser("keyword", help="keyword search through the static scraper")
    keyword.add_argument("query")

    sub.add_parser("warmup", help="open a visible browser to warm up the profile")
    return parser


def _print_results(results, as_json: bool) -> None:
    if as_json:
        print(json.dumps([r.model_dump() for r in results], indent=2, ensure_ascii=False))
        return
    for r in results:
        print(f"{r.similarity_score:.2f}  {r.price_range:<20} {r.moq or '':<14} {r.name}")
        print(f"      {r.link}")
    print(f"{len(results)} result(s)")


async def _dispatch(args) -> int:
    if args.command == "search":
        try:
            results = await search_by_image(args.image)
        except ScoutError as e:
            logger.error(f"{e.code}: {e}")
            return 1
        _print_results(results, args.json)
        return 0

    if args.command == "keyword":
        _print_results(await search_by_keyword(args.query), as_json=False)
        return 0

    report = await warmup_profile()
    print(json.dumps(report.__dict__, indent=2))
    return 0


async def _run(args) -> int:
    loop = asyncio.get_running_loop()
    task = asyncio.current_task()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, task.cancel)
        except (NotImplementedError, RuntimeError):
            pass  # not supported on this platform

    try:
        return await _dispatch(args)
    except asyncio.CancelledError:
        logger.warning("Interrupted, closing browser")
        return 130
    finally:
        await close_bot()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if (args.verbose or settings.debug) else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
