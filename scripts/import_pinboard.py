#!/usr/bin/env python
"""Import a Pinboard JSON export through the Link Archiver API.

Run from the project root::

    API_URL=https://archive.example.com ARCHIVER_API_KEY=... \\
        python scripts/import_pinboard.py pinboard_export.json

Bookmarks are posted in batches.  Ingestion is idempotent, so an interrupted
import can simply be run again.

Usage::

    python scripts/import_pinboard.py FILE [--batch-size N]

Exit codes:
    0: Success.
    1: Invalid export file or API error.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

# Ensure the src layout is on sys.path when run as a standalone script.
_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
_SRC_DIR = os.path.join(os.path.dirname(_SCRIPT_DIR), "src")
if _SRC_DIR not in sys.path:
    sys.path.insert(0, _SRC_DIR)


async def _run(path: str, batch_size: int) -> int:
    from link_archiver.core.exceptions import ApiClientError, ValidationError  # noqa: PLC0415
    from link_archiver.crawler.client import ArchiverClient  # noqa: PLC0415
    from link_archiver.crawler.config import CrawlerSettings  # noqa: PLC0415
    from link_archiver.imports.pinboard import batched, load_export  # noqa: PLC0415

    try:
        bookmarks = load_export(path)
    except (OSError, ValidationError) as exc:
        print(f"[import_pinboard] ERROR: {exc}", file=sys.stderr)
        return 1

    inserted = ignored = 0
    async with ArchiverClient(CrawlerSettings()) as client:
        for number, batch in enumerate(batched(bookmarks, batch_size), start=1):
            try:
                result = await client.add_bookmarks(batch)
            except ApiClientError as exc:
                print(
                    f"[import_pinboard] ERROR: batch {number} failed "
                    f"(status={exc.status_code}): {exc}",
                    file=sys.stderr,
                )
                return 1
            inserted += int(result.get("inserted", 0))
            ignored += int(result.get("ignored", 0))

    print(
        f"[import_pinboard] {len(bookmarks)} bookmark(s) processed: "
        f"{inserted} inserted, {ignored} already present."
    )
    return 0


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Import a Pinboard JSON export into Link Archiver.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("file", help="Path to the Pinboard JSON export.")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=100,
        help="Bookmarks per API request (default: 100).",
    )
    args = parser.parse_args()
    if args.batch_size < 1:
        parser.error("--batch-size must be positive")
    return args


def main() -> None:
    args = _parse_args()
    sys.exit(asyncio.run(_run(args.file, args.batch_size)))


if __name__ == "__main__":
    main()
