#!/usr/bin/env python
"""Generate or revoke an API key.

Run from the project root::

    DATABASE_URL=postgresql+asyncpg://... python scripts/generate_api_key.py

The script generates 32 bytes of cryptographic random data (64 hex characters),
inserts it into the ``api_keys`` table and prints it to stdout.  This is the
**only** time the key is displayed.

Usage::

    python scripts/generate_api_key.py [--revoke KEY]

Options:
    --revoke  Delete the given key instead of generating a new one.

Exit codes:
    0: Success.
    1: Key not found (``--revoke``) or database error.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import secrets
import sys
from typing import Optional

# Ensure the src layout is on sys.path when run as a standalone script.
_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
_SRC_DIR = os.path.join(os.path.dirname(_SCRIPT_DIR), "src")
if _SRC_DIR not in sys.path:
    sys.path.insert(0, _SRC_DIR)


async def _run(revoke: Optional[str]) -> int:
    """Create or delete a key.

    Returns:
        Process exit code.
    """
    from link_archiver.config.settings import get_settings  # noqa: PLC0415
    from link_archiver.core.exceptions import StorageError  # noqa: PLC0415
    from link_archiver.storage import create_storage  # noqa: PLC0415

    storage = create_storage(get_settings().database_url)
    try:
        if revoke:
            if not await storage.revoke_api_key(revoke):
                print("[generate_api_key] ERROR: no such key.", file=sys.stderr)
                return 1
            print("[generate_api_key] API key revoked.")
            return 0

        new_key = secrets.token_hex(32)
        await storage.add_api_key(new_key)
        print("[generate_api_key] API key generated:")
        print(f"\n  {new_key}\n")
        print(
            "Store this key securely; it cannot be retrieved again.\n"
            "Use it in API requests as:\n"
            "  Authorization: Bearer <key>\n"
            "and give it to crawler workers as ARCHIVER_API_KEY.\n"
        )
        return 0
    except StorageError as exc:
        print(f"[generate_api_key] ERROR: {exc} ({exc.__cause__})", file=sys.stderr)
        return 1
    finally:
        await storage.close()


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate or revoke a Link Archiver API key.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--revoke",
        metavar="KEY",
        default=None,
        help="Delete KEY instead of generating a new key.",
    )
    return parser.parse_args()


def main() -> None:
    """Entry point for the API key script."""
    args = _parse_args()
    sys.exit(asyncio.run(_run(revoke=args.revoke)))


if __name__ == "__main__":
    main()
