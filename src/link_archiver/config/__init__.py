"""Configuration package for Link Archiver.

Re-exports the settings symbols so that callers can write::

    from link_archiver.config import get_settings
"""

from __future__ import annotations

from link_archiver.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
