"""SQLAlchemy ORM models for Link Archiver.

All models are imported here so that:
1. Alembic and ``Base.metadata.create_all`` see every table.
2. Application code can do ``from link_archiver.core.models import Bookmark``
   without knowing which sub-module a model lives in.
"""

from __future__ import annotations

from link_archiver.core.models.base import Base
from link_archiver.core.models.api_key import ApiKey
from link_archiver.core.models.bookmark import Bookmark
from link_archiver.core.models.crawl import CrawlRecord

__all__ = [
    "Base",
    "ApiKey",
    "Bookmark",
    "CrawlRecord",
]
