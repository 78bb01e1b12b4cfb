"""SQLAlchemy declarative base and shared column types for all ORM models.

Column types are chosen so the same metadata works on PostgreSQL (production)
and SQLite (development and tests).
"""

from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import DeclarativeBase

#: Timezone-aware timestamp (``timestamptz`` on PostgreSQL).
Timestamp = sa.DateTime(timezone=True)

#: List of strings: native ``text[]`` on PostgreSQL, JSON elsewhere.
TextList = sa.JSON().with_variant(postgresql.ARRAY(sa.Text()), "postgresql")

#: Auto-incrementing surrogate key.  SQLite only auto-increments ``INTEGER``
#: primary keys, so BIGINT is swapped out there.
SurrogateKey = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


class Base(DeclarativeBase):
    """Shared declarative base for all Link Archiver models."""
