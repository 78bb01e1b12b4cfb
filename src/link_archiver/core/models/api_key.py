"""SQLAlchemy ORM model for the API-key allowlist."""

from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from link_archiver.core.models.base import Base, Timestamp


class ApiKey(Base):
    """A bearer token accepted by the API.

    Managed with ``scripts/generate_api_key.py``.
    """

    __tablename__ = "api_keys"

    key: Mapped[str] = mapped_column(sa.Text, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        Timestamp,
        nullable=False,
        server_default=sa.func.now(),
    )
