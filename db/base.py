"""
db/base.py

Declarative base and timestamp mixins for the KPI store models.

Projects and releases carry both timestamps; KPI reports are written
once per sync and only record when they were created.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, Float, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Declarative base for every KPI store table.

    KPI metrics are stored as floats and JSON payloads as PostgreSQL JSONB.
    """

    type_annotation_map: dict[Any, Any] = {
        float: Float,
        dict[str, Any]: JSONB,
    }


class CreatedAtMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


class TimestampMixin(CreatedAtMixin):
    """
    Adds ``updated_at``, refreshed in Python on every ORM UPDATE.
    """

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    )
