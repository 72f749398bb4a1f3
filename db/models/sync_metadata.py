"""
db/models/sync_metadata.py

Key/value store for sync bookkeeping such as the last sync time.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base

LAST_SYNC_TIME_KEY = "last_sync_time"


class SyncMetadata(Base):
    __tablename__ = "sync_metadata"

    key: Mapped[str] = mapped_column(String(50), primary_key=True)

    value: Mapped[str] = mapped_column(Text, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
