"""
db/repositories/sync_metadata_repository.py

Last-sync bookkeeping. The caller controls commit/rollback.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from db.models.sync_metadata import LAST_SYNC_TIME_KEY, SyncMetadata


class SyncMetadataRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def save_last_sync_time(self, timestamp: datetime) -> SyncMetadata:
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        value = timestamp.isoformat()
        stmt = (
            insert(SyncMetadata)
            .values(key=LAST_SYNC_TIME_KEY, value=value)
            .on_conflict_do_update(
                index_elements=[SyncMetadata.key],
                set_={"value": value, "updated_at": func.now()},
            )
            .returning(SyncMetadata)
        )
        return self._session.scalars(stmt).one()

    def get_last_sync_time(self) -> SyncMetadata | None:
        return self._session.get(SyncMetadata, LAST_SYNC_TIME_KEY)
