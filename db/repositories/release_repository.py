"""
db/repositories/release_repository.py

Persistence layer for Release rows. The caller controls commit/rollback.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import Select, delete, select
from sqlalchemy.orm import Session

from db.models.release import Release

logger = logging.getLogger(__name__)


class ReleaseRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_release(
        self,
        *,
        project_id: int,
        year: int,
        month: int,
        release_phase: str | None,
        release_name: str,
    ) -> Release:
        release = Release(
            project_id=project_id,
            year=year,
            month=month,
            release_phase=release_phase,
            release_name=release_name,
        )
        self._session.add(release)
        self._session.flush()
        self._session.refresh(release)
        return release

    def list_releases(
        self,
        *,
        year: int | None = None,
        month: int | None = None,
    ) -> list[Release]:
        stmt: Select[tuple[Release]] = select(Release)
        if year is not None:
            stmt = stmt.where(Release.year == year)
        if month is not None:
            stmt = stmt.where(Release.month == month)
        stmt = stmt.order_by(Release.year.desc(), Release.month.desc(), Release.release_id)
        return list(self._session.scalars(stmt).all())

    def release_ids_for_period(self, *, year: int, month: int) -> list[int]:
        stmt = select(Release.release_id).where(Release.year == year, Release.month == month)
        return list(self._session.scalars(stmt).all())

    def delete_releases(self, *, release_ids: Sequence[int]) -> int:
        """
        Delete releases by id. Refuses to run with an empty id list.
        """
        if not release_ids:
            raise ValueError("delete_releases requires at least one release id.")

        result = self._session.execute(
            delete(Release).where(Release.release_id.in_(list(release_ids)))
        )
        deleted = result.rowcount or 0
        logger.info("Delete operation completed. %s release(s) deleted", deleted)
        return deleted
