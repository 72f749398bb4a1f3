"""
db/repositories/project_repository.py

Persistence layer for Project rows. The caller controls commit/rollback.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from db.models.project import PROJECT_NAME_CONSTRAINT, Project


class ProjectRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def find_or_create(self, project_name: str) -> Project:
        """
        Return the project with *project_name*, inserting it if absent.

        Uses ``INSERT ... ON CONFLICT`` so concurrent syncs that discover the
        same project never create duplicates.
        """
        stmt = (
            insert(Project)
            .values(project_name=project_name)
            .on_conflict_do_update(
                constraint=PROJECT_NAME_CONSTRAINT,
                set_={"project_name": project_name},
            )
            .returning(Project)
        )
        return self._session.scalars(stmt).one()

    def list_projects(self) -> list[Project]:
        stmt = select(Project).order_by(Project.project_name)
        return list(self._session.scalars(stmt).all())
