"""
db/models/project.py

Project model: one software project whose releases carry KPI reports.
"""

from typing import TYPE_CHECKING

from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.release import Release

PROJECT_NAME_CONSTRAINT = "uq_projects_project_name"


class Project(Base, TimestampMixin):
    """
    Project names come from the project folder in the release hierarchy.
    """

    __tablename__ = "projects"

    project_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    project_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    releases: Mapped[list["Release"]] = relationship(
        "Release",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("project_name", name=PROJECT_NAME_CONSTRAINT),
    )

    def __repr__(self) -> str:
        return f"<Project project_id={self.project_id} project_name={self.project_name!r}>"
