"""
db/models/release.py

Release model: one release of a project in a given year and month.
"""

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, Integer, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.kpi_report import KpiReport
    from db.models.project import Project


class Release(Base, TimestampMixin):
    __tablename__ = "releases"

    release_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.project_id", ondelete="CASCADE"),
        nullable=False,
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    month: Mapped[int] = mapped_column(
        SmallInteger,
        nullable=False,
        comment="Calendar month number, 1-12",
    )

    release_phase: Mapped[str | None] = mapped_column(String(100), nullable=True)

    release_name: Mapped[str] = mapped_column(String(255), nullable=False)

    project: Mapped["Project"] = relationship("Project", back_populates="releases")

    kpi_reports: Mapped[list["KpiReport"]] = relationship(
        "KpiReport",
        back_populates="release",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_releases_year_month", "year", "month"),
        Index("ix_releases_project_id", "project_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Release release_id={self.release_id} release_name={self.release_name!r} "
            f"year={self.year} month={self.month}>"
        )
