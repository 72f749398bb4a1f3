"""
db/models/kpi_report.py

Persisted KPI record for one release.

Each numeric column mirrors a field of ``ingestion.kpi_builder.KpiRecord``;
``category_data`` holds the defect category tally, e.g.::

    {"Functional": 12, "Ui": 4, "Performance": 1}
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, CreatedAtMixin

if TYPE_CHECKING:
    from db.models.release import Release


class KpiReport(Base, CreatedAtMixin):
    __tablename__ = "kpi_reports"

    kpi_report_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    release_id: Mapped[int] = mapped_column(
        ForeignKey("releases.release_id", ondelete="CASCADE"),
        nullable=False,
    )

    ia_change_deliverables: Mapped[float] = mapped_column(nullable=False, default=0)
    ia_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    loc: Mapped[float] = mapped_column(nullable=False, default=0)
    code_review_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    coding_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    ut_deliverables: Mapped[float] = mapped_column(nullable=False, default=0)
    ut_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    it_deliverables: Mapped[float] = mapped_column(nullable=False, default=0)
    it_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    srs_deliverables: Mapped[float] = mapped_column(nullable=False, default=0)
    srs_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    sdd_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    man_days: Mapped[float] = mapped_column(nullable=False, default=0)
    engineering_efforts: Mapped[float] = mapped_column(nullable=False, default=0)
    urs_deliverables: Mapped[float] = mapped_column(nullable=False, default=0)
    urs_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    wrike_deliverables: Mapped[float] = mapped_column(nullable=False, default=0)
    wrike_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    system_test_deliverables: Mapped[float] = mapped_column(nullable=False, default=0)
    ntke_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    estimation_cost: Mapped[float] = mapped_column(nullable=False, default=0)
    man_month: Mapped[float] = mapped_column(nullable=False, default=0)
    critical_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    major_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    minor_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    low_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    system_test_requirement_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    system_test_design_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    system_test_coding_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    system_test_ut_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    system_test_code_review_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    system_test_integration_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    integration_testing_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    uat_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    go_live_bugs: Mapped[float] = mapped_column(nullable=False, default=0)
    previous_phase_bugs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_phase_bugs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    open_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    category_data: Mapped[dict[str, Any]] = mapped_column(
        nullable=False,
        default=dict,
        comment="Defect category label -> count",
    )

    release: Mapped["Release"] = relationship("Release", back_populates="kpi_reports")

    __table_args__ = (
        Index("ix_kpi_reports_release_id", "release_id"),
    )
