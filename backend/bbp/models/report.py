"""
Best Bike Paths Backend - Report Model
=======================================

What:  One crowd observation about a segment.

Lifecycle:
    1. Created by a rider with status CREATED
    2. Other riders confirm or reject it; each decision is stored as a NEW
       report row (status CONFIRMED / REJECTED) copying the original's
       segment, obstacle, pathStatus and position, with confirms_report_id
       pointing back at it. One decision per rider and report.
    3. IGNORED rows stay for audit and are excluded from every aggregate
    4. Only the author can remove a report

Indexes:
    - idx_reports_segment: aggregation reads all reports of one segment
    - idx_reports_user_created: per-user rate limiting and duplicate checks
    - idx_reports_session: attaching a ride session's reports to its trip
    - idx_reports_confirms: one decision per rider on a given report
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import TIMESTAMP, Float, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from bbp.database import Base
from bbp.models.segment import new_id, utc_now


class Report(Base):
    __tablename__ = "reports"

    report_id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    segment_id: Mapped[str] = mapped_column(
        ForeignKey("segments.segment_id", ondelete="CASCADE"), nullable=False
    )
    path_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("paths.path_id", ondelete="SET NULL"), nullable=True
    )
    trip_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("trips.trip_id", ondelete="SET NULL"), nullable=True
    )
    session_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    confirms_report_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("reports.report_id", ondelete="SET NULL"),
        nullable=True,
        comment="Report this decision confirms or rejects",
    )

    obstacle_type: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="CREATED",
        server_default=text("'CREATED'"),
    )
    path_status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="Taxonomy label the reporter believes applies",
    )

    position_lat: Mapped[float] = mapped_column(Float, nullable=False)
    position_lng: Mapped[float] = mapped_column(Float, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_reports_segment", "segment_id"),
        Index("idx_reports_user_created", "user_id", "created_at"),
        Index("idx_reports_session", "user_id", "session_id"),
        Index("idx_reports_confirms", "confirms_report_id", "user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Report(report_id={self.report_id}, segment_id={self.segment_id}, "
            f"status='{self.status}', path_status='{self.path_status}')>"
        )
