"""Create path-health tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

Creates segments, paths, path_segments, trips, trip_segments and reports
with the indexes used by segment reuse, path search, the status cascade and
the report guards.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.TIMESTAMP(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    op.create_table(
        "segments",
        sa.Column("segment_id", sa.String(64), primary_key=True),
        sa.Column(
            "polyline_coordinates",
            sa.JSON(),
            nullable=False,
            comment="Ordered list of {lat, lng} points",
        ),
        sa.Column("start_lat", sa.Float(), nullable=False),
        sa.Column("start_lng", sa.Float(), nullable=False),
        sa.Column("end_lat", sa.Float(), nullable=False),
        sa.Column("end_lng", sa.Float(), nullable=False),
        sa.Column(
            "status",
            sa.String(32),
            nullable=False,
            server_default=sa.text("'OPTIMAL'"),
            comment="Cached taxonomy label written by the status cascade",
        ),
        _created_at(),
    )
    op.create_index("idx_segments_start", "segments", ["start_lat", "start_lng"])
    op.create_index("idx_segments_end", "segments", ["end_lat", "end_lng"])

    op.create_table(
        "paths",
        sa.Column("path_id", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("origin_lat", sa.Float(), nullable=False),
        sa.Column("origin_lng", sa.Float(), nullable=False),
        sa.Column("destination_lat", sa.Float(), nullable=False),
        sa.Column("destination_lng", sa.Float(), nullable=False),
        sa.Column("visibility", sa.Boolean(), nullable=False),
        sa.Column("creation_mode", sa.String(16), nullable=False),
        sa.Column("title", sa.String(100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("distance_km", sa.Float(), nullable=True),
        sa.Column(
            "status",
            sa.String(32),
            nullable=True,
            comment="Cached path status; NULL means derive from segments on read",
        ),
        _created_at(),
    )
    op.create_index("ix_paths_user_id", "paths", ["user_id"])
    op.create_index("idx_paths_origin", "paths", ["origin_lat", "origin_lng"])
    op.create_index("idx_paths_destination", "paths", ["destination_lat", "destination_lng"])

    op.create_table(
        "path_segments",
        sa.Column(
            "path_id",
            sa.String(64),
            sa.ForeignKey("paths.path_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "segment_id",
            sa.String(64),
            sa.ForeignKey("segments.segment_id", ondelete="RESTRICT"),
            primary_key=True,
        ),
        sa.Column("next_segment_id", sa.String(64), nullable=True),
        sa.Column("status", sa.String(32), nullable=True),
    )
    op.create_index("idx_path_segments_segment", "path_segments", ["segment_id"])

    op.create_table(
        "trips",
        sa.Column("trip_id", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("origin_lat", sa.Float(), nullable=False),
        sa.Column("origin_lng", sa.Float(), nullable=False),
        sa.Column("destination_lat", sa.Float(), nullable=False),
        sa.Column("destination_lng", sa.Float(), nullable=False),
        sa.Column("title", sa.String(100), nullable=True),
        sa.Column("started_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("finished_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("statistics", sa.JSON(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_trips_user_id", "trips", ["user_id"])

    op.create_table(
        "trip_segments",
        sa.Column(
            "trip_id",
            sa.String(64),
            sa.ForeignKey("trips.trip_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "segment_id",
            sa.String(64),
            sa.ForeignKey("segments.segment_id", ondelete="RESTRICT"),
            primary_key=True,
        ),
        sa.Column("next_segment_id", sa.String(64), nullable=True),
    )

    op.create_table(
        "reports",
        sa.Column("report_id", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column(
            "segment_id",
            sa.String(64),
            sa.ForeignKey("segments.segment_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "path_id",
            sa.String(64),
            sa.ForeignKey("paths.path_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "trip_id",
            sa.String(64),
            sa.ForeignKey("trips.trip_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("session_id", sa.String(64), nullable=True),
        sa.Column("obstacle_type", sa.String(32), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'CREATED'")),
        sa.Column(
            "path_status",
            sa.String(32),
            nullable=False,
            comment="Taxonomy label the reporter believes applies",
        ),
        sa.Column("position_lat", sa.Float(), nullable=False),
        sa.Column("position_lng", sa.Float(), nullable=False),
        _created_at(),
    )
    op.create_index("idx_reports_segment", "reports", ["segment_id"])
    op.create_index("idx_reports_user_created", "reports", ["user_id", "created_at"])
    op.create_index("idx_reports_session", "reports", ["user_id", "session_id"])


def downgrade() -> None:
    op.drop_table("reports")
    op.drop_table("trip_segments")
    op.drop_table("trips")
    op.drop_table("path_segments")
    op.drop_table("paths")
    op.drop_table("segments")
