"""Trip metrics and report decision links

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 12:00:00.000000+00:00

Adds the server-computed ride metrics to trips and links each
confirmation/rejection to the report it decides on.

Existing trips keep NULL metrics; the stats service computes and stores them
on first read. Existing decision rows keep a NULL link.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("trips", sa.Column("distance_km", sa.Float(), nullable=True))
    op.add_column("trips", sa.Column("duration_seconds", sa.Float(), nullable=True))
    op.add_column("trips", sa.Column("avg_speed_kmh", sa.Float(), nullable=True))
    op.create_index("idx_trips_user_started", "trips", ["user_id", "started_at"])

    op.add_column(
        "reports",
        sa.Column(
            "confirms_report_id",
            sa.String(64),
            sa.ForeignKey("reports.report_id", ondelete="SET NULL", name="fk_reports_confirms"),
            nullable=True,
            comment="Report this decision confirms or rejects",
        ),
    )
    op.create_index("idx_reports_confirms", "reports", ["confirms_report_id", "user_id"])


def downgrade() -> None:
    op.drop_index("idx_reports_confirms", table_name="reports")
    op.drop_constraint("fk_reports_confirms", "reports", type_="foreignkey")
    op.drop_column("reports", "confirms_report_id")

    op.drop_index("idx_trips_user_started", table_name="trips")
    op.drop_column("trips", "avg_speed_kmh")
    op.drop_column("trips", "duration_seconds")
    op.drop_column("trips", "distance_km")
