"""
ORM models. Importing this package registers every table on Base.metadata,
which Alembic and the test fixtures rely on.
"""

from bbp.models.path import Path, PathSegment
from bbp.models.report import Report
from bbp.models.segment import Segment
from bbp.models.trip import Trip, TripSegment

__all__ = ["Path", "PathSegment", "Report", "Segment", "Trip", "TripSegment"]
