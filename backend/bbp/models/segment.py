"""
Best Bike Paths Backend - Segment Model
========================================

What:  A road segment: an ordered polyline of {lat, lng} points with a cached
       health status.
Who:   Shared by any number of paths (PathSegment) and trips (TripSegment).

Table Design:
    - segment_id: String key; trips may supply their own ids
    - polyline_coordinates: JSON list of {"lat": float, "lng": float}
    - start_*/end_*: first and last point, indexed so that segment reuse can
      look up candidates without scanning every polyline
    - status: denormalized result of the segment aggregator; only the status
      cascade writes it
    - Never deleted while a path or trip references it
"""

import uuid
from datetime import datetime, timezone
from typing import List

from sqlalchemy import JSON, TIMESTAMP, Float, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from bbp.database import Base
from bbp.engine.geo import GeoPoint


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Segment(Base):
    __tablename__ = "segments"

    segment_id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)

    polyline_coordinates: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
        comment="Ordered list of {lat, lng} points",
    )

    start_lat: Mapped[float] = mapped_column(Float, nullable=False)
    start_lng: Mapped[float] = mapped_column(Float, nullable=False)
    end_lat: Mapped[float] = mapped_column(Float, nullable=False)
    end_lng: Mapped[float] = mapped_column(Float, nullable=False)

    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="OPTIMAL",
        server_default=text("'OPTIMAL'"),
        comment="Cached taxonomy label written by the status cascade",
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_segments_start", "start_lat", "start_lng"),
        Index("idx_segments_end", "end_lat", "end_lng"),
    )

    @classmethod
    def from_points(cls, points: List[GeoPoint], **kwargs) -> "Segment":
        """Builds a segment, deriving the indexed endpoint columns."""
        return cls(
            polyline_coordinates=[{"lat": p.lat, "lng": p.lng} for p in points],
            start_lat=points[0].lat,
            start_lng=points[0].lng,
            end_lat=points[-1].lat,
            end_lng=points[-1].lng,
            **kwargs,
        )

    @property
    def points(self) -> List[GeoPoint]:
        return [GeoPoint(float(p["lat"]), float(p["lng"])) for p in self.polyline_coordinates or []]

    def __repr__(self) -> str:
        return f"<Segment(segment_id={self.segment_id}, status='{self.status}')>"
