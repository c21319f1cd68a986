"""
Best Bike Paths Backend - Trip and TripSegment Models
======================================================

A trip is a recorded ride. TripSegment rows use the same next-pointer
ordering as PathSegment rows and are read through the same chain
reconstructor. Trip segments carry no status of their own.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, TIMESTAMP, Float, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bbp.database import Base
from bbp.models.segment import Segment, new_id, utc_now


class Trip(Base):
    __tablename__ = "trips"

    trip_id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    origin_lat: Mapped[float] = mapped_column(Float, nullable=False)
    origin_lng: Mapped[float] = mapped_column(Float, nullable=False)
    destination_lat: Mapped[float] = mapped_column(Float, nullable=False)
    destination_lng: Mapped[float] = mapped_column(Float, nullable=False)

    title: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    started_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    finished_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # {"speed", "maxSpeed", "distance", "time"} as sent by the app
    statistics: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # Computed on save from the segment polylines and timestamps
    distance_km: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    duration_seconds: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    avg_speed_kmh: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    trip_segments: Mapped[List["TripSegment"]] = relationship(
        back_populates="trip",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (Index("idx_trips_user_started", "user_id", "started_at"),)

    def __repr__(self) -> str:
        return f"<Trip(trip_id={self.trip_id}, user_id={self.user_id})>"


class TripSegment(Base):
    __tablename__ = "trip_segments"

    trip_id: Mapped[str] = mapped_column(
        ForeignKey("trips.trip_id", ondelete="CASCADE"), primary_key=True
    )
    segment_id: Mapped[str] = mapped_column(
        ForeignKey("segments.segment_id", ondelete="RESTRICT"), primary_key=True
    )
    next_segment_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    trip: Mapped[Trip] = relationship(back_populates="trip_segments")
    segment: Mapped[Segment] = relationship(lazy="selectin")
