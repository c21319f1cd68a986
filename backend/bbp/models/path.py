"""
Best Bike Paths Backend - Path and PathSegment Models
======================================================

Path: a user-defined route from origin to destination, built from shared
segments. `status` caches the result of the path recompute and may be NULL,
meaning "derive on read from the segments".

PathSegment: join row placing a segment inside a path. Rows form a singly
linked list through `next_segment_id` (the segment_id of the following row,
NULL on the last one); `bbp.engine.chain.reconstruct_chain` turns the rows
back into an ordered route. `status` duplicates the segment's cached status
so that path-level reads need no join.

Query Patterns:
    - Paths containing a segment:  WHERE segment_id = :id   (idx_path_segments_segment)
    - Search candidates:           WHERE visibility OR user_id = :user
                                   AND origin/destination inside a box
                                   (idx_paths_origin, idx_paths_destination)
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    TIMESTAMP,
    Boolean,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bbp.database import Base
from bbp.models.segment import Segment, new_id, utc_now


class Path(Base):
    __tablename__ = "paths"

    path_id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    origin_lat: Mapped[float] = mapped_column(Float, nullable=False)
    origin_lng: Mapped[float] = mapped_column(Float, nullable=False)
    destination_lat: Mapped[float] = mapped_column(Float, nullable=False)
    destination_lng: Mapped[float] = mapped_column(Float, nullable=False)

    # True = public
    visibility: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    creation_mode: Mapped[str] = mapped_column(String(16), nullable=False, default="manual")

    title: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    distance_km: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    status: Mapped[Optional[str]] = mapped_column(
        String(32),
        nullable=True,
        comment="Cached path status; NULL means derive from segments on read",
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    path_segments: Mapped[List["PathSegment"]] = relationship(
        back_populates="path",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_paths_origin", "origin_lat", "origin_lng"),
        Index("idx_paths_destination", "destination_lat", "destination_lng"),
    )

    def __repr__(self) -> str:
        return f"<Path(path_id={self.path_id}, user_id={self.user_id}, status='{self.status}')>"


class PathSegment(Base):
    __tablename__ = "path_segments"

    path_id: Mapped[str] = mapped_column(
        ForeignKey("paths.path_id", ondelete="CASCADE"), primary_key=True
    )
    segment_id: Mapped[str] = mapped_column(
        ForeignKey("segments.segment_id", ondelete="RESTRICT"), primary_key=True
    )
    next_segment_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    path: Mapped[Path] = relationship(back_populates="path_segments")
    segment: Mapped[Segment] = relationship(lazy="selectin")

    __table_args__ = (
        Index("idx_path_segments_segment", "segment_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<PathSegment(path_id={self.path_id}, segment_id={self.segment_id}, "
            f"next={self.next_segment_id})>"
        )
