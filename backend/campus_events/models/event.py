"""
Event model with review state and registration whitelists.

Key design decisions:
- Active registration count is not denormalized; it is counted under the
  capacity claim (see services/capacity_guard.py)
- `version` is bumped by every capacity reservation. The UPDATE that bumps it
  is what serializes concurrent registrations for the same event
- `allowed_colleges` / `allowed_grades` are lists in Python and comma-joined
  text in the database
- `reviewer_id` and `review_time` are only ever written together
"""

import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from campus_events.db.base import Base, TimestampMixin
from campus_events.db.types import DelimitedList


class EventStatus(enum.IntEnum):
    DRAFT = 0
    PUBLISHED = 1


class ReviewStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    cover = Column(String(500), nullable=False, default="")
    place = Column(String(255), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    limit = Column("limit", Integer, nullable=False)
    status = Column(Integer, nullable=False, default=EventStatus.PUBLISHED.value)
    review_status = Column(String(20), nullable=False, default=ReviewStatus.PENDING.value)
    allowed_colleges = Column(DelimitedList(), nullable=False, default=list)
    allowed_grades = Column(DelimitedList(), nullable=False, default=list)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    review_time = Column(DateTime(timezone=True), nullable=True)

    # Capacity claim counter
    version = Column(Integer, nullable=False, default=1)

    creator = relationship("User", foreign_keys=[creator_id], lazy="selectin")

    __table_args__ = (
        CheckConstraint('"limit" > 0', name="check_event_limit_positive"),
        CheckConstraint("status IN (0, 1)", name="check_event_status"),
        CheckConstraint(
            "review_status IN ('pending', 'approved', 'rejected')",
            name="check_event_review_status",
        ),
        CheckConstraint(
            "(reviewer_id IS NULL) = (review_time IS NULL)",
            name="check_event_review_stamp",
        ),
        # Listing is ordered by start time and usually filtered by review status
        Index("ix_events_review_start", "review_status", "start_time"),
    )

    @property
    def creator_name(self):
        return self.creator.name if self.creator is not None else None

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, limit={self.limit}, review={self.review_status})>"
