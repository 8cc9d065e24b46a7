"""
Registration model: a user's sign-up for an event.

Key design decisions:
- Cancellation is a status change; rows are kept so history survives
- Partial unique index allows one active (pending/approved) row per
  (user_id, event_id) while any number of cancelled rows may coexist
- Composite index on (event_id, status) backs the active count taken under
  the capacity claim
"""

import enum

from sqlalchemy import Column, Integer, String, ForeignKey, Index, CheckConstraint, text
from sqlalchemy.orm import relationship

from campus_events.db.base import Base, TimestampMixin


class RegistrationStatus(enum.IntEnum):
    PENDING = 0
    APPROVED = 1
    CANCELLED = 2


ACTIVE_STATUSES = (RegistrationStatus.PENDING.value, RegistrationStatus.APPROVED.value)


class Registration(Base, TimestampMixin):
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    remark = Column(String(500), nullable=False, default="")
    status = Column(Integer, nullable=False, default=RegistrationStatus.PENDING.value)

    user = relationship("User", lazy="selectin")
    event = relationship("Event", lazy="selectin")

    __table_args__ = (
        CheckConstraint("status IN (0, 1, 2)", name="check_registration_status"),
        Index(
            "uq_registrations_active_user_event",
            "user_id",
            "event_id",
            unique=True,
            postgresql_where=text("status IN (0, 1)"),
            sqlite_where=text("status IN (0, 1)"),
        ),
        Index("ix_registrations_event_status", "event_id", "status"),
    )

    @property
    def user_name(self):
        return self.user.name if self.user is not None else None

    @property
    def student_id(self):
        return self.user.student_id if self.user is not None else None

    @property
    def event_title(self):
        return self.event.title if self.event is not None else None

    def __repr__(self) -> str:
        return f"<Registration(id={self.id}, user={self.user_id}, event={self.event_id}, status={self.status})>"
