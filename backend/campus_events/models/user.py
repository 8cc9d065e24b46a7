"""
User model. Rows are provisioned by the identity service; users may only edit
their own name, phone and major.
"""

from sqlalchemy import Column, Integer, String, CheckConstraint

from campus_events.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=True)
    role = Column(String(20), nullable=False, default="student")
    college = Column(String(100), nullable=True)
    # First four digits encode the enrollment year ("grade")
    student_id = Column(String(50), unique=True, nullable=True)
    phone = Column(String(30), nullable=True)
    major = Column(String(100), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "role IN ('student', 'organizer', 'reviewer', 'admin')",
            name="check_user_role",
        ),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"
