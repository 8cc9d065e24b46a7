"""
Pydantic schemas for user-related responses.
"""

from typing import Optional

from pydantic import BaseModel, Field


class UserResponse(BaseModel):
    id: int
    username: str
    name: Optional[str] = None
    role: str
    college: Optional[str] = None
    student_id: Optional[str] = None
    phone: Optional[str] = None
    major: Optional[str] = None

    model_config = {"from_attributes": True}


class UserProfileUpdate(BaseModel):
    """Self-service fields. Role, college and student id come from the identity service."""

    name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    major: Optional[str] = Field(None, max_length=100)
