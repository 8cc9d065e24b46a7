"""
Pydantic schemas for registration-related request/response validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class RegistrationCreate(BaseModel):
    event_id: int
    remark: Optional[str] = Field(None, max_length=500)


class RegistrationStatusUpdate(BaseModel):
    status: int


class RegistrationResponse(BaseModel):
    id: int
    user_id: int
    event_id: int
    remark: str
    status: int
    created_at: datetime
    user_name: Optional[str] = None
    student_id: Optional[str] = None
    event_title: Optional[str] = None

    model_config = {"from_attributes": True}
