"""
Pydantic schemas for event-related request/response validation.

Request bodies keep every field optional: required-field checks, date
normalization and range checks belong to the event service so that any
transport gets the same behavior.
"""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, Field, field_serializer, field_validator

from campus_events.db.types import split_delimited

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class EventPayload(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    cover: Optional[str] = Field(None, max_length=500)
    place: Optional[str] = Field(None, max_length=255)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    limit: Optional[int] = None
    status: Optional[int] = None
    allowed_colleges: Optional[Union[list[str], str]] = None
    allowed_grades: Optional[Union[list[str], str]] = None

    @field_validator("allowed_colleges", "allowed_grades")
    @classmethod
    def _to_list(cls, value):
        if value is None:
            return None
        return split_delimited(value)


class EventStatusUpdate(BaseModel):
    status: int


class EventReviewRequest(BaseModel):
    review_status: str


class EventResponse(BaseModel):
    id: int
    title: str
    description: str
    cover: str
    place: str
    start_time: datetime
    end_time: datetime
    limit: int
    status: int
    review_status: str
    allowed_colleges: list[str]
    allowed_grades: list[str]
    creator_id: int
    creator_name: Optional[str] = None
    reviewer_id: Optional[int] = None
    review_time: Optional[datetime] = None
    created_at: datetime
    current_count: Optional[int] = None

    model_config = {"from_attributes": True}

    @field_serializer("start_time", "end_time")
    def _format_wall_clock(self, value: datetime) -> str:
        return value.strftime(DATETIME_FORMAT)

    @classmethod
    def from_event(cls, event, current_count: Optional[int] = None) -> "EventResponse":
        response = cls.model_validate(event)
        response.current_count = current_count
        return response


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False
