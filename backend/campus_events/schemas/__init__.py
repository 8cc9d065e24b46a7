from campus_events.schemas.user import UserResponse, UserProfileUpdate
from campus_events.schemas.event import (
    EventPayload, EventStatusUpdate, EventReviewRequest, EventResponse, EventListResponse,
)
from campus_events.schemas.registration import (
    RegistrationCreate, RegistrationStatusUpdate, RegistrationResponse,
)

__all__ = [
    "UserResponse", "UserProfileUpdate",
    "EventPayload", "EventStatusUpdate", "EventReviewRequest", "EventResponse", "EventListResponse",
    "RegistrationCreate", "RegistrationStatusUpdate", "RegistrationResponse",
]
