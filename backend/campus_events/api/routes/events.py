"""
Event endpoints. The public (approved-only) listing is cached in Redis.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.api.deps import get_current_principal, get_optional_principal
from campus_events.core.config import get_settings
from campus_events.core.logging import get_logger
from campus_events.core.permissions import Principal
from campus_events.db.session import get_db
from campus_events.schemas.event import (
    EventPayload,
    EventStatusUpdate,
    EventReviewRequest,
    EventResponse,
    EventListResponse,
)
from campus_events.services import event_service, review_service
from campus_events.services.cache_service import get_cached_events, set_cached_events, invalidate_event_cache

logger = get_logger(__name__)
settings = get_settings()
router = APIRouter(prefix="/events", tags=["Events"])


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    event_status: Optional[int] = Query(None, alias="status"),
    review_status: Optional[str] = Query(None),
    principal: Optional[Principal] = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    List events visible to the caller with their current registration counts.
    Anonymous users and students see approved events only; organizers see
    their own events; reviewers and admins see all.
    """
    public = (
        event_service.visibility_scope(principal) == event_service.VISIBILITY_PUBLIC
        and review_status is None
    )
    if public:
        cached = await get_cached_events(page, page_size, event_status)
        if cached:
            cached["cached"] = True
            return EventListResponse(**cached)

    rows, total = await event_service.list_events(
        db,
        principal,
        status=event_status,
        review_status=review_status,
        page=page,
        page_size=page_size,
    )

    response_data = {
        "events": [EventResponse.from_event(event, count).model_dump(mode="json") for event, count in rows],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }
    if public:
        await set_cached_events(page, page_size, event_status, response_data)

    return EventListResponse(**response_data)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int,
    principal: Optional[Principal] = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db),
):
    """Get a single event. Not cached (needs a real-time registration count)."""
    event, count = await event_service.get_event(db, principal, event_id)
    return EventResponse.from_event(event, count)


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    payload: EventPayload,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Create an event (organizers only). New events wait for review."""
    event = await event_service.create_event(db, principal, payload.model_dump(exclude_unset=True))
    await invalidate_event_cache()
    return EventResponse.from_event(event, 0)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    payload: EventPayload,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Partially update an event. Only the fields sent are changed."""
    event = await event_service.update_event(db, principal, event_id, payload.model_dump(exclude_unset=True))
    await invalidate_event_cache()
    return EventResponse.from_event(event)


@router.patch("/{event_id}/status", response_model=EventResponse)
async def set_event_status_endpoint(
    event_id: int,
    payload: EventStatusUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Open (1) or close (0) an event for registration."""
    event = await event_service.set_event_status(db, principal, event_id, payload.status)
    await invalidate_event_cache()
    return EventResponse.from_event(event)


@router.patch("/{event_id}/review", response_model=EventResponse)
async def review_event_endpoint(
    event_id: int,
    payload: EventReviewRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Approve or reject an event (reviewers only)."""
    event = await review_service.review_event(db, principal, event_id, payload.review_status)
    await invalidate_event_cache()
    return EventResponse.from_event(event)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_endpoint(
    event_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Delete an event. Refused while it has pending or approved registrations."""
    await event_service.remove_event(db, principal, event_id)
    await invalidate_event_cache()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
