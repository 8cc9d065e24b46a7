"""
Registration endpoints with capacity-safe sign-up.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.api.deps import get_current_principal
from campus_events.core.permissions import Principal
from campus_events.db.session import get_db
from campus_events.schemas.registration import (
    RegistrationCreate,
    RegistrationStatusUpdate,
    RegistrationResponse,
)
from campus_events.services import registration_service
from campus_events.services.cache_service import invalidate_event_cache

router = APIRouter(prefix="/registrations", tags=["Registrations"])


@router.post("/", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
async def create_registration(
    payload: RegistrationCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Register for an event.

    Concurrent registrations for the same event are serialized on the event
    row, so the event never ends up with more active registrations than its
    limit. Returns 409 with code `capacity_exceeded` when the event is full.
    """
    registration = await registration_service.register(db, principal, payload.event_id, payload.remark)
    # current_count in the public listing changed
    await invalidate_event_cache()
    return registration


@router.get("/", response_model=list[RegistrationResponse])
async def list_registrations_endpoint(
    user_id: Optional[int] = Query(None),
    event_id: Optional[int] = Query(None),
    registration_status: Optional[int] = Query(None, alias="status"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """List registrations. Students only ever see their own."""
    return await registration_service.list_registrations(
        db, principal, user_id=user_id, event_id=event_id, status=registration_status
    )


@router.get("/{registration_id}", response_model=RegistrationResponse)
async def get_registration_endpoint(
    registration_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await registration_service.get_registration(db, principal, registration_id)


@router.patch("/{registration_id}/status", response_model=RegistrationResponse)
async def update_registration_status_endpoint(
    registration_id: int,
    payload: RegistrationStatusUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Approve or cancel a registration (event organizer or admin)."""
    registration = await registration_service.update_registration_status(
        db, principal, registration_id, payload.status
    )
    await invalidate_event_cache()
    return registration
