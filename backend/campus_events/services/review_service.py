"""
Review gate for events.

pending -> approved | rejected at first review; a later review may flip
approved <-> rejected. Nothing moves an event back to pending. The outcome,
reviewer and review time are written by a single UPDATE.
"""

from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.core.exceptions import NotFoundError, ValidationError
from campus_events.core.logging import get_logger
from campus_events.core.metrics import record_review
from campus_events.core.permissions import Operation, Principal, require
from campus_events.db.base import utcnow
from campus_events.models.event import Event, ReviewStatus
from campus_events.services.event_service import get_event_or_404

logger = get_logger(__name__)

REVIEW_OUTCOMES = (ReviewStatus.APPROVED.value, ReviewStatus.REJECTED.value)


async def review_event(
    db: AsyncSession,
    principal: Optional[Principal],
    event_id: int,
    review_status: str,
) -> Event:
    principal = require(principal, Operation.EVENT_REVIEW)

    if review_status not in REVIEW_OUTCOMES:
        raise ValidationError("review_status must be 'approved' or 'rejected'")

    result = await db.execute(
        update(Event)
        .where(Event.id == event_id)
        .values(
            review_status=review_status,
            reviewer_id=principal.id,
            review_time=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError(f"Event {event_id} not found")
    await db.commit()

    event = await get_event_or_404(db, event_id)
    record_review(review_status)
    logger.info(
        "event_reviewed",
        event_id=event_id,
        review_status=review_status,
        reviewer_id=principal.id,
    )
    return event
