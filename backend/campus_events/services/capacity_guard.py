"""
Capacity guard: serialized check-and-reserve of registration slots.

CONCURRENCY STRATEGY: Per-event claim inside the registration transaction
========================================================================

Problem:
  Two students try to take the last slot simultaneously.
  Both count active registrations = limit - 1, both insert, both succeed.
  Result: limit + 1 active registrations.

Solution:
  Before counting, the registering transaction claims the event row:

  1. UPDATE events SET version = version + 1 WHERE id = :event_id
  2. SELECT "limit", status FROM events WHERE id = :event_id
  3. SELECT COUNT(*) FROM registrations WHERE event_id = :event_id AND status IN (0, 1)
  4. count >= limit -> reject; otherwise the caller inserts and commits

  The UPDATE in step 1 takes the row lock on PostgreSQL (and the database
  write lock on SQLite). A second registrant for the same event blocks on
  step 1 until the first commits or rolls back, and its count in step 3 then
  includes the first registrant's committed row. Registrations for different
  events do not contend on PostgreSQL.

  Unlike a version-compare optimistic loop, waiters are never turned away for
  losing a race; a registrant is rejected only when the event is really full.
  The lock is held until the caller's commit, so the caller must insert and
  commit (or roll back) right after `reserve_slot` returns.

  The partial unique index on registrations(user_id, event_id) WHERE status
  IN (0, 1) backs up the duplicate check made before the claim.
"""

from typing import NamedTuple

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.core.exceptions import CapacityExceededError, NotFoundError, ValidationError
from campus_events.core.logging import get_logger
from campus_events.models.event import Event, EventStatus
from campus_events.models.registration import Registration, ACTIVE_STATUSES

logger = get_logger(__name__)


class Capacity(NamedTuple):
    limit: int
    active: int

    @property
    def available(self) -> int:
        return max(self.limit - self.active, 0)


async def count_active_registrations(db: AsyncSession, event_id: int) -> int:
    result = await db.execute(
        select(func.count(Registration.id)).where(
            Registration.event_id == event_id,
            Registration.status.in_(ACTIVE_STATUSES),
        )
    )
    return result.scalar_one()


async def count_active_by_event(db: AsyncSession, event_ids: list[int]) -> dict[int, int]:
    """Active registration counts for several events in one query."""
    if not event_ids:
        return {}
    result = await db.execute(
        select(Registration.event_id, func.count(Registration.id))
        .where(
            Registration.event_id.in_(event_ids),
            Registration.status.in_(ACTIVE_STATUSES),
        )
        .group_by(Registration.event_id)
    )
    counts = {event_id: 0 for event_id in event_ids}
    counts.update({event_id: count for event_id, count in result.all()})
    return counts


async def claim_event(db: AsyncSession, event_id: int) -> None:
    """Take the per-event lock for the rest of the current transaction."""
    result = await db.execute(
        update(Event)
        .where(Event.id == event_id)
        .values(version=Event.version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError(f"Event {event_id} not found")


async def reserve_slot(db: AsyncSession, event_id: int) -> Capacity:
    """
    Claim the event and verify one more active registration fits.

    Re-reads the event under the claim, so a concurrent switch to draft or a
    lowered limit is honored. Raises ValidationError if the event closed,
    CapacityExceededError if it is full.
    """
    await claim_event(db, event_id)

    row = (
        await db.execute(select(Event.limit, Event.status).where(Event.id == event_id))
    ).one()
    if row.status == EventStatus.DRAFT:
        raise ValidationError("event is closed for registration")

    active = await count_active_registrations(db, event_id)
    capacity = Capacity(limit=row.limit, active=active)
    if capacity.active >= capacity.limit:
        logger.warning(
            "capacity_exceeded",
            event_id=event_id,
            limit=capacity.limit,
            active=capacity.active,
        )
        raise CapacityExceededError()
    return capacity
