"""
Registration ledger.

A registration is created through `register`, which runs, in order:
event lookup, open-for-registration check, eligibility whitelist, duplicate
check, then the capacity guard claim followed by the insert. Any failure
after the lookup rolls the transaction back, so a rejected attempt writes
nothing.

Status changes after creation (approve, cancel) never re-check capacity.
Cancelled registrations are kept, do not count against capacity and do not
block a fresh registration by the same user.
"""

import time
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.core.exceptions import (
    CapacityExceededError,
    ConflictError,
    DomainError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from campus_events.core.logging import get_logger
from campus_events.core.metrics import (
    capacity_guard_latency,
    record_registration_attempt,
    record_registration_status,
)
from campus_events.core.permissions import Operation, Principal, can, require, require_principal
from campus_events.models.event import Event, EventStatus
from campus_events.models.registration import Registration, RegistrationStatus, ACTIVE_STATUSES
from campus_events.services.capacity_guard import reserve_slot
from campus_events.services.eligibility import check_eligibility

logger = get_logger(__name__)

REGISTRATION_STATUSES = {status.value for status in RegistrationStatus}

OUTCOMES = {
    NotFoundError: "not_found",
    ValidationError: "closed",
    ForbiddenError: "ineligible",
    ConflictError: "duplicate",
    CapacityExceededError: "full",
}


def _registration_status(value) -> int:
    if isinstance(value, bool) or value not in REGISTRATION_STATUSES:
        raise ValidationError("status must be 0, 1 or 2")
    return int(value)


def _rejected(exc: DomainError, principal: Principal, event_id: int) -> DomainError:
    outcome = OUTCOMES.get(type(exc), "rejected")
    record_registration_attempt(outcome)
    logger.warning(
        "registration_rejected",
        outcome=outcome,
        event_id=event_id,
        user_id=principal.id,
        message=exc.message,
    )
    return exc


async def _find_active(db: AsyncSession, user_id: int, event_id: int) -> Optional[Registration]:
    result = await db.execute(
        select(Registration).where(
            Registration.user_id == user_id,
            Registration.event_id == event_id,
            Registration.status.in_(ACTIVE_STATUSES),
        )
    )
    return result.scalars().first()


async def get_registration_or_404(db: AsyncSession, registration_id: int) -> Registration:
    result = await db.execute(
        select(Registration)
        .where(Registration.id == registration_id)
        .execution_options(populate_existing=True)
    )
    registration = result.scalar_one_or_none()
    if not registration:
        raise NotFoundError(f"Registration {registration_id} not found")
    return registration


async def register(
    db: AsyncSession,
    principal: Optional[Principal],
    event_id: int,
    remark: Optional[str] = None,
) -> Registration:
    """
    Register the principal for an event.

    Raises NotFoundError, ValidationError (event closed), ForbiddenError
    (eligibility, with `reason`), ConflictError (active duplicate) or
    CapacityExceededError (event full).
    """
    principal = require(principal, Operation.REGISTRATION_CREATE)

    event = await db.get(Event, event_id, populate_existing=True)
    if not event:
        raise _rejected(NotFoundError(f"Event {event_id} not found"), principal, event_id)
    if event.status == EventStatus.DRAFT:
        raise _rejected(ValidationError("event is closed for registration"), principal, event_id)

    eligibility = check_eligibility(principal, event)
    if not eligibility.eligible:
        raise _rejected(
            ForbiddenError(eligibility.message, reason=eligibility.reason),
            principal,
            event_id,
        )

    if await _find_active(db, principal.id, event_id):
        raise _rejected(ConflictError("duplicate registration"), principal, event_id)

    started = time.perf_counter()
    try:
        capacity = await reserve_slot(db, event_id)
        registration = Registration(
            user_id=principal.id,
            event_id=event_id,
            remark=remark or "",
            status=RegistrationStatus.PENDING.value,
        )
        db.add(registration)
        await db.flush()
        await db.commit()
    except IntegrityError:
        # Partial unique index: an active duplicate committed after our check
        await db.rollback()
        raise _rejected(ConflictError("duplicate registration"), principal, event_id)
    except DomainError as exc:
        await db.rollback()
        raise _rejected(exc, principal, event_id)
    except Exception:
        await db.rollback()
        logger.exception("registration_failed", event_id=event_id, user_id=principal.id)
        raise
    finally:
        capacity_guard_latency.observe(time.perf_counter() - started)

    registration = await get_registration_or_404(db, registration.id)
    record_registration_attempt("created")
    logger.info(
        "registration_created",
        registration_id=registration.id,
        user_id=principal.id,
        event_id=event_id,
        slots_left=capacity.available - 1,
    )
    return registration


def _can_manage(principal: Principal, registration: Registration) -> bool:
    if can(principal.role, Operation.REGISTRATION_MANAGE_ANY):
        return True
    return (
        can(principal.role, Operation.REGISTRATION_MANAGE_OWN)
        and registration.event is not None
        and registration.event.creator_id == principal.id
    )


async def update_registration_status(
    db: AsyncSession,
    principal: Optional[Principal],
    registration_id: int,
    status,
) -> Registration:
    """
    Approve (1), reset to pending (0) or cancel (2) a registration.
    Cancelled registrations stay cancelled.
    """
    new_status = _registration_status(status)
    principal = require_principal(principal)
    if not (
        can(principal.role, Operation.REGISTRATION_MANAGE_ANY)
        or can(principal.role, Operation.REGISTRATION_MANAGE_OWN)
    ):
        raise ForbiddenError("only event organizers or admins can change registrations")

    registration = await get_registration_or_404(db, registration_id)
    if not _can_manage(principal, registration):
        raise ForbiddenError("you can only manage registrations for events you created")

    if registration.status == RegistrationStatus.CANCELLED and new_status != RegistrationStatus.CANCELLED:
        raise ValidationError("cancelled registrations cannot be reopened")

    previous = registration.status
    registration.status = new_status
    await db.commit()

    registration = await get_registration_or_404(db, registration_id)
    record_registration_status(RegistrationStatus(new_status).name.lower())
    logger.info(
        "registration_status_changed",
        registration_id=registration_id,
        event_id=registration.event_id,
        previous=previous,
        status=new_status,
        principal_id=principal.id,
    )
    return registration


async def get_registration(
    db: AsyncSession,
    principal: Optional[Principal],
    registration_id: int,
) -> Registration:
    """Own registrations, registrations for the caller's events, or any for admins."""
    principal = require_principal(principal)
    registration = await get_registration_or_404(db, registration_id)
    if registration.user_id != principal.id and not (
        can(principal.role, Operation.REGISTRATION_VIEW_ANY) or _can_manage(principal, registration)
    ):
        raise NotFoundError(f"Registration {registration_id} not found")
    return registration


async def list_registrations(
    db: AsyncSession,
    principal: Optional[Principal],
    user_id: Optional[int] = None,
    event_id: Optional[int] = None,
    status: Optional[int] = None,
) -> list[Registration]:
    """
    List registrations, newest first.

    Admins may filter freely. An organizer filtering by one of their own
    events sees every registration for it. Everyone else only sees their own.
    """
    principal = require_principal(principal)

    if can(principal.role, Operation.REGISTRATION_VIEW_ANY):
        pass
    elif event_id is not None and can(principal.role, Operation.REGISTRATION_MANAGE_OWN):
        event = await db.get(Event, event_id)
        if event is None or event.creator_id != principal.id:
            user_id = principal.id
    else:
        user_id = principal.id

    query = select(Registration)
    if user_id is not None:
        query = query.where(Registration.user_id == user_id)
    if event_id is not None:
        query = query.where(Registration.event_id == event_id)
    if status is not None:
        query = query.where(Registration.status == _registration_status(status))

    result = await db.execute(
        query.order_by(Registration.created_at.desc(), Registration.id.desc())
    )
    return list(result.scalars().all())
