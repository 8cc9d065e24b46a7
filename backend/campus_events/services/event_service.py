"""
Event lifecycle: create, edit, publish/unpublish, delete, list and view.

Events start in review status `pending`; only the review service moves them
out of it. Edits are limited to the creator unless the caller's role may edit
any event (see core/permissions.py).
"""

import re
from datetime import datetime
from typing import Any, Mapping, Optional

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from campus_events.core.logging import get_logger
from campus_events.core.metrics import record_event_operation
from campus_events.core.permissions import Operation, Principal, can, require, require_principal
from campus_events.db.types import split_delimited
from campus_events.models.event import Event, EventStatus, ReviewStatus
from campus_events.models.registration import Registration, RegistrationStatus
from campus_events.services.capacity_guard import claim_event, count_active_by_event, count_active_registrations

logger = get_logger(__name__)

DATE_ONLY_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")
GRADE_VALUE_PATTERN = re.compile(r"^[0-9]{4}$")
START_OF_DAY = "00:00:00"
END_OF_DAY = "23:59:59"

REQUIRED_FIELDS = ("title", "start_time", "end_time", "place", "limit")
EDITABLE_FIELDS = (
    "title", "description", "cover", "place", "start_time", "end_time",
    "limit", "status", "allowed_colleges", "allowed_grades",
)
EVENT_STATUSES = {status.value for status in EventStatus}
REVIEW_STATUSES = {status.value for status in ReviewStatus}

VISIBILITY_PUBLIC = "public"
VISIBILITY_ALL = "all"


def normalize_event_time(value, *, end: bool = False):
    """
    Expand a date-only `YYYY-MM-DD` value to a full date-time.

    Start times become the beginning of the day, end times the last second.
    Anything else is returned unchanged, so normalizing twice is a no-op.
    """
    if isinstance(value, str):
        value = value.strip()
        if DATE_ONLY_PATTERN.match(value):
            return f"{value} {END_OF_DAY if end else START_OF_DAY}"
    return value


def parse_event_time(value, field: str, *, end: bool = False) -> datetime:
    normalized = normalize_event_time(value, end=end)
    if isinstance(normalized, datetime):
        parsed = normalized
    else:
        try:
            parsed = datetime.fromisoformat(str(normalized))
        except ValueError:
            raise ValidationError(f"invalid {field}: {value}")
    # Stored as server-local wall-clock time
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _positive_int(value, field: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        number = value
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    else:
        raise ValidationError(f"{field} must be a positive integer")
    if number <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return number


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _prepare_changes(fields: Mapping[str, Any]) -> dict:
    """Validate and normalize the editable fields present in `fields`."""
    changes: dict = {}
    for name in EDITABLE_FIELDS:
        if name not in fields or fields[name] is None:
            continue
        value = fields[name]

        if name in ("title", "place"):
            if _is_blank(value):
                raise ValidationError(f"{name} must not be empty")
            changes[name] = str(value).strip()
        elif name in ("description", "cover"):
            changes[name] = str(value)
        elif name == "start_time":
            changes[name] = parse_event_time(value, name)
        elif name == "end_time":
            changes[name] = parse_event_time(value, name, end=True)
        elif name == "limit":
            changes[name] = _positive_int(value, "limit")
        elif name == "status":
            changes[name] = _event_status(value)
        elif name == "allowed_colleges":
            changes[name] = split_delimited(value)
        elif name == "allowed_grades":
            grades = split_delimited(value)
            invalid = [grade for grade in grades if not GRADE_VALUE_PATTERN.match(grade)]
            if invalid:
                raise ValidationError(f"invalid allowed_grades: {', '.join(invalid)}")
            changes[name] = grades
    return changes


def _event_status(value) -> int:
    if isinstance(value, bool) or value not in EVENT_STATUSES:
        raise ValidationError("status must be 0 or 1")
    return int(value)


def _check_time_range(start: datetime, end: datetime) -> None:
    if end < start:
        raise ValidationError("end_time must not be earlier than start_time")


async def _load_event(db: AsyncSession, event_id: int) -> Optional[Event]:
    result = await db.execute(
        select(Event)
        .where(Event.id == event_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_event_or_404(db: AsyncSession, event_id: int) -> Event:
    event = await _load_event(db, event_id)
    if not event:
        raise NotFoundError(f"Event {event_id} not found")
    return event


def _authorize_edit(principal: Optional[Principal], event: Event) -> Principal:
    principal = require_principal(principal)
    if event.creator_id != principal.id and not can(principal.role, Operation.EVENT_EDIT_ANY):
        logger.warning(
            "event_edit_forbidden",
            event_id=event.id,
            principal_id=principal.id,
            role=principal.role.value,
        )
        raise ForbiddenError("you can only modify events you created")
    return principal


def visibility_scope(principal: Optional[Principal]) -> str:
    """
    Which slice of events a caller may list.

    Anonymous callers and students see approved events; organizers see the
    events they created; reviewers and admins see everything.
    """
    if principal is None:
        return VISIBILITY_PUBLIC
    if can(principal.role, Operation.EVENT_VIEW_ALL):
        return VISIBILITY_ALL
    if can(principal.role, Operation.EVENT_CREATE):
        return f"creator:{principal.id}"
    return VISIBILITY_PUBLIC


async def create_event(db: AsyncSession, principal: Optional[Principal], fields: Mapping[str, Any]) -> Event:
    """Create an event owned by the calling organizer, pending review."""
    principal = require(principal, Operation.EVENT_CREATE)

    missing = [name for name in REQUIRED_FIELDS if _is_blank(fields.get(name))]
    if missing:
        raise ValidationError(f"missing required fields: {', '.join(missing)}")

    creator_id = _positive_int(principal.id, "creator_id")
    values = _prepare_changes(fields)
    _check_time_range(values["start_time"], values["end_time"])

    event = Event(
        title=values["title"],
        description=values.get("description", ""),
        cover=values.get("cover", ""),
        place=values["place"],
        start_time=values["start_time"],
        end_time=values["end_time"],
        limit=values["limit"],
        status=values.get("status", EventStatus.PUBLISHED.value),
        review_status=ReviewStatus.PENDING.value,
        allowed_colleges=values.get("allowed_colleges", []),
        allowed_grades=values.get("allowed_grades", []),
        creator_id=creator_id,
    )
    db.add(event)
    await db.commit()

    event = await get_event_or_404(db, event.id)
    record_event_operation("create")
    logger.info("event_created", event_id=event.id, title=event.title, limit=event.limit, creator_id=creator_id)
    return event


async def update_event(
    db: AsyncSession,
    principal: Optional[Principal],
    event_id: int,
    patch: Mapping[str, Any],
) -> Event:
    """Apply the editable fields present in `patch`; absent fields are kept."""
    event = await get_event_or_404(db, event_id)
    principal = _authorize_edit(principal, event)

    changes = _prepare_changes(patch)
    _check_time_range(
        changes.get("start_time", event.start_time),
        changes.get("end_time", event.end_time),
    )
    for name, value in changes.items():
        setattr(event, name, value)
    await db.commit()

    event = await get_event_or_404(db, event_id)
    record_event_operation("update")
    logger.info("event_updated", event_id=event_id, fields=sorted(changes), principal_id=principal.id)
    return event


async def set_event_status(db: AsyncSession, principal: Optional[Principal], event_id: int, status) -> Event:
    """Publish (1) or close (0) an event."""
    new_status = _event_status(status)
    event = await get_event_or_404(db, event_id)
    principal = _authorize_edit(principal, event)

    event.status = new_status
    await db.commit()

    event = await get_event_or_404(db, event_id)
    record_event_operation("status")
    logger.info("event_status_changed", event_id=event_id, status=new_status, principal_id=principal.id)
    return event


async def remove_event(db: AsyncSession, principal: Optional[Principal], event_id: int) -> None:
    """
    Delete an event together with its cancelled registrations.
    Refused while any registration is still pending or approved.
    """
    event = await get_event_or_404(db, event_id)
    principal = _authorize_edit(principal, event)

    try:
        # Same claim as reserve_slot: no registration can commit between count and delete
        await claim_event(db, event_id)
        active = await count_active_registrations(db, event_id)
        if active:
            logger.warning("event_delete_blocked", event_id=event_id, active_registrations=active)
            raise ConflictError("event has active registrations")

        await db.execute(
            delete(Registration)
            .where(
                Registration.event_id == event_id,
                Registration.status == RegistrationStatus.CANCELLED.value,
            )
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            delete(Event).where(Event.id == event_id).execution_options(synchronize_session=False)
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    record_event_operation("delete")
    logger.info("event_deleted", event_id=event_id, principal_id=principal.id)


async def list_events(
    db: AsyncSession,
    principal: Optional[Principal] = None,
    status: Optional[int] = None,
    review_status: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[tuple[Event, int]], int]:
    """
    List events visible to the caller, each paired with its active
    registration count. Ordered by start time.
    """
    query = select(Event)

    scope = visibility_scope(principal)
    if scope == VISIBILITY_PUBLIC:
        query = query.where(Event.review_status == ReviewStatus.APPROVED.value)
    elif scope != VISIBILITY_ALL:
        query = query.where(Event.creator_id == principal.id)

    if status is not None:
        query = query.where(Event.status == _event_status(status))
    if review_status is not None:
        if review_status not in REVIEW_STATUSES:
            raise ValidationError(f"invalid review_status: {review_status}")
        query = query.where(Event.review_status == review_status)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar_one()

    events_query = (
        query
        .order_by(Event.start_time.asc(), Event.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(events_query)
    events = list(result.scalars().all())

    counts = await count_active_by_event(db, [event.id for event in events])
    return [(event, counts[event.id]) for event in events], total


async def get_event(db: AsyncSession, principal: Optional[Principal], event_id: int) -> tuple[Event, int]:
    """
    Get a single event with its active registration count.
    Events the caller may not see are reported as missing.
    """
    event = await get_event_or_404(db, event_id)

    visible = event.review_status == ReviewStatus.APPROVED.value
    if not visible and principal is not None:
        visible = event.creator_id == principal.id or can(principal.role, Operation.EVENT_VIEW_ALL)
    if not visible:
        raise NotFoundError(f"Event {event_id} not found")

    return event, await count_active_registrations(db, event_id)
