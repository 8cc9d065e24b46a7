"""
Tests for the registration ledger: sign-up checks, duplicates, status
changes and listing scope.
"""

import pytest

from campus_events.core.exceptions import (
    AuthError,
    CapacityExceededError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from campus_events.core.permissions import Principal
from campus_events.models.event import EventStatus, ReviewStatus
from campus_events.models.registration import RegistrationStatus
from campus_events.services import registration_service
from campus_events.services.capacity_guard import count_active_registrations


def as_principal(user) -> Principal:
    return Principal.from_user(user)


@pytest.mark.asyncio
async def test_register_creates_pending_registration(db_session, student, test_event):
    registration = await registration_service.register(
        db_session, as_principal(student), test_event.id, "vegetarian lunch"
    )

    assert registration.id is not None
    assert registration.status == RegistrationStatus.PENDING.value
    assert registration.user_id == student.id
    assert registration.event_id == test_event.id
    assert registration.remark == "vegetarian lunch"
    assert registration.event_title == "Spring Hackathon"
    assert registration.student_id == "20220134"
    assert await count_active_registrations(db_session, test_event.id) == 1


@pytest.mark.asyncio
async def test_register_requires_principal(db_session, test_event):
    with pytest.raises(AuthError):
        await registration_service.register(db_session, None, test_event.id)


@pytest.mark.asyncio
async def test_register_missing_event(db_session, student):
    with pytest.raises(NotFoundError):
        await registration_service.register(db_session, as_principal(student), 99999)


@pytest.mark.asyncio
async def test_register_for_draft_event_is_refused(db_session, student, organizer, make_event):
    draft = await make_event(organizer, status=EventStatus.DRAFT.value)

    with pytest.raises(ValidationError) as exc_info:
        await registration_service.register(db_session, as_principal(student), draft.id)
    assert exc_info.value.message == "event is closed for registration"
    assert await count_active_registrations(db_session, draft.id) == 0


@pytest.mark.asyncio
async def test_register_for_pending_review_event_is_allowed(db_session, student, organizer, make_event):
    event = await make_event(organizer, review_status=ReviewStatus.PENDING.value)
    registration = await registration_service.register(db_session, as_principal(student), event.id)
    assert registration.status == RegistrationStatus.PENDING.value


@pytest.mark.asyncio
async def test_college_restriction(db_session, student, other_student, organizer, make_event):
    event = await make_event(organizer, allowed_colleges=["计算机学院"])

    with pytest.raises(ForbiddenError) as exc_info:
        await registration_service.register(db_session, as_principal(other_student), event.id)
    assert exc_info.value.reason == "college"
    assert exc_info.value.to_dict()["reason"] == "college"

    registration = await registration_service.register(db_session, as_principal(student), event.id)
    assert registration.user_id == student.id


@pytest.mark.asyncio
async def test_grade_restriction(db_session, student, other_student, organizer, make_event):
    event = await make_event(organizer, allowed_grades=["2023"])

    with pytest.raises(ForbiddenError) as exc_info:
        await registration_service.register(db_session, as_principal(student), event.id)
    assert exc_info.value.reason == "grade"
    assert exc_info.value.message == "not eligible for this event (grade restriction)"

    registration = await registration_service.register(db_session, as_principal(other_student), event.id)
    assert registration.user_id == other_student.id


@pytest.mark.asyncio
async def test_missing_student_id_fails_grade_restriction(db_session, make_user, organizer, make_event):
    staff = await make_user("no_student_id", college="计算机学院")
    event = await make_event(organizer, allowed_grades=["2022"])

    with pytest.raises(ForbiddenError) as exc_info:
        await registration_service.register(db_session, as_principal(staff), event.id)
    assert exc_info.value.reason == "grade"


@pytest.mark.asyncio
async def test_duplicate_active_registration(db_session, student, test_event):
    await registration_service.register(db_session, as_principal(student), test_event.id)

    with pytest.raises(ConflictError) as exc_info:
        await registration_service.register(db_session, as_principal(student), test_event.id)
    assert exc_info.value.message == "duplicate registration"
    assert await count_active_registrations(db_session, test_event.id) == 1


@pytest.mark.asyncio
async def test_reregister_after_cancel_creates_new_row(db_session, student, organizer, test_event):
    first = await registration_service.register(db_session, as_principal(student), test_event.id)
    await registration_service.update_registration_status(
        db_session, as_principal(organizer), first.id, RegistrationStatus.CANCELLED.value
    )

    second = await registration_service.register(db_session, as_principal(student), test_event.id)

    assert second.id != first.id
    assert second.status == RegistrationStatus.PENDING.value
    history = await registration_service.list_registrations(db_session, as_principal(student))
    assert {r.id: r.status for r in history} == {
        first.id: RegistrationStatus.CANCELLED.value,
        second.id: RegistrationStatus.PENDING.value,
    }


@pytest.mark.asyncio
async def test_full_event_rejects_registration(db_session, small_event, make_user):
    event_id = small_event.id
    students = [await make_user(f"s{i}", student_id=f"2022000{i}") for i in range(3)]

    for user in students[:2]:
        await registration_service.register(db_session, as_principal(user), event_id)

    with pytest.raises(CapacityExceededError) as exc_info:
        await registration_service.register(db_session, as_principal(students[2]), event_id)
    assert exc_info.value.code == "capacity_exceeded"
    assert await count_active_registrations(db_session, event_id) == 2


@pytest.mark.asyncio
async def test_cancelled_slot_is_freed(db_session, small_event, organizer, make_user):
    students = [await make_user(f"s{i}", student_id=f"2022000{i}") for i in range(3)]
    first = await registration_service.register(db_session, as_principal(students[0]), small_event.id)
    await registration_service.register(db_session, as_principal(students[1]), small_event.id)

    await registration_service.update_registration_status(
        db_session, as_principal(organizer), first.id, RegistrationStatus.CANCELLED.value
    )

    third = await registration_service.register(db_session, as_principal(students[2]), small_event.id)
    assert third.status == RegistrationStatus.PENDING.value
    assert await count_active_registrations(db_session, small_event.id) == 2


@pytest.mark.asyncio
async def test_approval_does_not_recheck_capacity(db_session, organizer, small_event, make_user):
    students = [await make_user(f"s{i}", student_id=f"2022000{i}") for i in range(2)]
    registrations = [
        await registration_service.register(db_session, as_principal(user), small_event.id)
        for user in students
    ]

    for registration in registrations:
        approved = await registration_service.update_registration_status(
            db_session, as_principal(organizer), registration.id, RegistrationStatus.APPROVED.value
        )
        assert approved.status == RegistrationStatus.APPROVED.value


@pytest.mark.asyncio
async def test_status_change_permissions(db_session, student, other_organizer, admin, test_event):
    registration = await registration_service.register(db_session, as_principal(student), test_event.id)

    with pytest.raises(AuthError):
        await registration_service.update_registration_status(db_session, None, registration.id, 1)
    with pytest.raises(ForbiddenError):
        await registration_service.update_registration_status(
            db_session, as_principal(student), registration.id, 1
        )
    with pytest.raises(ForbiddenError):
        await registration_service.update_registration_status(
            db_session, as_principal(other_organizer), registration.id, 1
        )

    approved = await registration_service.update_registration_status(
        db_session, as_principal(admin), registration.id, 1
    )
    assert approved.status == RegistrationStatus.APPROVED.value


@pytest.mark.asyncio
async def test_status_change_validation(db_session, student, organizer, test_event):
    registration = await registration_service.register(db_session, as_principal(student), test_event.id)

    with pytest.raises(ValidationError):
        await registration_service.update_registration_status(
            db_session, as_principal(organizer), registration.id, 7
        )
    with pytest.raises(NotFoundError):
        await registration_service.update_registration_status(
            db_session, as_principal(organizer), 99999, 1
        )


@pytest.mark.asyncio
async def test_cancelled_registration_cannot_be_reopened(db_session, student, organizer, test_event):
    registration = await registration_service.register(db_session, as_principal(student), test_event.id)
    await registration_service.update_registration_status(
        db_session, as_principal(organizer), registration.id, RegistrationStatus.CANCELLED.value
    )

    with pytest.raises(ValidationError):
        await registration_service.update_registration_status(
            db_session, as_principal(organizer), registration.id, RegistrationStatus.APPROVED.value
        )


@pytest.mark.asyncio
async def test_get_registration_visibility(db_session, student, other_student, organizer, admin, test_event):
    registration = await registration_service.register(db_session, as_principal(student), test_event.id)

    own = await registration_service.get_registration(db_session, as_principal(student), registration.id)
    assert own.id == registration.id
    by_owner = await registration_service.get_registration(db_session, as_principal(organizer), registration.id)
    assert by_owner.id == registration.id
    by_admin = await registration_service.get_registration(db_session, as_principal(admin), registration.id)
    assert by_admin.id == registration.id

    with pytest.raises(NotFoundError):
        await registration_service.get_registration(db_session, as_principal(other_student), registration.id)


@pytest.mark.asyncio
async def test_list_registrations_scope(
    db_session, student, other_student, organizer, other_organizer, admin, test_event
):
    mine = await registration_service.register(db_session, as_principal(student), test_event.id)
    theirs = await registration_service.register(db_session, as_principal(other_student), test_event.id)

    # Students are pinned to their own rows whatever they ask for
    rows = await registration_service.list_registrations(
        db_session, as_principal(student), user_id=other_student.id
    )
    assert [r.id for r in rows] == [mine.id]

    rows = await registration_service.list_registrations(
        db_session, as_principal(organizer), event_id=test_event.id
    )
    assert {r.id for r in rows} == {mine.id, theirs.id}

    rows = await registration_service.list_registrations(
        db_session, as_principal(other_organizer), event_id=test_event.id
    )
    assert rows == []

    rows = await registration_service.list_registrations(
        db_session, as_principal(admin), user_id=other_student.id
    )
    assert [r.id for r in rows] == [theirs.id]

    rows = await registration_service.list_registrations(
        db_session, as_principal(admin), status=RegistrationStatus.APPROVED.value
    )
    assert rows == []
