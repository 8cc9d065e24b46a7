"""
Tests for event endpoints.
"""

import pytest
from httpx import AsyncClient

from campus_events.models.event import ReviewStatus


@pytest.mark.asyncio
async def test_create_event(client: AsyncClient, organizer, headers_for):
    """Organizer creates an event; it waits for review."""
    response = await client.post(
        "/api/v1/events/",
        json={
            "title": "Photography Walk",
            "place": "East Gate",
            "start_time": "2030-05-01",
            "end_time": "2030-05-01",
            "limit": 20,
            "allowed_colleges": "计算机学院,数学学院",
        },
        headers=headers_for(organizer),
    )
    assert response.status_code == 201
    data = response.json()
    assert data["review_status"] == "pending"
    assert data["start_time"] == "2030-05-01 00:00:00"
    assert data["end_time"] == "2030-05-01 23:59:59"
    assert data["allowed_colleges"] == ["计算机学院", "数学学院"]
    assert data["creator_id"] == organizer.id
    assert data["creator_name"] == organizer.name
    assert data["current_count"] == 0


@pytest.mark.asyncio
async def test_create_event_unauthenticated(client: AsyncClient):
    response = await client.post("/api/v1/events/", json={"title": "x"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "auth_required"


@pytest.mark.asyncio
async def test_create_event_invalid_token(client: AsyncClient):
    response = await client.post(
        "/api/v1/events/",
        json={"title": "x"},
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_event_as_student_forbidden(client: AsyncClient, student, headers_for):
    response = await client.post(
        "/api/v1/events/",
        json={"title": "x", "place": "y", "start_time": "2030-01-01", "end_time": "2030-01-02", "limit": 5},
        headers=headers_for(student),
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "only organizers can create events"


@pytest.mark.asyncio
async def test_create_event_missing_fields(client: AsyncClient, organizer, headers_for):
    response = await client.post(
        "/api/v1/events/",
        json={"title": "Incomplete"},
        headers=headers_for(organizer),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "validation_error"


@pytest.mark.asyncio
async def test_list_events_public(client: AsyncClient, organizer, make_event):
    """Anonymous listing shows approved events with their counts."""
    await make_event(organizer, title="Approved")
    await make_event(organizer, title="Waiting", review_status=ReviewStatus.PENDING.value)

    response = await client.get("/api/v1/events/")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["cached"] is False
    assert data["events"][0]["title"] == "Approved"
    assert data["events"][0]["current_count"] == 0


@pytest.mark.asyncio
async def test_list_events_for_organizer(client: AsyncClient, organizer, other_organizer, make_event, headers_for):
    await make_event(organizer, title="Mine", review_status=ReviewStatus.PENDING.value)
    await make_event(other_organizer, title="Theirs")

    response = await client.get("/api/v1/events/", headers=headers_for(organizer))
    data = response.json()
    assert [e["title"] for e in data["events"]] == ["Mine"]


@pytest.mark.asyncio
async def test_list_events_pagination(client: AsyncClient, organizer, make_event):
    for i in range(5):
        await make_event(organizer, title=f"Event {i}")

    response = await client.get("/api/v1/events/?page=2&page_size=2")
    data = response.json()
    assert data["total"] == 5
    assert data["page"] == 2
    assert len(data["events"]) == 2


@pytest.mark.asyncio
async def test_get_event(client: AsyncClient, test_event):
    response = await client.get(f"/api/v1/events/{test_event.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Spring Hackathon"
    assert data["start_time"] == "2030-04-01 09:00:00"
    assert data["limit"] == 100


@pytest.mark.asyncio
async def test_get_event_not_found(client: AsyncClient):
    response = await client.get("/api/v1/events/99999")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_event(client: AsyncClient, organizer, test_event, headers_for):
    response = await client.put(
        f"/api/v1/events/{test_event.id}",
        json={"title": "Autumn Hackathon"},
        headers=headers_for(organizer),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Autumn Hackathon"
    assert data["place"] == "Library Hall"


@pytest.mark.asyncio
async def test_update_event_not_owner(client: AsyncClient, other_organizer, test_event, headers_for):
    response = await client.put(
        f"/api/v1/events/{test_event.id}",
        json={"title": "Mine now"},
        headers=headers_for(other_organizer),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_close_event(client: AsyncClient, organizer, test_event, headers_for):
    response = await client.patch(
        f"/api/v1/events/{test_event.id}/status",
        json={"status": 0},
        headers=headers_for(organizer),
    )
    assert response.status_code == 200
    assert response.json()["status"] == 0


@pytest.mark.asyncio
async def test_review_event(client: AsyncClient, organizer, reviewer, make_event, headers_for):
    event = await make_event(organizer, review_status=ReviewStatus.PENDING.value)

    response = await client.patch(
        f"/api/v1/events/{event.id}/review",
        json={"review_status": "approved"},
        headers=headers_for(reviewer),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["review_status"] == "approved"
    assert data["reviewer_id"] == reviewer.id
    assert data["review_time"] is not None

    public = await client.get(f"/api/v1/events/{event.id}")
    assert public.status_code == 200


@pytest.mark.asyncio
async def test_review_event_by_organizer_forbidden(client: AsyncClient, organizer, make_event, headers_for):
    event = await make_event(organizer, review_status=ReviewStatus.PENDING.value)

    response = await client.patch(
        f"/api/v1/events/{event.id}/review",
        json={"review_status": "approved"},
        headers=headers_for(organizer),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_review_event_invalid_outcome(client: AsyncClient, organizer, reviewer, make_event, headers_for):
    event = await make_event(organizer, review_status=ReviewStatus.PENDING.value)

    response = await client.patch(
        f"/api/v1/events/{event.id}/review",
        json={"review_status": "pending"},
        headers=headers_for(reviewer),
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_event(client: AsyncClient, organizer, test_event, headers_for):
    response = await client.delete(f"/api/v1/events/{test_event.id}", headers=headers_for(organizer))
    assert response.status_code == 204

    response = await client.get(f"/api/v1/events/{test_event.id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_event_with_registrations(client: AsyncClient, organizer, student, test_event, headers_for):
    registered = await client.post(
        "/api/v1/registrations/",
        json={"event_id": test_event.id},
        headers=headers_for(student),
    )
    assert registered.status_code == 201

    response = await client.delete(f"/api/v1/events/{test_event.id}", headers=headers_for(organizer))
    assert response.status_code == 409
