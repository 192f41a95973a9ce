"""HTTP surface tests against the ASGI app.

The lifespan does not run under ASGITransport, so each app gets the test
database and services attached directly.
"""

from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from eventcore.main import create_app


@pytest_asyncio.fixture
async def client(database, services):
    app = create_app()
    app.state.database = database
    app.state.services = services
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def event_payload(organizer, category):
    return {
        "title": "Buenos Aires JavaScript Meetup",
        "slug": "ba-js-meetup",
        "start_date": "2026-12-10T19:00:00Z",
        "city": "Buenos Aires",
        "capacity": 2,
        "price": "15.00",
        "tags": ["javascript", "meetup"],
        "organizer_id": organizer.id,
        "category_id": category.id,
    }


async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json() == {"service": "eventcore"}


async def test_event_lifecycle_through_check_in(client, event_payload, attendee):
    response = await client.post("/events/", json=event_payload)
    assert response.status_code == 201
    event = response.json()
    assert event["status"] == "DRAFT"
    assert event["published"] is False

    response = await client.post("/tickets/", json={"event_id": event["id"], "user_id": attendee.id})
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "EVENT_NOT_ON_SALE"

    response = await client.post(f"/events/{event['id']}/publish")
    assert response.status_code == 200
    assert response.json()["status"] == "PUBLISHED"

    response = await client.post("/tickets/", json={"event_id": event["id"], "user_id": attendee.id})
    assert response.status_code == 201
    ticket = response.json()
    assert ticket["status"] == "CONFIRMED"
    assert Decimal(ticket["price"]) == Decimal("15.00")
    assert ticket["qr_code"].startswith("TICKET-")

    response = await client.get(f"/events/{event['id']}/capacity")
    assert response.json() == {"event_id": event["id"], "capacity": 2, "remaining": 1}

    response = await client.post("/tickets/check-in", json={"qr_code": ticket["qr_code"]})
    assert response.status_code == 200
    assert response.json()["status"] == "USED"

    response = await client.post("/tickets/check-in", json={"qr_code": ticket["qr_code"]})
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "ALREADY_USED"


async def test_duplicate_slug_is_conflict(client, event_payload):
    assert (await client.post("/events/", json=event_payload)).status_code == 201
    response = await client.post("/events/", json=event_payload)
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "DUPLICATE_SLUG"


async def test_invalid_event_payload_is_rejected(client, event_payload):
    event_payload["capacity"] = 0
    response = await client.post("/events/", json=event_payload)
    assert response.status_code == 422


async def test_price_update_and_ticket_cancel(client, event_payload, attendee):
    event = (await client.post("/events/", json={**event_payload, "publish": True})).json()
    ticket = (await client.post("/tickets/", json={"event_id": event["id"], "user_id": attendee.id})).json()

    response = await client.patch(f"/events/{event['id']}/price", json={"price": "-1"})
    assert response.status_code == 422

    response = await client.patch(f"/events/{event['id']}/price", json={"price": "20.00"})
    assert response.status_code == 200
    assert Decimal(response.json()["price"]) == Decimal("20.00")

    response = await client.get(f"/tickets/{ticket['id']}")
    assert Decimal(response.json()["price"]) == Decimal("15.00")

    response = await client.post(f"/tickets/{ticket['id']}/cancel")
    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"

    response = await client.get(f"/events/{event['id']}/capacity")
    assert response.json()["remaining"] == 2


async def test_unknown_ids_map_to_404(client):
    for path in ("/events/999", "/tickets/999", "/users/999", "/events/999/capacity", "/tickets/event/999"):
        response = await client.get(path)
        assert response.status_code == 404, path

    response = await client.post("/tickets/check-in", json={"qr_code": "TICKET-0-missing"})
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "NOT_FOUND"


async def test_user_registration_hides_hash(client):
    payload = {"email": "new@example.org", "name": "New Person", "password": "password123"}
    response = await client.post("/users/", json=payload)
    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "new@example.org"
    assert body["role"] == "USER"
    assert "hashed_password" not in body
    assert "password" not in body

    response = await client.post("/users/", json=payload)
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "DUPLICATE_EMAIL"


async def test_categories(client, category):
    response = await client.get("/categories/")
    assert response.status_code == 200
    assert [c["slug"] for c in response.json()] == ["workshop"]

    response = await client.get("/categories/workshop")
    assert response.json()["color"] == "#8B5CF6"
    assert (await client.get("/categories/nope")).status_code == 404


async def test_ticket_listings(client, services, published_event, attendee):
    await services.issuer.issue(published_event.id, attendee.id)

    response = await client.get(f"/tickets/user/{attendee.id}")
    assert len(response.json()) == 1

    response = await client.get(f"/tickets/event/{published_event.id}")
    assert [t["user_id"] for t in response.json()] == [attendee.id]

    response = await client.get("/events/", params={"published": True})
    assert [e["id"] for e in response.json()] == [published_event.id]
