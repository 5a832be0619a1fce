# tests/test_routes/test_api_routes.py
from datetime import timedelta

import pytest
from sqlalchemy import select

from cart_recovery.core.utils import utcnow
from cart_recovery.models.email_log import EmailLogEntry
from cart_recovery.services.browse_tracker import BrowseTracker
from cart_recovery.services.cart_tracker import CartTracker

IMG = "https://cdn.example.com/p.jpg"


def two_hours_ago():
    return utcnow() - timedelta(hours=2)


async def seed_abandoned_cart(db_session, cart_id="C1", email="a@x.com"):
    await CartTracker(db_session, clock=two_hours_ago).upsert_cart(cart_id, email=email)
    await db_session.commit()


@pytest.mark.asyncio
async def test_health(api_client):
    response = await api_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_root_reports_restricted_mode(api_client, settings):
    settings.RESTRICTED_MODE = True
    settings.RESTRICTED_RECIPIENT = "y@x.com"

    data = (await api_client.get("/")).json()

    assert data["status"] == "ok"
    assert data["restricted_mode"] is True
    assert data["restricted_recipient"] == "y@x.com"


@pytest.mark.asyncio
async def test_scheduler_status_when_not_started(api_client):
    response = await api_client.get("/api/scheduler")

    assert response.json() == {"running": False, "jobs": []}


@pytest.mark.asyncio
async def test_list_abandoned_carts(api_client, db_session):
    await seed_abandoned_cart(db_session, "C1")
    await CartTracker(db_session).upsert_cart("C2")
    await CartTracker(db_session).mark_converted("C2")

    response = await api_client.get("/api/abandoned-carts")

    assert response.status_code == 200
    assert [c["cart_id"] for c in response.json()] == ["C1"]


@pytest.mark.asyncio
async def test_list_browse_events(api_client, db_session):
    await BrowseTracker(db_session).record_view("s", "b@x.com", 9, image=IMG)

    response = await api_client.get("/api/browse-events")

    assert [e["product_id"] for e in response.json()] == [9]


@pytest.mark.asyncio
async def test_stats(api_client, db_session):
    await seed_abandoned_cart(db_session, "C1", "a@x.com")
    await seed_abandoned_cart(db_session, "C2", None)
    await BrowseTracker(db_session).record_view("s", "b@x.com", 9, image=IMG)
    await BrowseTracker(db_session).record_view("s", "b@x.com", 10, image=IMG)

    data = (await api_client.get("/api/stats")).json()

    assert data["carts"]["abandoned_with_email"] == 1
    assert data["carts"]["abandoned_anonymous"] == 1
    assert data["carts"]["converted"] == 0
    assert data["browse"]["total_views"] == 2
    assert data["browse"]["unique_visitors_with_email"] == 1
    assert data["window_days"] == 30


@pytest.mark.asyncio
async def test_process_abandoned_sends_and_reports(api_client, db_session, mock_delivery):
    await seed_abandoned_cart(db_session)

    response = await api_client.post("/api/process-abandoned")

    data = response.json()
    assert data["success"] is True
    assert data["restricted_mode"] is False
    assert data["result"]["sent"] == 1
    assert mock_delivery.recipients() == ["a@x.com"]
    entries = (await db_session.execute(select(EmailLogEntry))).scalars().all()
    assert [e.cart_id for e in entries] == ["C1"]


@pytest.mark.asyncio
async def test_process_abandoned_in_restricted_mode(api_client, db_session, settings, mock_delivery):
    settings.RESTRICTED_MODE = True
    settings.RESTRICTED_RECIPIENT = "y@x.com"
    await seed_abandoned_cart(db_session, "C1", "z@x.com")

    data = (await api_client.post("/api/process-abandoned")).json()

    assert data["restricted_mode"] is True
    assert data["result"]["skipped"] == 1
    assert mock_delivery.calls == []


@pytest.mark.asyncio
async def test_process_browse(api_client, db_session, mock_delivery):
    await BrowseTracker(db_session, clock=lambda: utcnow() - timedelta(hours=3)).record_view(
        "s", "b@x.com", 9, name="Wildflower Dress", image=IMG
    )

    data = (await api_client.post("/api/process-browse")).json()

    assert data["success"] is True
    assert data["result"]["sent"] == 1
    assert mock_delivery.calls[0]["payload"]["subject"] == "Still thinking about Wildflower Dress?"


@pytest.mark.asyncio
async def test_test_email_goes_to_restricted_recipient(api_client, settings, mock_delivery):
    settings.RESTRICTED_MODE = True
    settings.RESTRICTED_RECIPIENT = "y@x.com"

    response = await api_client.post("/api/test-email", json={"type": "browse"})

    assert response.json()["success"] is True
    assert mock_delivery.recipients() == ["y@x.com"]
    assert mock_delivery.calls[0]["payload"]["subject"].startswith("TEST: ")


@pytest.mark.asyncio
async def test_test_email_rejects_unknown_type(api_client, settings):
    settings.RESTRICTED_RECIPIENT = "y@x.com"

    response = await api_client.post("/api/test-email", json={"type": "order"})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_test_email_requires_recipient(api_client):
    response = await api_client.post("/api/test-email", json={"type": "cart"})

    assert response.status_code == 400
