# tests/test_routes/test_tracking_routes.py
import pytest

from cart_recovery.services.browse_tracker import BrowseTracker
from cart_recovery.services.cart_tracker import CartTracker

IMG = "https://cdn.example.com/p.jpg"


@pytest.mark.asyncio
async def test_product_view_is_tracked(api_client, db_session):
    response = await api_client.post("/track/product-view", json={
        "sessionId": "s1",
        "productId": 101,
        "productName": "Wildflower Dress",
        "productUrl": "https://shop.example.com/wildflower-dress/",
        "productImage": IMG,
        "productPrice": "11.50",
    })

    assert response.status_code == 200
    assert response.json() == {"tracked": True}
    events = await BrowseTracker(db_session).list_recent()
    assert len(events) == 1
    assert events[0].product_id == 101
    assert events[0].customer_email is None
    assert str(events[0].product_price) == "11.50"


@pytest.mark.asyncio
async def test_product_view_requires_product_id(api_client, db_session):
    response = await api_client.post("/track/product-view", json={"sessionId": "s1"})

    assert response.status_code == 400
    assert response.json() == {"error": "Product ID required"}
    assert await BrowseTracker(db_session).list_recent() == []


@pytest.mark.asyncio
async def test_product_view_rejects_zero_product_id(api_client, db_session):
    response = await api_client.post("/track/product-view", json={"sessionId": "s1", "productId": 0})

    assert response.status_code == 400
    assert response.json() == {"error": "Product ID required"}
    assert await BrowseTracker(db_session).list_recent() == []


@pytest.mark.asyncio
async def test_identified_view_attaches_email_to_anonymous_cart(api_client, db_session, mock_commerce):
    await CartTracker(db_session).upsert_cart("C1", email=None)
    await db_session.commit()

    response = await api_client.post("/track/product-view", json={
        "sessionId": "s1", "email": "u@x.com", "productId": 5, "productImage": IMG,
    })

    assert response.json() == {"tracked": True}
    cart = await CartTracker(db_session).get_cart("C1")
    assert cart.customer_email == "u@x.com"
    assert mock_commerce.updated_emails == [("C1", "u@x.com")]


@pytest.mark.asyncio
async def test_popup_signup(api_client, db_session, mock_delivery, mock_commerce):
    await CartTracker(db_session).upsert_cart("C1", email=None)
    await db_session.commit()

    response = await api_client.post("/popup/signup", json={"email": "p@x.com"})

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert mock_delivery.popup_signups == ["p@x.com"]
    assert (await CartTracker(db_session).get_cart("C1")).customer_email == "p@x.com"
    assert mock_commerce.updated_emails == [("C1", "p@x.com")]


@pytest.mark.asyncio
async def test_popup_signup_requires_email(api_client):
    response = await api_client.post("/popup/signup", json={})

    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_popup_signup_without_group(api_client, mock_delivery):
    mock_delivery.popup_group_exists = False

    response = await api_client.post("/popup/signup", json={"email": "p@x.com"})

    assert response.json() == {"success": False, "error": "Group not found"}
