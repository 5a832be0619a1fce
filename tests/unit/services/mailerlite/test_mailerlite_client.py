# MailerLite API client unit tests
import pytest
from unittest.mock import AsyncMock

from cart_recovery.core.exceptions import MailerLiteAPIError
from cart_recovery.services.mailerlite.client import MailerLiteClient


@pytest.fixture
def client():
    return MailerLiteClient(api_key="ml-key")


@pytest.mark.asyncio
async def test_make_request_uses_bearer_token(mocker, client):
    mock_client = mocker.patch("httpx.AsyncClient")
    mock_response = mocker.MagicMock()
    mock_response.status_code = 200
    mock_response.content = b'{"data": []}'
    mock_response.json.return_value = {"data": []}
    request = AsyncMock(return_value=mock_response)
    mock_client.return_value.__aenter__.return_value.request = request

    result = await client._make_request("GET", "/groups")

    _, kwargs = request.call_args
    assert kwargs["headers"]["Authorization"] == "Bearer ml-key"
    assert kwargs["url"] == "https://connect.mailerlite.com/api/groups"
    assert result == {"data": []}


@pytest.mark.asyncio
async def test_make_request_raises_on_error_status(mocker, client):
    mock_client = mocker.patch("httpx.AsyncClient")
    mock_response = mocker.MagicMock()
    mock_response.status_code = 422
    mock_response.text = "invalid"
    mock_client.return_value.__aenter__.return_value.request = AsyncMock(return_value=mock_response)

    with pytest.raises(MailerLiteAPIError):
        await client._make_request("POST", "/campaigns", data={})


@pytest.mark.asyncio
async def test_find_group_id_filters_by_name(mocker, client):
    mock_make_request = mocker.patch.object(
        MailerLiteClient, "_make_request", return_value={"data": [{"id": 123, "name": "Abandoned Cart"}]}
    )

    assert await client.find_group_id("Abandoned Cart") == "123"
    mock_make_request.assert_called_once_with("GET", "/groups", params={"filter[name]": "Abandoned Cart"})


@pytest.mark.asyncio
async def test_find_group_id_missing(mocker, client):
    mocker.patch.object(MailerLiteClient, "_make_request", return_value={"data": []})

    assert await client.find_group_id("Nope") is None


@pytest.mark.asyncio
async def test_create_campaign_returns_id(mocker, client):
    mock_make_request = mocker.patch.object(MailerLiteClient, "_make_request", return_value={"data": {"id": 987}})

    campaign_id = await client.create_campaign(
        subject="Hi", html="<p>Hi</p>", from_name="Shop", from_email="shop@x.com", recipient="a@x.com"
    )

    assert campaign_id == "987"
    _, kwargs = mock_make_request.call_args
    email = kwargs["data"]["emails"][0]
    assert email["subject"] == "Hi"
    assert email["from"] == "shop@x.com"
    assert email["content"] == "<p>Hi</p>"


@pytest.mark.asyncio
async def test_create_campaign_without_id_is_an_error(mocker, client):
    mocker.patch.object(MailerLiteClient, "_make_request", return_value={"data": {}})

    with pytest.raises(MailerLiteAPIError):
        await client.create_campaign("Hi", "<p/>", "Shop", "shop@x.com", "a@x.com")


@pytest.mark.asyncio
async def test_group_membership_endpoints(mocker, client):
    mock_make_request = mocker.patch.object(MailerLiteClient, "_make_request", return_value={})

    await client.add_subscriber_to_group("55", "g1")
    await client.remove_subscriber_from_group("55", "g1")

    assert mock_make_request.call_args_list[0].args == ("POST", "/subscribers/55/groups/g1")
    assert mock_make_request.call_args_list[1].args == ("DELETE", "/subscribers/55/groups/g1")


@pytest.mark.asyncio
async def test_get_subscriber_not_found(mocker, client):
    mocker.patch.object(MailerLiteClient, "_make_request", side_effect=MailerLiteAPIError("404"))

    assert await client.get_subscriber("nobody@x.com") is None
