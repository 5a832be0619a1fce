import json
import logging
import time
import httpx
from typing import Any, Dict, List, Optional

from cart_recovery.core.exceptions import MailerLiteAPIError

logger = logging.getLogger(__name__)


class MailerLiteClient:
    """
    Asynchronous client for the MailerLite "connect" API.

    Covers subscribers, groups and campaigns. All methods raise
    ``MailerLiteAPIError``; callers decide whether a failure matters.

    Documentation: https://developers.mailerlite.com/docs/
    """

    def __init__(self, api_key: str, base_url: str = "https://connect.mailerlite.com/api"):
        self.api_key = api_key
        self.BASE_URL = base_url.rstrip('/')

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None,
        timeout=30.0
    ) -> Dict:
        """
        Make a request to the MailerLite API

        Raises:
            MailerLiteAPIError: If the API request fails
        """
        url = f"{self.BASE_URL}/{endpoint.lstrip('/')}"
        logger.debug(f"Making {method} request to {url}")
        if data:
            logger.debug(f"Data: {json.dumps(data)[:500]}...")

        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._get_headers(),
                    json=data,
                    params=params
                )

                if response.status_code not in (200, 201, 202, 204):
                    logger.error(f"MailerLite API error {response.status_code}: {response.text[:500]}")
                    raise MailerLiteAPIError(f"MailerLite API error: {response.status_code}")

                if response.status_code == 204 or not response.content:
                    return {}

                return response.json()

        except httpx.TimeoutException as e:
            logger.error(f"Timeout error: {str(e)}")
            raise MailerLiteAPIError(f"Request timed out: {str(e)}")
        except httpx.RequestError as e:
            logger.error(f"Network error: {str(e)}")
            raise MailerLiteAPIError(f"Network error: {str(e)}")
        except ValueError as e:
            logger.error(f"Invalid JSON from MailerLite: {str(e)}")
            raise MailerLiteAPIError(f"Invalid response: {str(e)}")

    # Subscribers

    async def upsert_subscriber(
        self,
        email: str,
        fields: Optional[Dict[str, Any]] = None,
        groups: Optional[List[str]] = None,
    ) -> Dict:
        """Create or update a subscriber; returns the subscriber record."""
        payload: Dict[str, Any] = {"email": email}
        if fields:
            payload["fields"] = fields
        if groups:
            payload["groups"] = groups
        data = await self._make_request("POST", "/subscribers", data=payload)
        return data.get("data", {})

    async def get_subscriber(self, email: str) -> Optional[Dict]:
        try:
            data = await self._make_request("GET", f"/subscribers/{email}")
        except MailerLiteAPIError:
            return None
        return data.get("data")

    # Groups

    async def find_group_id(self, name: str) -> Optional[str]:
        data = await self._make_request("GET", "/groups", params={"filter[name]": name})
        groups = data.get("data") or []
        return str(groups[0]["id"]) if groups else None

    async def add_subscriber_to_group(self, subscriber_id: str, group_id: str) -> Dict:
        return await self._make_request("POST", f"/subscribers/{subscriber_id}/groups/{group_id}")

    async def remove_subscriber_from_group(self, subscriber_id: str, group_id: str) -> None:
        await self._make_request("DELETE", f"/subscribers/{subscriber_id}/groups/{group_id}")

    # Campaigns

    async def create_campaign(
        self,
        subject: str,
        html: str,
        from_name: str,
        from_email: str,
        recipient: str,
    ) -> str:
        """Create a regular one-off campaign and return its id."""
        payload = {
            "name": f"{subject} - {recipient} - {int(time.time() * 1000)}",
            "type": "regular",
            "emails": [{
                "subject": subject,
                "from_name": from_name,
                "from": from_email,
                "content": html,
            }],
        }
        data = await self._make_request("POST", "/campaigns", data=payload)
        campaign_id = (data.get("data") or {}).get("id")
        if not campaign_id:
            raise MailerLiteAPIError("Campaign created without an id")
        return str(campaign_id)

    async def send_campaign(self, campaign_id: str, recipient: str) -> None:
        await self._make_request(
            "POST",
            f"/campaigns/{campaign_id}/actions/send",
            data={
                "delivery": "instant",
                "recipient": {"type": "subscriber", "email": recipient},
            },
        )
