import json
import logging
import httpx
from typing import Any, Dict, Optional

from cart_recovery.core.exceptions import BigCommerceAPIError

logger = logging.getLogger(__name__)


class BigCommerceClient:
    """
    Asynchronous client for the parts of the BigCommerce REST API the
    abandonment service needs: carts, customers, orders and checkout
    billing addresses.

    The low-level ``_make_request`` raises ``BigCommerceAPIError``. The public
    helpers (``fetch_cart``, ``fetch_customer_email``, ``fetch_order``,
    ``update_cart_email``) catch it and return ``None`` / ``False`` so a
    webhook handler never fails because the platform is unreachable.

    Documentation: https://developer.bigcommerce.com/docs/rest-management
    """

    def __init__(self, store_hash: str, access_token: str, base_url: str = "https://api.bigcommerce.com/stores"):
        self.store_hash = store_hash
        self.access_token = access_token
        self.BASE_URL = f"{base_url.rstrip('/')}/{store_hash}"

    def _get_headers(self) -> Dict[str, str]:
        """Get headers for API requests"""
        return {
            "X-Auth-Token": self.access_token,
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
        Make a request to the BigCommerce API

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            endpoint: API endpoint, e.g. ``/v3/carts/{id}``
            data: Request payload for POST/PUT requests
            params: Query parameters

        Returns:
            Dict: Response data

        Raises:
            BigCommerceAPIError: If the API request fails
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

                if response.status_code not in (200, 201, 204):
                    logger.error(f"BigCommerce API error {response.status_code}: {response.text[:500]}")
                    raise BigCommerceAPIError(f"BigCommerce API error: {response.status_code}")

                if response.status_code == 204:
                    return {}

                return response.json()

        except httpx.TimeoutException as e:
            logger.error(f"Timeout error: {str(e)}")
            raise BigCommerceAPIError(f"Request timed out: {str(e)}")
        except httpx.RequestError as e:
            logger.error(f"Network error: {str(e)}")
            raise BigCommerceAPIError(f"Network error: {str(e)}")
        except ValueError as e:
            logger.error(f"Invalid JSON from BigCommerce: {str(e)}")
            raise BigCommerceAPIError(f"Invalid response: {str(e)}")

    async def fetch_cart(self, cart_id: str) -> Optional[Dict[str, Any]]:
        """Cart snapshot including line item options, or None."""
        try:
            data = await self._make_request(
                "GET",
                f"/v3/carts/{cart_id}",
                params={"include": "line_items.physical_items.options"},
            )
            return data.get("data")
        except BigCommerceAPIError as e:
            logger.error(f"Error fetching cart {cart_id}: {e}")
            return None

    async def fetch_customer_email(self, customer_id: int) -> Optional[str]:
        try:
            data = await self._make_request("GET", "/v3/customers", params={"id:in": customer_id})
        except BigCommerceAPIError as e:
            logger.error(f"Error fetching customer {customer_id}: {e}")
            return None

        customers = data.get("data") or []
        if customers:
            return customers[0].get("email")
        return None

    async def fetch_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        """
        Returns {"cart_id": ..., "billing_email": ...} for an order, or None.
        The v2 orders endpoint is the only one that exposes ``cart_id``.
        """
        try:
            order = await self._make_request("GET", f"/v2/orders/{order_id}")
        except BigCommerceAPIError as e:
            logger.error(f"Error fetching order {order_id}: {e}")
            return None

        billing = order.get("billing_address") or {}
        return {
            "cart_id": order.get("cart_id"),
            "billing_email": billing.get("email"),
        }

    async def update_cart_email(self, cart_id: str, email: str) -> bool:
        """Attach an email to the cart's checkout so the platform knows it too."""
        try:
            await self._make_request(
                "POST",
                f"/v3/checkouts/{cart_id}/billing-address",
                data={"email": email},
            )
            return True
        except BigCommerceAPIError as e:
            logger.error(f"Error updating email for cart {cart_id}: {e}")
            return False
