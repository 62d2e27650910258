"""
Back Office — PayPal Orders v2 client (httpx)

OAuth2 client-credentials token, create order (intent CAPTURE), capture.
"""
import logging
import time
from dataclasses import dataclass
from decimal import Decimal

import httpx

from backoffice.core.config import Settings, get_settings
from backoffice.core.exceptions import PaymentError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PayPalOrder:
    id: str
    status: str
    approve_url: str | None = None


class PayPalClient:
    def __init__(self, settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings or get_settings()
        self._transport = transport
        self._token: str | None = None
        self._token_expires_at = 0.0

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.PAYPAL_BASE_URL,
            timeout=self.settings.PAYPAL_TIMEOUT,
            transport=self._transport,
        )

    async def _request(self, client: httpx.AsyncClient, method: str, url: str, **kwargs) -> dict:
        try:
            resp = await client.request(method, url, **kwargs)
        except httpx.TimeoutException:
            logger.error("PayPal %s %s timed out", method, url)
            raise PaymentError("Payment provider timed out.")
        except httpx.RequestError as exc:
            logger.error("PayPal %s %s unreachable: %s", method, url, exc)
            raise PaymentError("Payment provider unavailable.")
        if resp.status_code >= 400:
            logger.error("PayPal %s %s returned %d: %s", method, url, resp.status_code, resp.text[:300])
            raise PaymentError(f"Payment provider rejected the request ({resp.status_code}).")
        return resp.json()

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token
        data = await self._request(
            client, "POST", "/v1/oauth2/token",
            data={"grant_type": "client_credentials"},
            auth=(self.settings.PAYPAL_CLIENT_ID, self.settings.PAYPAL_CLIENT_SECRET),
            headers={"Accept": "application/json"},
        )
        self._token = data["access_token"]
        # Refresh a minute early.
        self._token_expires_at = time.monotonic() + max(int(data.get("expires_in", 0)) - 60, 0)
        return self._token

    async def create_order(self, invoice_id: str, amount: Decimal) -> PayPalOrder:
        async with self._client() as client:
            token = await self._access_token(client)
            data = await self._request(
                client, "POST", "/v2/checkout/orders",
                headers={"Authorization": f"Bearer {token}"},
                json={
                    "intent": "CAPTURE",
                    "purchase_units": [{
                        "invoice_id": invoice_id,
                        "amount": {"currency_code": self.settings.PAYPAL_CURRENCY, "value": f"{amount:.2f}"},
                    }],
                },
            )
        approve = next(
            (link["href"] for link in data.get("links", []) if link.get("rel") in ("approve", "payer-action")),
            None,
        )
        logger.info("PayPal order %s created for %s (%s)", data["id"], invoice_id, amount)
        return PayPalOrder(id=data["id"], status=data.get("status", ""), approve_url=approve)

    async def capture_order(self, paypal_order_id: str) -> PayPalOrder:
        async with self._client() as client:
            token = await self._access_token(client)
            data = await self._request(
                client, "POST", f"/v2/checkout/orders/{paypal_order_id}/capture",
                headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            )
        logger.info("PayPal order %s capture status %s", paypal_order_id, data.get("status"))
        return PayPalOrder(id=data.get("id", paypal_order_id), status=data.get("status", ""))
