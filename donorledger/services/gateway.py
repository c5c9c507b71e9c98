"""
Client for the external payment-gateway orchestration API.

The orchestration service owns the processor credentials. It exchanges a
one-time setup code for the site token that authenticates this ledger, and
creates payment intents on the nonprofit's connected account. Calls are never
retried here; a retry is a new donor-initiated attempt.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from donorledger.core.config import settings
from donorledger.core.exceptions import GatewayError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentIntent:
    client_secret: str
    connected_account_id: str


@dataclass(frozen=True)
class SiteConnection:
    site_token: str
    account_id: str = ""
    display_name: str = ""


def _json_body(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class GatewayClient:
    """Thin async wrapper around the orchestration API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.GATEWAY_API_BASE,
            timeout=timeout if timeout is not None else settings.GATEWAY_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def create_payment_intent(
        self,
        site_token: str,
        donation_amount: int,
        tip_amount: int
    ) -> PaymentIntent:
        logger.info(
            "Requesting payment intent: donation=%s tip=%s", donation_amount, tip_amount
        )
        try:
            response = await self._client.post(
                "/create-payment-intent",
                headers={"Authorization": f"Bearer {site_token}"},
                json={"donation_amount": donation_amount, "tip_amount": tip_amount},
            )
        except httpx.HTTPError as e:
            logger.warning("Payment gateway unreachable: %s", e)
            raise GatewayError(
                "Could not reach the payment gateway.",
                code="mission_api_error",
                status_code=502
            ) from e

        body = _json_body(response)

        if (
            response.status_code != 200
            or not body.get("client_secret")
            or not body.get("connected_account_id")
        ):
            message = body.get("error") or "Failed to create payment intent."
            logger.warning(
                "Payment intent rejected (%s): %s", response.status_code, message
            )
            raise GatewayError(
                message,
                code="payment_intent_failed",
                status_code=response.status_code if response.status_code >= 400 else 502
            )

        return PaymentIntent(
            client_secret=body["client_secret"],
            connected_account_id=body["connected_account_id"],
        )

    async def connect_site(self, setup_code: str, site_id: str) -> SiteConnection:
        """Exchange the setup code from the connect flow for a site token."""
        logger.info("Finalizing gateway connection for site %s", site_id)
        try:
            response = await self._client.post(
                "/connect/finalize",
                json={"setup_code": setup_code, "site_id": site_id},
            )
        except httpx.HTTPError as e:
            logger.warning("Payment gateway unreachable during connect: %s", e)
            raise GatewayError(
                "Could not reach the payment gateway.",
                code="mission_connect_failed",
                status_code=502
            ) from e

        body = _json_body(response)
        if response.status_code != 200 or not body.get("site_token"):
            message = body.get("error") or "Stripe connection failed."
            logger.warning("Gateway connect rejected (%s): %s", response.status_code, message)
            raise GatewayError(
                message,
                code="mission_connect_failed",
                status_code=response.status_code if response.status_code >= 400 else 502
            )

        return SiteConnection(
            site_token=body["site_token"],
            account_id=body.get("stripe_account_id") or "",
            display_name=body.get("display_name") or "",
        )

    async def disconnect_site(self, site_token: str) -> bool:
        """
        Tell the gateway to revoke ``site_token``.

        Best effort: the local connection is cleared whatever the gateway
        answers, so failures are logged and reported as False.
        """
        try:
            response = await self._client.post(
                "/disconnect",
                headers={"Authorization": f"Bearer {site_token}"},
                timeout=15.0,
            )
        except httpx.HTTPError as e:
            logger.warning("Payment gateway unreachable during disconnect: %s", e)
            return False
        if response.status_code >= 400:
            logger.warning("Gateway disconnect answered %s", response.status_code)
            return False
        return True
