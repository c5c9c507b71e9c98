"""
Payment confirmation orchestration, client half.

``DonationCheckout`` drives one donation form through a linear state
machine::

    idle -> creating_intent -> awaiting_gateway_confirmation -> recording -> success

``error`` is reachable from every step. The gateway confirmation is never
retried; a retry is a new ``submit()``. Once the gateway has charged, a
failure to record is logged and the checkout still ends in ``success``
with ``recorded=False``; the donor is never told their paid gift failed.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol

import httpx
from email_validator import validate_email, EmailNotValidError
from pydantic import ValidationError as SchemaError

from donorledger.core.exceptions import GatewayError, LedgerError, ValidationError
from donorledger.models.transaction import TransactionType
from donorledger.schemas.donation import (
    ConfirmDonationRequest,
    ConfirmDonationResponse,
    PaymentConfigResponse,
    PaymentIntentRequest,
    PaymentIntentResponse,
)

logger = logging.getLogger(__name__)

# Limits of the confirm endpoint, checked before the card is charged.
MAX_EMAIL_LENGTH = 255
MAX_NAME_LENGTH = 100


class CheckoutState(str, Enum):
    IDLE = "idle"
    CREATING_INTENT = "creating_intent"
    AWAITING_GATEWAY_CONFIRMATION = "awaiting_gateway_confirmation"
    RECORDING = "recording"
    SUCCESS = "success"
    ERROR = "error"


class PaymentWidget(Protocol):
    """The embedded card form of the payment gateway."""

    def is_ready(self) -> bool:
        ...

    async def confirm_payment(self, client_secret: str, connected_account_id: str) -> str:
        """Charge the card. Returns the gateway transaction id; raises GatewayError."""
        ...


@dataclass
class DonationForm:
    email: str
    first_name: str
    last_name: str
    amount: int
    tip_amount: int = 0
    fee_amount: int = 0
    currency: str = "usd"
    frequency: TransactionType = TransactionType.ONE_TIME
    campaign_id: Optional[int] = None
    source_id: Optional[int] = None
    is_anonymous: bool = False


@dataclass
class CheckoutResult:
    state: CheckoutState
    recorded: bool = False
    transaction_id: Optional[int] = None
    gateway_transaction_id: Optional[str] = None
    error_code: Optional[str] = None
    message: str = ""


class DonationApiClient:
    """HTTP client for the public donation endpoints."""

    def __init__(
        self,
        base_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0
    ):
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, payload: Optional[dict] = None) -> dict:
        response = await self._client.request(method, url, json=payload)
        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code >= 400:
            body = body if isinstance(body, dict) else {}
            raise LedgerError(
                body.get("message") or f"Request failed with status {response.status_code}",
                code=body.get("code") or "http_error",
                status_code=response.status_code
            )
        return body

    async def payment_config(self) -> PaymentConfigResponse:
        return PaymentConfigResponse.model_validate(
            await self._request("GET", "/api/v1/payment-config")
        )

    async def create_payment_intent(self, req: PaymentIntentRequest) -> PaymentIntentResponse:
        return PaymentIntentResponse.model_validate(
            await self._request(
                "POST", "/api/v1/payment-intents", req.model_dump(by_alias=True)
            )
        )

    async def confirm_donation(self, req: ConfirmDonationRequest) -> ConfirmDonationResponse:
        return ConfirmDonationResponse.model_validate(
            await self._request(
                "POST", "/api/v1/donations/confirm", req.model_dump(by_alias=True, mode="json")
            )
        )


class DonationCheckout:
    def __init__(
        self,
        api: DonationApiClient,
        widget: PaymentWidget,
        on_state_change: Optional[Callable[[CheckoutState], None]] = None
    ):
        self.api = api
        self.widget = widget
        self.on_state_change = on_state_change
        self.state = CheckoutState.IDLE
        self.history: list[CheckoutState] = [CheckoutState.IDLE]
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def _transition(self, state: CheckoutState) -> None:
        self.state = state
        self.history.append(state)
        if self.on_state_change is not None:
            self.on_state_change(state)

    def _fail(self, code: str, message: str, **extra) -> CheckoutResult:
        self._transition(CheckoutState.ERROR)
        return CheckoutResult(state=CheckoutState.ERROR, error_code=code, message=message, **extra)

    def _validate(self, form: DonationForm) -> None:
        try:
            validate_email(form.email, check_deliverability=False)
        except EmailNotValidError:
            raise ValidationError(
                "Please enter a valid email address.", code="invalid_email"
            ) from None
        if len(form.email) > MAX_EMAIL_LENGTH:
            raise ValidationError("That email address is too long.", code="invalid_email")
        if not form.first_name.strip() or not form.last_name.strip():
            raise ValidationError("Please enter your first and last name.", code="invalid_donor")
        if max(len(form.first_name), len(form.last_name)) > MAX_NAME_LENGTH:
            raise ValidationError(
                f"Names can be at most {MAX_NAME_LENGTH} characters.", code="invalid_donor"
            )
        if form.amount < 1:
            raise ValidationError("Please choose a donation amount.", code="invalid_amount")
        if form.tip_amount < 0 or form.fee_amount < 0:
            raise ValidationError("Tip and fee amounts cannot be negative.", code="invalid_amount")
        currency = (form.currency or "").strip()
        if len(currency) != 3 or not currency.isalpha():
            raise ValidationError("Unsupported currency.", code="invalid_currency")
        if not self.widget.is_ready():
            raise ValidationError("The payment form is still loading.", code="widget_not_ready")

    async def submit(self, form: DonationForm) -> Optional[CheckoutResult]:
        """
        Run one checkout. Returns None without side effects when another
        submission is already in flight.
        """
        if self._in_flight:
            return None
        self._in_flight = True
        try:
            return await self._run(form)
        finally:
            self._in_flight = False

    async def _run(self, form: DonationForm) -> CheckoutResult:
        try:
            self._validate(form)
        except ValidationError as e:
            return self._fail(e.code, e.message)

        self._transition(CheckoutState.CREATING_INTENT)
        try:
            config = await self.api.payment_config()
            if not config.connected_account_id:
                return self._fail(
                    "stripe_not_connected",
                    "Donations are not available yet: connect Stripe in the plugin settings."
                )
            intent = await self.api.create_payment_intent(
                PaymentIntentRequest(
                    donation_amount=form.amount,
                    tip_amount=form.tip_amount,
                    fee_amount=form.fee_amount,
                )
            )
        except LedgerError as e:
            return self._fail(e.code, e.message)
        except SchemaError:
            logger.exception("Payment intent request or response was malformed")
            return self._fail("invalid_response", "Something went wrong preparing your payment.")
        except httpx.HTTPError as e:
            logger.warning("Payment intent request failed: %s", e)
            return self._fail("network_error", "Could not reach the server. Please try again.")

        self._transition(CheckoutState.AWAITING_GATEWAY_CONFIRMATION)
        try:
            gateway_transaction_id = await self.widget.confirm_payment(
                intent.client_secret, intent.connected_account_id
            )
        except GatewayError as e:
            return self._fail(e.code, e.message)

        self._transition(CheckoutState.RECORDING)
        result = CheckoutResult(
            state=CheckoutState.SUCCESS,
            gateway_transaction_id=gateway_transaction_id,
        )
        try:
            confirmed = await self.api.confirm_donation(
                ConfirmDonationRequest(
                    gateway_transaction_id=gateway_transaction_id,
                    donor_email=form.email,
                    donor_first_name=form.first_name,
                    donor_last_name=form.last_name,
                    donation_amount=intent.donation_amount,
                    fee_amount=intent.fee_amount,
                    tip_amount=intent.tip_amount,
                    currency=form.currency,
                    frequency=form.frequency,
                    campaign_id=form.campaign_id,
                    source_id=form.source_id,
                    is_anonymous=form.is_anonymous,
                )
            )
            result.recorded = confirmed.success
            result.transaction_id = confirmed.transaction_id
        except (LedgerError, SchemaError, httpx.HTTPError):
            logger.exception(
                "Payment %s charged but recording the donation failed", gateway_transaction_id
            )

        self._transition(CheckoutState.SUCCESS)
        return result
