"""
Payment confirmation orchestration, server half.

Two phases bridge the external gateway and the ledger:

1. ``create_payment_intent`` shifts the tip's processing cost onto the
   donation and asks the gateway for a payment intent.
2. ``confirm_donation`` records a donation the gateway has already
   charged: it upserts the donor, creates the transaction as pending and
   completes it through the store so the aggregates move.

Confirmation is find-or-create on the gateway transaction id, so a
repeated confirm never records the same charge twice.
"""
import logging
from typing import Optional

from email_validator import validate_email, EmailNotValidError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from donorledger.core.exceptions import GatewayError, PersistenceError, ValidationError
from donorledger.models.base import utcnow
from donorledger.models.subscription import SubscriptionStatus
from donorledger.models.transaction import TransactionStatus, TransactionType
from donorledger.schemas.donation import (
    ConfirmDonationRequest,
    PaymentConfigResponse,
    PaymentIntentResponse,
)
from donorledger.schemas.records import DonorRecord, SubscriptionRecord, TransactionRecord
from donorledger.schemas.settings import ConnectionStatus, LedgerSettings
from donorledger.services.events import EventBus
from donorledger.services.fees import absorb_tip_fee
from donorledger.services.gateway import GatewayClient
from donorledger.services.renewals import next_renewal
from donorledger.services.settings import SettingsService
from donorledger.stores.campaign import CampaignStore
from donorledger.stores.donor import DonorStore
from donorledger.stores.subscription import SubscriptionStore
from donorledger.stores.transaction import TransactionStore

logger = logging.getLogger(__name__)

GATEWAY_NAME = "stripe"


class PaymentService:
    def __init__(
        self,
        session: AsyncSession,
        gateway: Optional[GatewayClient] = None,
        events: Optional[EventBus] = None
    ):
        self.session = session
        self.gateway = gateway
        self.events = events or EventBus()
        self.settings = SettingsService(session, self.events)
        self.donors = DonorStore(session, self.events)
        self.campaigns = CampaignStore(session, self.events)
        self.transactions = TransactionStore(session, self.events)
        self.subscriptions = SubscriptionStore(session, self.events)

    async def create_payment_intent(
        self,
        donation_amount: int,
        tip_amount: int = 0,
        fee_amount: int = 0
    ) -> PaymentIntentResponse:
        split = absorb_tip_fee(donation_amount, tip_amount, await self.settings.fee_schedule())

        if split.amount < 1:
            raise ValidationError(
                "Donation amount must be at least 1 cent.", code="invalid_amount"
            )

        site_token = await self.settings.get("stripe_site_token")
        if not site_token:
            raise GatewayError(
                "Stripe is not connected. Please connect Stripe in the plugin settings.",
                code="stripe_not_connected",
                status_code=400
            )
        if self.gateway is None:
            raise GatewayError("No payment gateway configured.", code="mission_api_error")

        intent = await self.gateway.create_payment_intent(
            site_token, split.amount + fee_amount, split.tip
        )

        if not await self.settings.get("stripe_account_id"):
            await self.settings.update({"stripe_account_id": intent.connected_account_id})

        return PaymentIntentResponse(
            client_secret=intent.client_secret,
            connected_account_id=intent.connected_account_id,
            donation_amount=split.amount,
            tip_amount=split.tip,
            fee_amount=fee_amount,
        )

    async def payment_config(self) -> PaymentConfigResponse:
        return PaymentConfigResponse(
            connected_account_id=await self.settings.get("stripe_account_id")
        )

    async def connect_gateway(self, setup_code: str, site_id: str) -> LedgerSettings:
        """Finish the connect flow and store the site credentials."""
        if self.gateway is None:
            raise GatewayError("No payment gateway configured.", code="mission_connect_failed")

        connection = await self.gateway.connect_site(setup_code, site_id)
        updated = await self.settings.update({
            "stripe_site_id": site_id,
            "stripe_site_token": connection.site_token,
            "stripe_account_id": connection.account_id,
            "stripe_display_name": connection.display_name,
            "stripe_connection_status": ConnectionStatus.CONNECTED,
        })
        logger.info("Connected to payment gateway: site %s account %s", site_id, connection.account_id)
        return updated

    async def disconnect_gateway(self) -> LedgerSettings:
        """Revoke the site token at the gateway and clear the connection."""
        site_token = await self.settings.get("stripe_site_token")
        if site_token and self.gateway is not None:
            await self.gateway.disconnect_site(site_token)

        updated = await self.settings.update({
            "stripe_site_id": "",
            "stripe_site_token": "",
            "stripe_account_id": "",
            "stripe_display_name": "",
            "stripe_connection_status": ConnectionStatus.DISCONNECTED,
        })
        logger.info("Disconnected from payment gateway")
        return updated

    def _validate(self, req: ConfirmDonationRequest) -> str:
        if not req.gateway_transaction_id.strip():
            raise ValidationError("A gateway transaction id is required.", code="invalid_request")
        try:
            email = validate_email(req.donor_email, check_deliverability=False).normalized
        except EmailNotValidError:
            raise ValidationError(
                "A valid email address is required.", code="invalid_email"
            ) from None
        if not req.donor_first_name.strip() or not req.donor_last_name.strip():
            raise ValidationError(
                "Donor first and last name are required.", code="invalid_donor"
            )
        if req.donation_amount < 1:
            raise ValidationError(
                "Donation amount must be at least 1 cent.", code="invalid_amount"
            )
        return email.lower()

    async def confirm_donation(self, req: ConfirmDonationRequest, donor_ip: str = "") -> TransactionRecord:
        """Record a charged donation and return its transaction."""
        email = self._validate(req)

        existing = await self.transactions.find_by_gateway_id(req.gateway_transaction_id)
        if existing is not None:
            logger.warning(
                "Duplicate confirmation for %s; returning transaction %s",
                req.gateway_transaction_id, existing.id
            )
            return existing

        if req.campaign_id and await self.campaigns.read(req.campaign_id) is None:
            raise ValidationError(f"Campaign {req.campaign_id} not found.", code="invalid_campaign")

        try:
            return await self._record(req, email, donor_ip)
        except SQLAlchemyError as e:
            logger.exception(
                "Gateway charge %s succeeded but the donation could not be recorded",
                req.gateway_transaction_id
            )
            raise PersistenceError(
                "Your payment went through but we could not record the donation."
            ) from e

    async def _record(self, req: ConfirmDonationRequest, email: str, donor_ip: str) -> TransactionRecord:
        donor = await self.donors.find_or_create_by_email(
            DonorRecord(
                email=email,
                first_name=req.donor_first_name.strip(),
                last_name=req.donor_last_name.strip(),
            )
        )

        transaction = TransactionRecord(
            status=TransactionStatus.PENDING,
            type=req.frequency,
            donor_id=donor.id,
            campaign_id=req.campaign_id or None,
            source_id=req.source_id or None,
            amount=req.donation_amount,
            fee_amount=req.fee_amount,
            tip_amount=req.tip_amount,
            currency=req.currency,
            payment_gateway=GATEWAY_NAME,
            gateway_transaction_id=req.gateway_transaction_id,
            is_anonymous=req.is_anonymous,
            donor_ip=donor_ip,
        )
        try:
            async with self.session.begin_nested():
                await self.transactions.create(transaction)
        except IntegrityError:
            existing = await self.transactions.find_by_gateway_id(req.gateway_transaction_id)
            if existing is None:
                raise
            logger.warning(
                "Concurrent confirmation for %s; returning transaction %s",
                req.gateway_transaction_id, existing.id
            )
            return existing

        if req.frequency != TransactionType.ONE_TIME:
            subscription = SubscriptionRecord(
                status=SubscriptionStatus.ACTIVE,
                donor_id=donor.id,
                campaign_id=transaction.campaign_id,
                source_id=transaction.source_id,
                initial_transaction_id=transaction.id,
                amount=transaction.amount,
                fee_amount=transaction.fee_amount,
                tip_amount=transaction.tip_amount,
                currency=transaction.currency,
                frequency=req.frequency,
                payment_gateway=GATEWAY_NAME,
                date_next_renewal=next_renewal(utcnow(), req.frequency),
            )
            await self.subscriptions.create(subscription)
            transaction.subscription_id = subscription.id

        transaction.status = TransactionStatus.COMPLETED
        await self.transactions.update(transaction)

        logger.info(
            "Recorded donation %s: transaction %s donor %s total %s %s",
            req.gateway_transaction_id, transaction.id, donor.id,
            transaction.total_amount, transaction.currency
        )
        await self.events.emit("donation.recorded", transaction=transaction, donor=donor)
        return transaction
