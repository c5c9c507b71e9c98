"""
Public donation endpoints.

These are called by the donation form: fee quotes, payment intents and
the confirmation that records a charged donation.
"""
from fastapi import APIRouter, Depends, Request

from donorledger.core.deps import get_payment_service, get_settings_service
from donorledger.schemas.common import ErrorResponse
from donorledger.schemas.donation import (
    ConfirmDonationRequest,
    ConfirmDonationResponse,
    PaymentConfigResponse,
    PaymentIntentRequest,
    PaymentIntentResponse,
    QuoteRequest,
    QuoteResponse,
)
from donorledger.services.fees import quote
from donorledger.services.payments import PaymentService
from donorledger.services.settings import SettingsService

router = APIRouter(
    tags=["donations"],
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)


@router.post("/payment-intents", response_model=PaymentIntentResponse)
async def create_payment_intent(
    data: PaymentIntentRequest,
    payments: PaymentService = Depends(get_payment_service),
):
    """
    Create a payment intent through the gateway.

    The tip's processing fee is shifted to the donation side before the
    gateway is called; the adjusted amounts are returned.
    """
    return await payments.create_payment_intent(
        data.donation_amount, data.tip_amount, data.fee_amount
    )


@router.get("/payment-config", response_model=PaymentConfigResponse)
async def get_payment_config(
    payments: PaymentService = Depends(get_payment_service),
):
    """Connected account id the payment widget is initialised with."""
    return await payments.payment_config()


@router.post("/donations/quote", response_model=QuoteResponse)
async def quote_donation(
    data: QuoteRequest,
    settings_service: SettingsService = Depends(get_settings_service),
):
    """Fee recovery and tip for an amount, as shown on the form."""
    current = await settings_service.get_all()
    result = quote(
        data.amount,
        tip_percent=data.tip_percent if current.tip_enabled else 0,
        cover_fees=data.cover_fees and current.fee_recovery_enabled,
        schedule=await settings_service.fee_schedule(),
    )
    return QuoteResponse(
        amount=result.amount,
        fee_amount=result.fee_amount,
        tip_amount=result.tip_amount,
        total_amount=result.total_amount,
    )


@router.post("/donations/confirm", response_model=ConfirmDonationResponse)
async def confirm_donation(
    data: ConfirmDonationRequest,
    request: Request,
    payments: PaymentService = Depends(get_payment_service),
):
    """Record a donation after the gateway confirmed the charge."""
    donor_ip = request.client.host if request.client else ""
    transaction = await payments.confirm_donation(data, donor_ip=donor_ip)
    return ConfirmDonationResponse(success=True, transaction_id=transaction.id)
