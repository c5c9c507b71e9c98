"""
Admin endpoints for connecting the payment gateway account.
"""
from fastapi import APIRouter, Depends

from donorledger.core.deps import get_payment_service
from donorledger.schemas.settings import GatewayConnectRequest, LedgerSettings, masked
from donorledger.services.payments import PaymentService

router = APIRouter(prefix="/stripe", tags=["settings"])


@router.post("/connect", response_model=LedgerSettings)
async def connect_stripe(
    data: GatewayConnectRequest,
    payments: PaymentService = Depends(get_payment_service),
):
    """
    Finish the Stripe connect flow.

    The setup code is exchanged for a site token, which is stored with the
    connected account. The response is the masked settings document.
    """
    return masked(await payments.connect_gateway(data.setup_code, data.site_id))


@router.post("/disconnect", response_model=LedgerSettings)
async def disconnect_stripe(
    payments: PaymentService = Depends(get_payment_service),
):
    """Revoke the site token and clear the stored connection."""
    return masked(await payments.disconnect_gateway())
