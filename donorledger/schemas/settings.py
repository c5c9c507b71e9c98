"""
Plugin settings schemas.

``LedgerSettings`` enumerates every persisted setting with its default;
the admin API reads and writes it with secrets masked.
"""
from typing import Optional
from decimal import Decimal
from enum import Enum
from pydantic import Field, field_validator

from donorledger.schemas.common import CamelModel

MASK_CHAR = "•"
SECRET_KEYS = ("stripe_secret_key", "stripe_site_token")


class ConnectionStatus(str, Enum):
    """Processor account connection state."""
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    ERROR = "error"


class LedgerSettings(CamelModel):
    """Typed settings document. Missing keys take these defaults."""
    currency: str = "USD"
    tip_enabled: bool = True
    tip_default_percentage: int = Field(default=15, ge=0, le=100)
    fee_recovery_enabled: bool = True
    processor_fee_rate: Decimal = Field(default=Decimal("0.029"), ge=0, lt=1)
    processor_fee_fixed: int = Field(default=30, ge=0)

    stripe_publishable_key: str = ""
    stripe_secret_key: str = ""
    stripe_site_id: str = ""
    stripe_site_token: str = ""
    stripe_account_id: str = ""
    stripe_display_name: str = ""
    stripe_connection_status: ConnectionStatus = ConnectionStatus.DISCONNECTED

    email_from_name: str = ""
    email_from_address: str = ""

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        v = v.strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError("currency must be a three-letter ISO code")
        return v


class SettingsUpdate(CamelModel):
    """Partial settings update. Unknown keys are ignored."""
    currency: Optional[str] = None
    tip_enabled: Optional[bool] = None
    tip_default_percentage: Optional[int] = Field(default=None, ge=0, le=100)
    fee_recovery_enabled: Optional[bool] = None
    processor_fee_rate: Optional[Decimal] = Field(default=None, ge=0, lt=1)
    processor_fee_fixed: Optional[int] = Field(default=None, ge=0)
    stripe_publishable_key: Optional[str] = None
    stripe_secret_key: Optional[str] = None
    stripe_site_id: Optional[str] = None
    stripe_site_token: Optional[str] = None
    stripe_account_id: Optional[str] = None
    stripe_display_name: Optional[str] = None
    stripe_connection_status: Optional[ConnectionStatus] = None
    email_from_name: Optional[str] = None
    email_from_address: Optional[str] = None


def mask_secret(value: str) -> str:
    """Show only the last four characters of a secret."""
    if len(value) <= 4:
        return "" if value == "" else MASK_CHAR * 4
    return MASK_CHAR * (len(value) - 4) + value[-4:]


def is_masked(value) -> bool:
    return isinstance(value, str) and MASK_CHAR in value


def masked(values: LedgerSettings) -> LedgerSettings:
    return values.model_copy(
        update={key: mask_secret(getattr(values, key)) for key in SECRET_KEYS}
    )


class GatewayConnectRequest(CamelModel):
    """Setup code handed back by the gateway's connect flow."""
    setup_code: str = Field(..., min_length=1, max_length=255)
    site_id: str = Field(..., min_length=1, max_length=255)
