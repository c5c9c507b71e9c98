"""
Pydantic schemas for the admin transaction endpoints.
"""
from donorledger.models.transaction import TransactionStatus
from donorledger.schemas.common import CamelModel


class TransactionStatusUpdate(CamelModel):
    """Move a transaction along its lifecycle."""
    status: TransactionStatus
