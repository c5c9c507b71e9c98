"""
Ledger error taxonomy.

Every error carries a machine-readable ``code``, a human-readable
``message`` and the HTTP status the REST layer renders it with.
"""
from typing import Optional


class LedgerError(Exception):
    """Base class for errors surfaced by the ledger."""
    status_code: int = 500
    code: str = "ledger_error"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(LedgerError):
    """Missing or malformed donor fields, bad amounts, illegal transitions."""
    status_code = 400
    code = "invalid_request"


class GatewayError(LedgerError):
    """Processor declined, unreachable, or credential misconfigured."""
    status_code = 502
    code = "gateway_error"


class NotFoundError(LedgerError):
    """Record id absent."""
    status_code = 404
    code = "not_found"


class PermissionDeniedError(LedgerError):
    """Capability check failed on an administrative operation."""
    status_code = 403
    code = "forbidden"


class PersistenceError(LedgerError):
    """A ledger write failed (typically after the gateway already charged)."""
    status_code = 500
    code = "persistence_error"
