"""
Ledger error taxonomy.

Every failure the engine can produce is a typed exception. Repositories and
services raise them; the API layer turns them into HTTP responses. Nothing in
the engine retries on its own.
"""

from typing import Optional


class LedgerError(Exception):
    """Base class for all ledger failures."""

    code: str = "ledger_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class PaymentError(LedgerError):
    """A failure surfaced to callers of the payment operations."""

    code = "payment_error"


class InvalidAmount(PaymentError):
    """Amount is not a positive whole number of minor units."""

    code = "invalid_amount"


class AmountExceedsBalance(PaymentError):
    code = "amount_exceeds_balance"


class MissingSaleReference(PaymentError):
    """A sale-itemized account was paid without naming the sale."""

    code = "missing_sale_reference"


class NotFound(PaymentError):
    code = "not_found"


class Conflict(PaymentError):
    """The account changed between read and commit; re-read and retry."""

    code = "conflict"

    def __init__(self, message: str = "", current_version: Optional[int] = None):
        super().__init__(message)
        self.current_version = current_version


class IdempotencyKeyReused(PaymentError):
    """An attempt id was replayed with a different amount or sale."""

    code = "idempotency_key_reused"


class NetworkFailure(PaymentError):
    """The backend collaborator was unreachable or answered with an error."""

    code = "network_failure"

    def __init__(self, message: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidPagination(LedgerError):
    code = "invalid_pagination"


class ReconcileError(LedgerError):
    """An imported account cannot absorb the locally recorded payments."""

    code = "reconcile_error"
