"""Payment validation utilities."""
from typing import Any, Optional, Tuple

from arap.core.exceptions import (
    AmountExceedsBalance,
    IdempotencyKeyReused,
    InvalidAmount,
    InvalidPagination,
    MissingSaleReference,
    NotFound,
)
from arap.models.account import Account, Debtor, PaymentEntry, Sale
from arap.models.money import Money


def validate_amount(amount: Any) -> Money:
    """
    Validate a payment amount.

    Rules:
    - must parse as a whole number of minor units
    - must be strictly positive
    """
    money = Money.parse(amount)
    if not money.is_positive():
        raise InvalidAmount(f"Payment amount must be positive: {money.cents}")
    return money


def resolve_target(account: Account, sale_id: Optional[str]) -> Tuple[Optional[Sale], Money]:
    """
    Find what the payment is applied to and its outstanding balance.

    Rules:
    - a debtor with sales needs an explicit sale reference
    - the sale must belong to the debtor
    - flat accounts (creditors) and debtors without sales are paid directly
    """
    if isinstance(account, Debtor) and account.sales:
        if not sale_id:
            raise MissingSaleReference(
                f"Debtor {account.id} has {len(account.sales)} sales; a sale reference is required"
            )
        sale = account.find_sale(sale_id)
        if sale is None:
            raise NotFound(f"Sale {sale_id} not found on debtor {account.id}")
        return sale, sale.balance_due
    return None, account.outstanding()


def validate_against_balance(amount: Money, balance: Money) -> None:
    """Amount may drive the balance to exactly zero, never below."""
    if amount > balance:
        raise AmountExceedsBalance(
            f"Payment {amount.cents} exceeds outstanding balance {balance.cents}"
        )


def validate_replay(entry: PaymentEntry, amount: Money, sale_id: Optional[str]) -> None:
    """A repeated attempt must name the same amount and sale as the recorded one."""
    if entry.amount != amount or entry.sale_id != sale_id:
        raise IdempotencyKeyReused(
            f"Attempt {entry.attempt_id} was recorded as {entry.amount.cents} "
            f"on {entry.sale_id or 'the account'}; got {amount.cents} on {sale_id or 'the account'}"
        )


def validate_pagination(page: int, size: int, max_size: int) -> int:
    """Check a zero-based page request; returns the effective size."""
    if page < 0:
        raise InvalidPagination(f"Page must be zero or greater: {page}")
    if size <= 0:
        raise InvalidPagination(f"Page size must be positive: {size}")
    return min(size, max_size)
