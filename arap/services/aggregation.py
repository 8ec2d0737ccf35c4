"""Totals over an account snapshot."""

from typing import Dict, Iterable

from pydantic import BaseModel

from arap.models.account import Account, PaymentStatus
from arap.models.money import Money


class LedgerTotals(BaseModel):
    outstanding_total: Money
    overdue_total: Money
    count: int


class StatusBucket(BaseModel):
    count: int
    total: Money


def compute_totals(snapshot: Iterable[Account]) -> LedgerTotals:
    """
    Single pass over an already-taken snapshot.

    outstanding_total sums every balance; overdue_total only OVERDUE ones,
    so overdue_total <= outstanding_total always holds.
    """
    outstanding = 0
    overdue = 0
    count = 0
    for account in snapshot:
        balance = account.outstanding().cents
        outstanding += balance
        if account.current_status() == PaymentStatus.OVERDUE:
            overdue += balance
        count += 1
    return LedgerTotals(
        outstanding_total=Money(outstanding),
        overdue_total=Money(overdue),
        count=count,
    )


def compute_status_breakdown(snapshot: Iterable[Account]) -> Dict[str, StatusBucket]:
    """Per-status account count and balance total."""
    counts = {status: 0 for status in PaymentStatus}
    totals = {status: 0 for status in PaymentStatus}
    for account in snapshot:
        status = account.current_status()
        counts[status] += 1
        totals[status] += account.outstanding().cents
    return {
        status.value: StatusBucket(count=counts[status], total=Money(totals[status]))
        for status in PaymentStatus
    }
