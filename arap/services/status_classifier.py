"""
Payment status derivation.

Pure functions: status depends only on (balance, due_date, now).
"""

from datetime import datetime
from typing import Iterable

from arap.models.account import Account, Creditor, Debtor, PaymentStatus, Sale, rebuild
from arap.models.money import Money

SEVERITY = {
    PaymentStatus.PAID: 0,
    PaymentStatus.PENDING: 1,
    PaymentStatus.OVERDUE: 2,
}


def classify(balance: Money, due_date: datetime, now: datetime) -> PaymentStatus:
    if balance.is_zero():
        return PaymentStatus.PAID
    if balance.is_positive() and due_date < now:
        return PaymentStatus.OVERDUE
    return PaymentStatus.PENDING


def aggregate_status(statuses: Iterable[PaymentStatus]) -> PaymentStatus:
    """Most severe status wins; nothing to aggregate means PAID."""
    worst = PaymentStatus.PAID
    for status in statuses:
        if SEVERITY[status] > SEVERITY[worst]:
            worst = status
    return worst


def classify_sale(sale: Sale, now: datetime) -> PaymentStatus:
    return classify(sale.balance_due, sale.due_date, now)


def refresh_account(account: Account, now: datetime) -> Account:
    """Return the account with every stored status re-derived as of `now`."""
    if isinstance(account, Debtor):
        sales = tuple(
            sale if sale.payment_status == classify_sale(sale, now)
            else rebuild(sale, payment_status=classify_sale(sale, now))
            for sale in account.sales
        )
        status = aggregate_status(sale.payment_status for sale in sales)
        if status == account.payment_status and all(
            new is old for new, old in zip(sales, account.sales)
        ):
            return account
        return rebuild(account, sales=sales, payment_status=status)

    if isinstance(account, Creditor):
        status = classify(account.balance, account.due_date, now)
        if status == account.status:
            return account
        return rebuild(account, status=status)

    raise TypeError(f"Unsupported account type: {type(account).__name__}")
