"""
Account models - receivables (debtors) and payables (creditors).

Design principles:
- One document per account; debtors carry their sales inline
- Frozen: a changed account is a new object, committed as a whole
- Balance and status change only through payment application
- All amounts in integer cents (Money)

Invariants:
- sale.balance_due == sale.total_amount - sale.paid_amount >= 0
- debtor.total_debt == sum(sale.balance_due)
- balance == 0 iff status == PAID
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import ClassVar, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from arap.core.config import settings
from arap.models.base import UtcDatetime, _utcnow, new_id
from arap.models.money import Money


class PaymentStatus(str, Enum):
    PAID = "PAID"
    PENDING = "PENDING"
    OVERDUE = "OVERDUE"


class AccountKind(str, Enum):
    DEBTOR = "debtor"
    CREDITOR = "creditor"


def _check_status(balance: Money, status: PaymentStatus, label: str) -> None:
    if balance.is_negative():
        raise ValueError(f"{label} balance cannot be negative: {balance.cents}")
    if balance.is_zero() != (status == PaymentStatus.PAID):
        raise ValueError(
            f"{label} status {status.value} does not match balance {balance.cents}"
        )


class PaymentEntry(BaseModel):
    """One applied payment. Append-only."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    attempt_id: str
    amount: Money
    paid_at: UtcDatetime = Field(default_factory=_utcnow)
    sale_id: Optional[str] = None
    balance_after: Money
    # True once the backend confirmed it; local-only entries are replayed on import.
    forwarded: bool = False


class Sale(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    account_id: str
    sale_date: UtcDatetime
    due_date: UtcDatetime
    total_amount: Money
    paid_amount: Money = Field(default_factory=Money.zero)
    balance_due: Money
    payment_status: PaymentStatus = PaymentStatus.PENDING

    @model_validator(mode="before")
    @classmethod
    def _default_due_date(cls, data):
        if isinstance(data, dict) and data.get("due_date") is None and data.get("sale_date") is not None:
            sale_date = data["sale_date"]
            if isinstance(sale_date, str):
                sale_date = datetime.fromisoformat(sale_date.replace("Z", "+00:00"))
            if isinstance(sale_date, datetime):
                data = {**data, "due_date": sale_date + timedelta(days=settings.DEFAULT_CREDIT_DAYS)}
        return data

    @model_validator(mode="after")
    def _check_balance(self):
        if self.paid_amount.is_negative():
            raise ValueError(f"Sale {self.id} paid amount cannot be negative")
        if self.balance_due != self.total_amount - self.paid_amount:
            raise ValueError(
                f"Sale {self.id}: balance_due {self.balance_due.cents} != "
                f"total {self.total_amount.cents} - paid {self.paid_amount.cents}"
            )
        _check_status(self.balance_due, self.payment_status, f"Sale {self.id}")
        return self


class AccountBase(BaseModel):
    """Fields shared by both ledgers."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: ClassVar[AccountKind]
    search_fields: ClassVar[Tuple[str, ...]] = ()

    id: str = Field(default_factory=new_id, validation_alias=AliasChoices("id", "_id"))
    contact_info: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    last_payment_date: Optional[UtcDatetime] = None
    last_payment_amount: Optional[Money] = None
    payments: Tuple[PaymentEntry, ...] = ()
    version: int = Field(default=1, ge=1)
    created_at: UtcDatetime = Field(default_factory=_utcnow)
    updated_at: UtcDatetime = Field(default_factory=_utcnow)

    def outstanding(self) -> Money:
        raise NotImplementedError

    def current_status(self) -> PaymentStatus:
        raise NotImplementedError

    def display_name(self) -> str:
        raise NotImplementedError

    def find_payment(self, attempt_id: str) -> Optional[PaymentEntry]:
        for entry in self.payments:
            if entry.attempt_id == attempt_id:
                return entry
        return None

    def has_attempt(self, attempt_id: str) -> bool:
        return self.find_payment(attempt_id) is not None


class Debtor(AccountBase):
    """Customer who owes the business; balance is itemized by sale."""

    kind: ClassVar[AccountKind] = AccountKind.DEBTOR
    search_fields: ClassVar[Tuple[str, ...]] = ("name", "contact_info", "phone", "email")

    name: str
    sales: Tuple[Sale, ...] = ()
    total_debt: Money = Field(default_factory=Money.zero)
    payment_status: PaymentStatus = PaymentStatus.PAID
    last_sale_date: Optional[UtcDatetime] = None

    @model_validator(mode="after")
    def _check_totals(self):
        expected = Money.sum(sale.balance_due for sale in self.sales)
        if self.total_debt != expected:
            raise ValueError(
                f"Debtor {self.id}: total_debt {self.total_debt.cents} != "
                f"sum of sale balances {expected.cents}"
            )
        for sale in self.sales:
            if sale.account_id != self.id:
                raise ValueError(f"Sale {sale.id} does not belong to debtor {self.id}")
        _check_status(self.total_debt, self.payment_status, f"Debtor {self.id}")
        return self

    def outstanding(self) -> Money:
        return self.total_debt

    def current_status(self) -> PaymentStatus:
        return self.payment_status

    def display_name(self) -> str:
        return self.name

    def find_sale(self, sale_id: str) -> Optional[Sale]:
        for sale in self.sales:
            if sale.id == sale_id:
                return sale
        return None


class Creditor(AccountBase):
    """Supplier the business owes; single aggregate balance."""

    kind: ClassVar[AccountKind] = AccountKind.CREDITOR
    search_fields: ClassVar[Tuple[str, ...]] = ("supplier_name", "contact_info", "phone", "email")

    supplier_name: str
    balance: Money
    due_date: UtcDatetime
    status: PaymentStatus = PaymentStatus.PENDING
    credit_terms: str = ""

    @model_validator(mode="after")
    def _check_balance(self):
        _check_status(self.balance, self.status, f"Creditor {self.id}")
        return self

    def outstanding(self) -> Money:
        return self.balance

    def current_status(self) -> PaymentStatus:
        return self.status

    def display_name(self) -> str:
        return self.supplier_name


Account = Union[Debtor, Creditor]

MODEL_BY_KIND = {
    AccountKind.DEBTOR: Debtor,
    AccountKind.CREDITOR: Creditor,
}


def rebuild(model: BaseModel, **changes):
    """Copy a frozen model with changes, re-running validation."""
    data = {name: getattr(model, name) for name in model.__class__.model_fields}
    data.update(changes)
    return model.__class__.model_validate(data)


class AccountPage(BaseModel):
    """One zero-based page of accounts plus the total count."""
    model_config = ConfigDict(frozen=True)

    items: Tuple[Union[Debtor, Creditor], ...]
    total_count: int
    page: int
    size: int
