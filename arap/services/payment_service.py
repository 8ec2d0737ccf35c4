"""
PaymentService - applies payments to receivable and payable accounts.

Flow for one payment:
1. Validate the amount (positive whole minor units)
2. Load the account; a repeated attempt id returns the stored result
3. Resolve the target (a sale for itemized debtors, else the account)
4. Check the amount against the target's outstanding balance
5. Optionally have the backend confirm the payment
6. Build the updated account and commit it with compare-and-swap

Every check runs before anything is written, so a failure leaves the store
untouched. Conflicts are returned to the caller, never retried here, with
one exception: once the backend has confirmed a payment, a lost commit is
re-read and recorded again, since a caller retry would pay the backend twice.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Optional

from arap.core.exceptions import Conflict, PaymentError
from arap.models.account import (
    Account,
    AccountKind,
    Creditor,
    Debtor,
    PaymentEntry,
    rebuild,
)
from arap.models.base import _utcnow
from arap.models.money import Money
from arap.repositories.base import AccountStore
from arap.schemas.payment import PaymentErrorBody, PaymentResult
from arap.services.status_classifier import aggregate_status, classify, classify_sale
from arap.utils.payment_validation import (
    resolve_target,
    validate_against_balance,
    validate_amount,
    validate_replay,
)

logger = logging.getLogger(__name__)

# Commits tried for a payment the backend already confirmed
RECORD_ATTEMPTS = 5


class PaymentService:

    def __init__(
        self,
        store: AccountStore,
        clock: Callable[[], datetime] = _utcnow,
        forwarder=None,
    ):
        self.store = store
        self.clock = clock
        # Backend collaborator that must confirm a payment before it is committed locally.
        self.forwarder = forwarder

    async def apply_payment(
        self,
        kind: AccountKind,
        account_id: str,
        amount: Any,
        sale_id: Optional[str] = None,
        attempt_id: Optional[str] = None,
    ) -> Account:
        """
        Apply a payment and return the committed account.

        A repeated attempt_id returns the stored account unchanged, provided
        it names the same amount and sale as the recorded payment.

        Raises InvalidAmount, NotFound, MissingSaleReference,
        AmountExceedsBalance, IdempotencyKeyReused, NetworkFailure or Conflict.
        """
        kind = AccountKind(kind)
        money = validate_amount(amount)

        account = await self.store.get(kind, account_id)
        if attempt_id:
            recorded = account.find_payment(attempt_id)
            if recorded is not None:
                validate_replay(recorded, money, sale_id if isinstance(account, Debtor) else None)
                logger.info(
                    "Payment attempt %s already applied to %s %s", attempt_id, kind.value, account_id
                )
                return account

        sale, balance = resolve_target(account, sale_id)
        validate_against_balance(money, balance)
        sale_id = sale.id if sale is not None else None

        attempt_id = attempt_id or uuid.uuid4().hex
        if self.forwarder is None:
            updated = self._apply(account, sale_id, money, self.clock(), attempt_id, forwarded=False)
            committed = await self.store.commit(updated, expected_version=account.version)
        else:
            await self.forwarder.apply_payment(
                kind, sale_id or account.id, money, attempt_id=attempt_id
            )
            committed = await self._record_confirmed(account, sale_id, money, attempt_id)

        logger.info(
            "Applied payment of %s cents to %s %s%s; outstanding now %s cents (version %s)",
            money.cents,
            kind.value,
            account_id,
            f" sale {sale_id}" if sale_id is not None else "",
            committed.outstanding().cents,
            committed.version,
        )
        return committed

    async def record_payment(
        self,
        kind: AccountKind,
        target_id: str,
        sale_id: Optional[str],
        amount_minor_units: Any,
        attempt_id: Optional[str] = None,
    ) -> PaymentResult:
        """Envelope form of apply_payment: {ok: account} or {error: reason}."""
        try:
            account = await self.apply_payment(
                kind, target_id, amount_minor_units, sale_id=sale_id, attempt_id=attempt_id
            )
        except PaymentError as exc:
            logger.info(
                "Payment to %s %s rejected: %s (%s)",
                AccountKind(kind).value, target_id, exc.code, exc.message,
            )
            return PaymentResult(error=PaymentErrorBody(code=exc.code, message=exc.message))
        return PaymentResult(ok=account)

    # ===== PRIVATE HELPERS =====

    async def _record_confirmed(
        self, account: Account, sale_id: Optional[str], amount: Money, attempt_id: str
    ) -> Account:
        """Commit a backend-confirmed payment, re-reading the account when another commit won."""
        for _ in range(RECORD_ATTEMPTS):
            updated = self._apply(account, sale_id, amount, self.clock(), attempt_id, forwarded=True)
            try:
                return await self.store.commit(updated, expected_version=account.version)
            except Conflict:
                logger.warning(
                    "Backend confirmed attempt %s but %s %s moved on; recording against a fresh read",
                    attempt_id, account.kind.value, account.id,
                )

            account = await self.store.get(account.kind, account.id)
            if account.has_attempt(attempt_id):
                return account
            try:
                _, balance = resolve_target(account, sale_id)
                validate_against_balance(amount, balance)
            except PaymentError as exc:
                logger.error(
                    "Backend confirmed attempt %s on %s %s but it no longer fits locally: %s",
                    attempt_id, account.kind.value, account.id, exc.message,
                )
                raise Conflict(
                    f"Backend confirmed payment {attempt_id} but {account.kind.value} "
                    f"{account.id} no longer fits it; import from the backend to reconcile",
                    current_version=account.version,
                ) from exc

        logger.error(
            "Gave up recording confirmed attempt %s on %s %s after %s commits",
            attempt_id, account.kind.value, account.id, RECORD_ATTEMPTS,
        )
        raise Conflict(
            f"{account.kind.value} {account.id} kept changing while recording payment {attempt_id}",
            current_version=account.version,
        )

    def _apply(
        self,
        account: Account,
        sale_id: Optional[str],
        amount: Money,
        now: datetime,
        attempt_id: str,
        forwarded: bool,
    ) -> Account:
        entry_args = dict(attempt_id=attempt_id, amount=amount, paid_at=now, forwarded=forwarded)
        if isinstance(account, Debtor):
            return self._apply_to_debtor(account, sale_id, amount, now, entry_args)
        if isinstance(account, Creditor):
            return self._apply_to_creditor(account, amount, now, entry_args)
        raise TypeError(f"Unsupported account type: {type(account).__name__}")

    def _apply_to_debtor(
        self, debtor: Debtor, sale_id: str, amount: Money, now: datetime, entry_args: dict
    ) -> Debtor:
        sale = debtor.find_sale(sale_id)
        balance_due = sale.balance_due - amount
        paid_sale = rebuild(
            sale,
            paid_amount=sale.paid_amount + amount,
            balance_due=balance_due,
            payment_status=classify(balance_due, sale.due_date, now),
        )

        sales = []
        for existing in debtor.sales:
            if existing.id == paid_sale.id:
                sales.append(paid_sale)
                continue
            status = classify_sale(existing, now)
            sales.append(existing if status == existing.payment_status
                         else rebuild(existing, payment_status=status))

        total_debt = Money.sum(s.balance_due for s in sales)
        entry = PaymentEntry(sale_id=sale.id, balance_after=total_debt, **entry_args)
        return rebuild(
            debtor,
            sales=tuple(sales),
            total_debt=total_debt,
            payment_status=aggregate_status(s.payment_status for s in sales),
            last_payment_date=now,
            last_payment_amount=amount,
            payments=debtor.payments + (entry,),
        )

    def _apply_to_creditor(
        self, creditor: Creditor, amount: Money, now: datetime, entry_args: dict
    ) -> Creditor:
        balance = creditor.balance - amount
        entry = PaymentEntry(balance_after=balance, **entry_args)
        return rebuild(
            creditor,
            balance=balance,
            status=classify(balance, creditor.due_date, now),
            last_payment_date=now,
            last_payment_amount=amount,
            payments=creditor.payments + (entry,),
        )
