"""
BackendSync - import accounts created by the legacy sales/purchasing backend.

This is the creation path for accounts. The backend balance is taken as the
starting point, then local payments it never saw (entries not marked
`forwarded`) are applied on top, so an import never undoes a recorded
payment. Accounts that cannot absorb those payments are skipped and left as
stored. Writes go through one versioned bulk upsert.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List

from arap.clients.backend import BackendClient
from arap.core.exceptions import ReconcileError
from arap.models.account import Account, AccountKind, Creditor, Debtor, rebuild
from arap.models.base import _utcnow
from arap.models.money import Money
from arap.repositories.base import AccountStore
from arap.schemas.sync import ImportSummary
from arap.services.status_classifier import aggregate_status, classify

logger = logging.getLogger(__name__)


class BackendSync:

    def __init__(
        self,
        client: BackendClient,
        store: AccountStore,
        page_size: int = 100,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.client = client
        self.store = store
        self.page_size = page_size
        self.clock = clock

    async def import_accounts(self, kind: AccountKind) -> ImportSummary:
        """Pull every account of a kind from the backend and merge it into the store."""
        kind = AccountKind(kind)
        fetched = await self._fetch(kind)
        known = {account.id: account for account in await self.store.snapshot(kind)}
        now = self.clock()

        merged: List[Account] = []
        skipped: List[str] = []
        for account in fetched:
            existing = known.get(account.id)
            if existing is None:
                merged.append(account)
                continue
            try:
                merged.append(self._merge(account, existing, now))
            except ReconcileError as exc:
                logger.warning("Skipping %s %s on import: %s", kind.value, account.id, exc.message)
                skipped.append(account.id)

        skipped.extend(await self.store.upsert_many(merged))
        imported = len(fetched) - len(skipped)
        logger.info(
            "Imported %s %s accounts from backend (%s skipped)", imported, kind.value, len(skipped)
        )
        return ImportSummary(kind=kind, imported=imported, skipped=tuple(skipped))

    async def _fetch(self, kind: AccountKind) -> List[Account]:
        if kind == AccountKind.DEBTOR:
            return list(await self.client.get_sale_ledger(debtors_only=True))

        accounts: List[Account] = []
        page = 0
        while True:
            result = await self.client.list_accounts(kind, page, self.page_size)
            items = result["items"]
            accounts.extend(items)
            if not items or len(accounts) >= result["total_count"]:
                return accounts
            page += 1

    def _merge(self, account: Account, existing: Account, now: datetime) -> Account:
        """Backend state plus the stored account's local-only payments, at the next version."""
        local = [entry for entry in existing.payments if not entry.forwarded]
        if isinstance(account, Debtor):
            changes = self._replay_sales(account, local, now)
        elif isinstance(account, Creditor):
            changes = self._replay_balance(account, local, now)
        else:
            raise TypeError(f"Unsupported account type: {type(account).__name__}")

        if existing.last_payment_date is not None and (
            account.last_payment_date is None
            or existing.last_payment_date > account.last_payment_date
        ):
            changes["last_payment_date"] = existing.last_payment_date
            changes["last_payment_amount"] = existing.last_payment_amount

        return rebuild(
            account,
            payments=existing.payments,
            created_at=existing.created_at,
            version=existing.version + 1,
            **changes
        )

    def _replay_sales(self, debtor: Debtor, local, now: datetime) -> dict:
        pending: Dict[str, Money] = {}
        for entry in local:
            pending[entry.sale_id] = pending.get(entry.sale_id, Money.zero()) + entry.amount

        sales = []
        for sale in debtor.sales:
            paid = pending.pop(sale.id, Money.zero())
            if paid.is_zero():
                sales.append(sale)
                continue
            if paid > sale.balance_due:
                raise ReconcileError(
                    f"local payments {paid.cents} exceed backend balance "
                    f"{sale.balance_due.cents} on sale {sale.id}"
                )
            balance_due = sale.balance_due - paid
            sales.append(rebuild(
                sale,
                paid_amount=sale.paid_amount + paid,
                balance_due=balance_due,
                payment_status=classify(balance_due, sale.due_date, now),
            ))
        if pending:
            raise ReconcileError(
                "local payments on sales missing from backend: "
                + ", ".join(str(sale_id) for sale_id in pending)
            )

        return {
            "sales": tuple(sales),
            "total_debt": Money.sum(sale.balance_due for sale in sales),
            "payment_status": aggregate_status(sale.payment_status for sale in sales),
        }

    def _replay_balance(self, creditor: Creditor, local, now: datetime) -> dict:
        paid = Money.sum(entry.amount for entry in local)
        if paid > creditor.balance:
            raise ReconcileError(
                f"local payments {paid.cents} exceed backend balance {creditor.balance.cents}"
            )
        balance = creditor.balance - paid
        return {"balance": balance, "status": classify(balance, creditor.due_date, now)}
