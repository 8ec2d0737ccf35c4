"""
LedgerService - the ledger operations the presentation layer calls.

Holds the account store and a clock; reads go through snapshots whose
statuses are re-derived as of the call, writes go through PaymentService.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from arap.core.config import settings
from arap.models.account import Account, AccountKind, AccountPage, PaymentStatus
from arap.models.base import _utcnow
from arap.repositories.base import AccountStore
from arap.schemas.payment import PaymentResult
from arap.services import aggregation, search as search_module
from arap.services.payment_service import PaymentService
from arap.services.status_classifier import refresh_account
from arap.utils.payment_validation import validate_pagination


class LedgerService:

    def __init__(
        self,
        store: AccountStore,
        clock: Callable[[], datetime] = _utcnow,
        forwarder=None,
    ):
        self.store = store
        self.clock = clock
        self.payments = PaymentService(store, clock=clock, forwarder=forwarder)

    async def get_account(self, kind: AccountKind, account_id: str) -> Account:
        account = await self.store.get(AccountKind(kind), account_id)
        return refresh_account(account, self.clock())

    async def list_accounts(
        self, kind: AccountKind, page: int = 0, size: Optional[int] = None
    ) -> AccountPage:
        size = validate_pagination(
            page,
            settings.DEFAULT_PAGE_SIZE if size is None else size,
            settings.MAX_PAGE_SIZE,
        )
        result = await self.store.list(AccountKind(kind), page, size)
        now = self.clock()
        return result.model_copy(
            update={"items": tuple(refresh_account(a, now) for a in result.items)}
        )

    async def snapshot(self, kind: AccountKind) -> Tuple[Account, ...]:
        """Point-in-time accounts with statuses as of now."""
        accounts = await self.store.snapshot(AccountKind(kind))
        now = self.clock()
        return tuple(refresh_account(account, now) for account in accounts)

    async def record_payment(
        self,
        kind: AccountKind,
        target_id: str,
        sale_id: Optional[str],
        amount_minor_units: Any,
        attempt_id: Optional[str] = None,
    ) -> PaymentResult:
        return await self.payments.record_payment(
            kind, target_id, sale_id, amount_minor_units, attempt_id=attempt_id
        )

    async def get_totals(self, kind: AccountKind) -> aggregation.LedgerTotals:
        return aggregation.compute_totals(await self.snapshot(kind))

    async def status_breakdown(self, kind: AccountKind) -> Dict[str, aggregation.StatusBucket]:
        return aggregation.compute_status_breakdown(await self.snapshot(kind))

    async def search(
        self, kind: AccountKind, term: Optional[str], status: Optional[PaymentStatus] = None
    ) -> Tuple[Account, ...]:
        found = search_module.search(await self.snapshot(kind), term)
        if status is not None:
            found = search_module.filter_by_status(found, status)
        return found
