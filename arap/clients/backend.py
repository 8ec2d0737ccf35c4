"""
BackendClient - the legacy sales/purchasing backend.

Endpoints (Spring-style, amounts as floats in major units):
- GET  /creditors?page=&size=      -> {content: [...], totalElements}
- GET  /sales/debtors              -> [debtor, ...]
- GET  /sales/pending              -> [sale, ...]
- PUT  /creditors/pay/{id}         {"amount": ...}        -> creditor
- POST /sales/payment/{saleId}     {"paymentAmount": ...} -> sale

Floats become Money here and nowhere else. Any transport error or non-2xx
answer raises NetworkFailure; nothing is treated as success unless the
backend says so.
"""

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Dict, List, Optional

import httpx

from arap.core.config import settings
from arap.core.exceptions import NetworkFailure
from arap.models.account import (
    Account,
    AccountKind,
    Creditor,
    Debtor,
    Sale,
)
from arap.models.base import _utcnow, as_utc
from arap.models.money import Money
from arap.services.status_classifier import aggregate_status, classify

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")


def _money(value: Any) -> Money:
    """Backend float/number -> Money, rounded half-up to the cent."""
    if value is None:
        return Money.zero()
    return Money.from_major(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def _datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    return as_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))


def _id(value: Any) -> str:
    return str(value)


def sale_from_payload(payload: Dict[str, Any], account_id: str, now: datetime) -> Sale:
    total = _money(payload.get("totalAmount", payload.get("grandTotal")))
    paid = min(_money(payload.get("paidAmount", payload.get("amountPaid"))), total)
    sale_date = _datetime(payload.get("saleDate") or payload.get("createdAt")) or now
    data = {
        "id": _id(payload["id"]),
        "account_id": account_id,
        "sale_date": sale_date,
        "due_date": _datetime(payload.get("dueDate")),
        "total_amount": total,
        "paid_amount": paid,
        "balance_due": total - paid,
    }
    sale = Sale.model_validate({**data, "payment_status": "PAID" if total == paid else "PENDING"})
    status = classify(sale.balance_due, sale.due_date, now)
    if status == sale.payment_status:
        return sale
    return Sale.model_validate({**data, "due_date": sale.due_date, "payment_status": status})


def debtor_from_payload(payload: Dict[str, Any], now: datetime) -> Debtor:
    account_id = _id(payload.get("id") or payload.get("customerPhone"))
    sales = tuple(sale_from_payload(sale, account_id, now) for sale in payload.get("sales") or ())
    last_payment_amount = payload.get("lastPaymentAmount")
    return Debtor(
        id=account_id,
        name=payload.get("customerName") or payload.get("name") or "",
        phone=payload.get("customerPhone") or payload.get("phone"),
        email=payload.get("email"),
        contact_info=payload.get("contact"),
        sales=sales,
        total_debt=Money.sum(sale.balance_due for sale in sales),
        payment_status=aggregate_status(sale.payment_status for sale in sales),
        last_sale_date=_datetime(payload.get("lastSaleDate")),
        last_payment_date=_datetime(payload.get("lastPaymentDate")),
        last_payment_amount=_money(last_payment_amount) if last_payment_amount is not None else None,
    )


def creditor_from_payload(payload: Dict[str, Any], now: datetime) -> Creditor:
    balance = _money(payload.get("balance"))
    due_date = _datetime(payload.get("dueDate")) or now
    last_payment = _datetime(payload.get("lastPayment"))
    return Creditor(
        id=_id(payload["id"]),
        supplier_name=payload.get("supplierName") or payload.get("name") or "",
        contact_info=payload.get("contact"),
        phone=payload.get("supplierPhone") or payload.get("phone"),
        email=payload.get("supplierEmail") or payload.get("email"),
        balance=balance,
        due_date=due_date,
        status=classify(balance, due_date, now),
        credit_terms=payload.get("creditTerms") or "",
        last_payment_date=last_payment,
        last_payment_amount=_money(payload.get("paymentAmount")) if last_payment else None,
    )


class BackendClient:
    """Async client for the legacy backend."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.clock = clock
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.BACKEND_API_URL,
            timeout=timeout if timeout is not None else settings.BACKEND_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def list_accounts(self, kind: AccountKind, page: int, size: int) -> Dict[str, Any]:
        """One page of accounts: {"items": [...], "total_count": n}."""
        kind = AccountKind(kind)
        now = self.clock()
        if kind == AccountKind.CREDITOR:
            body = await self._request("GET", "/creditors", params={"page": page, "size": size})
            rows, total = self._page_rows(body)
            items = [creditor_from_payload(row, now) for row in rows]
        else:
            body = await self._request("GET", "/sales/debtors", params={"page": page, "size": size})
            rows, total = self._page_rows(body)
            if isinstance(body, list):
                # Unpaged endpoint: slice locally.
                rows = rows[page * size:(page + 1) * size]
            items = [debtor_from_payload(row, now) for row in rows]
        return {"items": items, "total_count": total}

    async def get_sale_ledger(self, debtors_only: bool = True) -> List[Debtor]:
        """Sale-itemized debtors; with debtors_only=False, built from all pending sales."""
        now = self.clock()
        if debtors_only:
            rows = await self._request("GET", "/sales/debtors")
            return [debtor_from_payload(row, now) for row in rows or []]

        sales = await self._request("GET", "/sales/pending")
        grouped: Dict[str, Dict[str, Any]] = {}
        for sale in sales or []:
            key = _id(sale.get("customerPhone") or sale.get("customerName") or sale["id"])
            entry = grouped.setdefault(key, {
                "id": key,
                "customerName": sale.get("customerName"),
                "customerPhone": sale.get("customerPhone"),
                "sales": [],
            })
            entry["sales"].append(sale)
        return [debtor_from_payload(row, now) for row in grouped.values()]

    async def apply_payment(
        self,
        kind: AccountKind,
        target_id: str,
        amount: Money,
        attempt_id: Optional[str] = None,
    ) -> Account | Sale:
        """
        Ask the backend to record a payment; returns what the backend confirmed.

        Creditors are paid by account id, debtors by sale id.
        """
        kind = AccountKind(kind)
        headers = {"Idempotency-Key": attempt_id} if attempt_id else None
        now = self.clock()
        if kind == AccountKind.CREDITOR:
            body = await self._request(
                "PUT", f"/creditors/pay/{target_id}",
                json={"amount": amount.to_major_string()}, headers=headers,
            )
            return creditor_from_payload(body, now)

        body = await self._request(
            "POST", f"/sales/payment/{target_id}",
            json={"paymentAmount": amount.to_major_string()}, headers=headers,
        )
        account_id = _id(body.get("customerPhone") or body.get("customerName") or target_id)
        return sale_from_payload(body, account_id, now)

    # ===== PRIVATE HELPERS =====

    @staticmethod
    def _page_rows(body: Any):
        if isinstance(body, list):
            return body, len(body)
        rows = body.get("content") or body.get("items") or []
        total = body.get("totalElements", body.get("totalCount", len(rows)))
        return rows, total

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Backend %s %s failed: %s", method, path, exc)
            raise NetworkFailure(f"Backend unreachable: {exc}") from exc

        if response.is_error:
            logger.error("Backend %s %s answered %s", method, path, response.status_code)
            raise NetworkFailure(
                f"Backend answered {response.status_code} for {method} {path}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise NetworkFailure(f"Backend sent invalid JSON for {method} {path}") from exc
