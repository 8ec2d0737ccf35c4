"""Tests for the legacy backend client (httpx MockTransport)."""
import json

import httpx
import pytest

from arap.clients.backend import BackendClient
from arap.core.exceptions import NetworkFailure
from arap.models.account import AccountKind, Creditor, Debtor, PaymentStatus, Sale
from arap.models.money import Money

CREDITOR_ROW = {
    "id": 7,
    "supplierName": "Acme Supplies",
    "contact": "Jane Wanjiku",
    "supplierEmail": "accounts@acme.example",
    "supplierPhone": "0700 111 222",
    "balance": 1200.0,
    "dueDate": "2026-10-01",
    "status": "Overdue",
    "creditTerms": "Net 30",
    "lastPayment": None,
    "paymentAmount": 0,
}

DEBTOR_ROW = {
    "id": 3,
    "customerName": "John Kamau",
    "customerPhone": "0711222333",
    "totalDebt": 1200.0,
    "paymentStatus": "OVERDUE",
    "lastSaleDate": "2026-08-01T10:00:00",
    "sales": [
        {
            "id": 41,
            "saleDate": "2026-08-01T10:00:00",
            "totalAmount": 1500.0,
            "paidAmount": 300.0,
            "balanceDue": 1200.0,
            "paymentStatus": "OVERDUE",
        },
        {
            "id": 42,
            "saleDate": "2026-10-10T10:00:00",
            "totalAmount": 750.5,
            "paidAmount": 750.5,
            "balanceDue": 0,
            "paymentStatus": "PAID",
        },
    ],
}


def make_client(handler, clock):
    return BackendClient(
        base_url="http://backend.test/api",
        transport=httpx.MockTransport(handler),
        clock=clock,
    )


@pytest.mark.asyncio
async def test_list_creditors_reads_spring_page(clock):
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        return httpx.Response(200, json={"content": [CREDITOR_ROW], "totalElements": 41})

    client = make_client(handler, clock)
    try:
        result = await client.list_accounts(AccountKind.CREDITOR, 0, 20)
    finally:
        await client.close()

    assert seen["url"] == "http://backend.test/api/creditors?page=0&size=20"
    assert result["total_count"] == 41
    creditor = result["items"][0]
    assert isinstance(creditor, Creditor)
    assert creditor.id == "7"
    assert creditor.balance == Money(120000)
    assert creditor.status == PaymentStatus.OVERDUE
    assert creditor.phone == "0700 111 222"
    assert creditor.last_payment_amount is None


@pytest.mark.asyncio
async def test_sale_ledger_builds_itemized_debtors(clock):
    def handler(request):
        assert request.url.path == "/api/sales/debtors"
        return httpx.Response(200, json=[DEBTOR_ROW])

    client = make_client(handler, clock)
    try:
        debtors = await client.get_sale_ledger(debtors_only=True)
    finally:
        await client.close()

    debtor = debtors[0]
    assert isinstance(debtor, Debtor)
    assert debtor.id == "3"
    assert debtor.total_debt == Money(120000)
    assert debtor.payment_status == PaymentStatus.OVERDUE
    assert [s.id for s in debtor.sales] == ["41", "42"]
    assert debtor.sales[1].payment_status == PaymentStatus.PAID
    assert debtor.sales[1].balance_due == Money.zero()


@pytest.mark.asyncio
async def test_pending_sales_are_grouped_per_customer(clock):
    def handler(request):
        assert request.url.path == "/api/sales/pending"
        sale = dict(DEBTOR_ROW["sales"][0], customerPhone="0711", customerName="John")
        other = dict(sale, id=43, totalAmount=100.0, paidAmount=0)
        return httpx.Response(200, json=[sale, other])

    client = make_client(handler, clock)
    try:
        debtors = await client.get_sale_ledger(debtors_only=False)
    finally:
        await client.close()

    assert len(debtors) == 1
    assert debtors[0].total_debt == Money(130000)


@pytest.mark.asyncio
async def test_creditor_payment_is_sent_in_major_units(clock):
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        seen["key"] = request.headers.get("Idempotency-Key")
        return httpx.Response(200, json=dict(CREDITOR_ROW, balance=900.0))

    client = make_client(handler, clock)
    try:
        creditor = await client.apply_payment(
            AccountKind.CREDITOR, "7", Money(30000), attempt_id="abc"
        )
    finally:
        await client.close()

    assert seen == {
        "method": "PUT",
        "path": "/api/creditors/pay/7",
        "body": {"amount": "300.00"},
        "key": "abc",
    }
    assert creditor.balance == Money(90000)


@pytest.mark.asyncio
async def test_sale_payment_returns_sale(clock):
    def handler(request):
        assert request.method == "POST"
        assert request.url.path == "/api/sales/payment/41"
        assert json.loads(request.content) == {"paymentAmount": "300.00"}
        return httpx.Response(200, json=dict(DEBTOR_ROW["sales"][0], paidAmount=600.0))

    client = make_client(handler, clock)
    try:
        sale = await client.apply_payment(AccountKind.DEBTOR, "41", Money(30000))
    finally:
        await client.close()

    assert isinstance(sale, Sale)
    assert sale.balance_due == Money(90000)


@pytest.mark.asyncio
async def test_server_error_is_network_failure(clock):
    client = make_client(lambda request: httpx.Response(500, text="boom"), clock)
    try:
        with pytest.raises(NetworkFailure) as exc_info:
            await client.apply_payment(AccountKind.CREDITOR, "7", Money(100))
    finally:
        await client.close()

    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_unreachable_backend_is_network_failure(clock):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler, clock)
    try:
        with pytest.raises(NetworkFailure):
            await client.list_accounts(AccountKind.CREDITOR, 0, 20)
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_invalid_json_is_network_failure(clock):
    client = make_client(lambda request: httpx.Response(200, text="<html>"), clock)
    try:
        with pytest.raises(NetworkFailure):
            await client.get_sale_ledger()
    finally:
        await client.close()
