import asyncio
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from arap.api.deps import get_ledger_service
from arap.clients.backend import BackendClient
from arap.db.session import get_store
from arap.main import app
from arap.models.account import Creditor, Debtor, Sale
from arap.models.money import Money
from arap.repositories.memory_repo import InMemoryAccountRepository
from arap.services.ledger_service import LedgerService
from arap.services.status_classifier import aggregate_status, classify

# Fixed "now" for every test
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def make_creditor():
    """Factory for creditors; status is derived from balance and due date."""
    def _make(
        account_id="cred-1",
        balance_cents=120000,
        due_in_days=-5,
        supplier_name="Acme Supplies",
        contact_info="Jane Wanjiku",
        **extra
    ):
        balance = Money(balance_cents)
        due_date = NOW + timedelta(days=due_in_days)
        return Creditor(
            id=account_id,
            supplier_name=supplier_name,
            contact_info=contact_info,
            balance=balance,
            due_date=due_date,
            status=classify(balance, due_date, NOW),
            credit_terms="Net 30",
            **extra
        )
    return _make


@pytest.fixture
def make_debtor():
    """
    Factory for debtors.

    `sales` is a list of (total_cents, paid_cents, due_in_days) tuples; sale
    ids are "<account_id>-sale-<n>".
    """
    def _make(account_id="debt-1", sales=((120000, 0, -10),), name="John Kamau", **extra):
        built = []
        for index, (total_cents, paid_cents, due_in_days) in enumerate(sales, start=1):
            total = Money(total_cents)
            paid = Money(paid_cents)
            due_date = NOW + timedelta(days=due_in_days)
            built.append(Sale(
                id=f"{account_id}-sale-{index}",
                account_id=account_id,
                sale_date=due_date - timedelta(days=30),
                due_date=due_date,
                total_amount=total,
                paid_amount=paid,
                balance_due=total - paid,
                payment_status=classify(total - paid, due_date, NOW),
            ))
        return Debtor(
            id=account_id,
            name=name,
            sales=tuple(built),
            total_debt=Money.sum(sale.balance_due for sale in built),
            payment_status=aggregate_status(sale.payment_status for sale in built),
            **extra
        )
    return _make


@pytest.fixture
def store():
    """Fresh in-memory account store."""
    return InMemoryAccountRepository()


@pytest.fixture
def ledger(store, clock):
    return LedgerService(store, clock=clock)


@pytest.fixture
def seed(store):
    """Insert accounts into the in-memory store from sync test code."""
    def _seed(*accounts):
        for account in accounts:
            asyncio.run(store.insert(account))
    return _seed


@pytest.fixture
def client(store, ledger):
    """FastAPI test client bound to the in-memory store."""
    app.dependency_overrides[get_ledger_service] = lambda: ledger
    app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def mock_db():
    """Motor database double: db[name] returns one mocked collection."""
    collection = MagicMock()
    collection.find_one = AsyncMock()
    collection.find_one_and_replace = AsyncMock()
    collection.insert_one = AsyncMock()
    collection.bulk_write = AsyncMock()
    collection.count_documents = AsyncMock(return_value=0)

    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[])
    collection.find.return_value = cursor
    collection.cursor = cursor

    db = MagicMock()
    db.__getitem__.return_value = collection
    db.collection = collection
    return db


@pytest_asyncio.fixture
async def seeded_store(store, make_debtor, make_creditor):
    """Store with two debtors and two creditors."""
    await store.insert(make_debtor())
    await store.insert(make_debtor(
        account_id="debt-2",
        name="Mary Achieng",
        sales=((75050, 0, 10),),
        phone="0722 000 111",
    ))
    await store.insert(make_creditor())
    await store.insert(make_creditor(
        account_id="cred-2",
        supplier_name="Baraka Hardware",
        contact_info=None,
        balance_cents=50000,
        due_in_days=15,
    ))
    return store


def creditor_row(row_id, balance):
    """Creditor as the legacy backend serialises it (major units)."""
    return {
        "id": row_id,
        "supplierName": f"Supplier {row_id}",
        "balance": balance,
        "dueDate": "2026-12-01",
        "creditTerms": "Net 30",
    }


class FakeCreditorBackend:
    """Legacy creditor endpoints for httpx.MockTransport; PUT /creditors/pay/{id} lowers the balance."""

    def __init__(self, rows):
        self.rows = rows
        self.calls = []

    def __call__(self, request):
        self.calls.append((request.method, request.url.path))
        if request.method == "PUT":
            row_id = int(request.url.path.rsplit("/", 1)[1])
            row = next((r for r in self.rows if r["id"] == row_id), None)
            if row is None:
                return httpx.Response(404, json={"message": "Creditor not found"})
            row["balance"] -= float(json.loads(request.content)["amount"])
            return httpx.Response(200, json=row)

        page = int(request.url.params["page"])
        size = int(request.url.params["size"])
        return httpx.Response(200, json={
            "content": self.rows[page * size:(page + 1) * size],
            "totalElements": len(self.rows),
        })

    def client(self, clock=lambda: NOW):
        return BackendClient(
            base_url="http://backend.test/api",
            transport=httpx.MockTransport(self),
            clock=clock,
        )


@pytest.fixture
def creditor_backend():
    """Backend holding one creditor (id 1) owing 500.00."""
    return FakeCreditorBackend([creditor_row(1, 500.0)])
