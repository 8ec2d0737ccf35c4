from fastapi import Depends

from arap.clients.backend import BackendClient
from arap.core.config import settings
from arap.db.session import get_store
from arap.repositories.base import AccountStore
from arap.services.ledger_service import LedgerService


async def get_backend_client():
    """Backend client, closed when the request is done."""
    client = BackendClient()
    try:
        yield client
    finally:
        await client.close()


async def get_ledger_service(
    store: AccountStore = Depends(get_store),
    client: BackendClient = Depends(get_backend_client)
) -> LedgerService:
    """Ledger operations bound to the active store; payments go through the backend first."""
    forwarder = client if settings.FORWARD_PAYMENTS else None
    return LedgerService(store, forwarder=forwarder)
