from arap.core.config import settings
from arap.db.mongo import close_mongo_connection, connect_to_mongo, get_db
from arap.repositories.account_repo import AccountRepository
from arap.repositories.base import AccountStore
from arap.repositories.memory_repo import InMemoryAccountRepository


class StoreHolder:
    store: AccountStore = None

store_holder = StoreHolder()


async def open_store():
    """Open the account store selected by STORE_BACKEND."""
    if settings.STORE_BACKEND == "memory":
        store_holder.store = InMemoryAccountRepository()
    elif settings.STORE_BACKEND == "mongo":
        await connect_to_mongo()
        store_holder.store = AccountRepository(get_db())
    else:
        raise ValueError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND}")


async def close_store():
    """Release the active store."""
    if settings.STORE_BACKEND == "mongo":
        await close_mongo_connection()
    store_holder.store = None


async def get_store() -> AccountStore:
    """Return the active account store."""
    return store_holder.store
