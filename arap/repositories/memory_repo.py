"""
InMemoryAccountRepository - process-local account store.

Same compare-and-swap contract as the MongoDB repository; used for local
runs (STORE_BACKEND=memory) and tests. Accounts are frozen models, so the
stored objects double as snapshot entries.
"""

import asyncio
from typing import Dict, Iterable, Tuple

from arap.core.exceptions import Conflict, NotFound
from arap.models.account import Account, AccountKind, AccountPage, rebuild
from arap.models.base import _utcnow
from arap.repositories.base import AccountStore


class InMemoryAccountRepository(AccountStore):

    def __init__(self):
        self._accounts: Dict[AccountKind, Dict[str, Account]] = {
            AccountKind.DEBTOR: {},
            AccountKind.CREDITOR: {},
        }
        self._lock = asyncio.Lock()

    async def get(self, kind: AccountKind, account_id: str) -> Account:
        account = self._accounts[AccountKind(kind)].get(account_id)
        if account is None:
            raise NotFound(f"{AccountKind(kind).value} {account_id} not found")
        return account

    async def list(self, kind: AccountKind, page: int, size: int) -> AccountPage:
        accounts = list(self._accounts[AccountKind(kind)].values())
        start = page * size
        return AccountPage(
            items=tuple(accounts[start:start + size]),
            total_count=len(accounts),
            page=page,
            size=size,
        )

    async def commit(self, account: Account, expected_version: int) -> Account:
        async with self._lock:
            accounts = self._accounts[account.kind]
            current = accounts.get(account.id)
            if current is None:
                raise NotFound(f"{account.kind.value} {account.id} not found")
            if current.version != expected_version:
                raise Conflict(
                    f"{account.kind.value} {account.id} was modified concurrently",
                    current_version=current.version,
                )
            stored = rebuild(account, version=expected_version + 1, updated_at=_utcnow())
            accounts[account.id] = stored
            return stored

    async def snapshot(self, kind: AccountKind) -> Tuple[Account, ...]:
        return tuple(self._accounts[AccountKind(kind)].values())

    async def insert(self, account: Account) -> Account:
        async with self._lock:
            accounts = self._accounts[account.kind]
            if account.id in accounts:
                raise Conflict(f"{account.kind.value} {account.id} already exists")
            accounts[account.id] = account
            return account

    async def upsert_many(self, accounts: Iterable[Account]) -> Tuple[str, ...]:
        now = _utcnow()
        lost = []
        async with self._lock:
            for account in accounts:
                stored = self._accounts[account.kind]
                current = stored.get(account.id)
                if current is not None and current.version != account.version - 1:
                    lost.append(account.id)
                    continue
                stored[account.id] = rebuild(account, updated_at=now)
        return tuple(lost)
