"""
AccountRepository - MongoDB-backed debtor and creditor ledgers.

Core algorithm for commits:
1. Caller reads the account (version N) and builds the updated copy
2. Replace the document only where {_id, version: N} still matches
3. Stored version becomes N + 1
4. No match -> the account moved on (Conflict) or vanished (NotFound)
"""

import logging
from typing import Dict, Iterable, List, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReplaceOne, ReturnDocument
from pymongo.errors import BulkWriteError, DuplicateKeyError

from arap.core.exceptions import Conflict, NotFound
from arap.models.account import Account, AccountKind, AccountPage, rebuild
from arap.models.base import _utcnow
from arap.repositories.base import AccountStore, from_document, to_document

logger = logging.getLogger(__name__)

DUPLICATE_KEY = 11000

COLLECTION_BY_KIND = {
    AccountKind.DEBTOR: "debtors",
    AccountKind.CREDITOR: "creditors",
}

_ORDER = [("created_at", 1), ("_id", 1)]


class AccountRepository(AccountStore):
    """Repository for receivable and payable accounts."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    def collection(self, kind: AccountKind):
        return self.db[COLLECTION_BY_KIND[AccountKind(kind)]]

    async def get(self, kind: AccountKind, account_id: str) -> Account:
        doc = await self.collection(kind).find_one({"_id": account_id})
        if not doc:
            raise NotFound(f"{AccountKind(kind).value} {account_id} not found")
        return from_document(kind, doc)

    async def list(self, kind: AccountKind, page: int, size: int) -> AccountPage:
        collection = self.collection(kind)
        total_count = await collection.count_documents({})
        cursor = collection.find({}).sort(_ORDER).skip(page * size).limit(size)
        docs = await cursor.to_list(length=size)
        return AccountPage(
            items=tuple(from_document(kind, doc) for doc in docs),
            total_count=total_count,
            page=page,
            size=size,
        )

    async def commit(self, account: Account, expected_version: int) -> Account:
        """
        Compare-and-swap commit.

        Returns the stored account; raises Conflict when another commit won
        the race, NotFound when the account no longer exists.
        """
        collection = self.collection(account.kind)
        updated = rebuild(account, version=expected_version + 1, updated_at=_utcnow())

        result = await collection.find_one_and_replace(
            {"_id": account.id, "version": expected_version},
            to_document(updated),
            return_document=ReturnDocument.AFTER,
        )
        if result:
            return from_document(account.kind, result)

        current = await collection.find_one({"_id": account.id}, {"version": 1})
        if not current:
            raise NotFound(f"{account.kind.value} {account.id} not found")
        logger.warning(
            "Commit conflict on %s %s: expected version %s, stored %s",
            account.kind.value, account.id, expected_version, current.get("version"),
        )
        raise Conflict(
            f"{account.kind.value} {account.id} was modified concurrently",
            current_version=current.get("version"),
        )

    async def snapshot(self, kind: AccountKind) -> Tuple[Account, ...]:
        docs = await self.collection(kind).find({}).sort(_ORDER).to_list(None)
        return tuple(from_document(kind, doc) for doc in docs)

    async def insert(self, account: Account) -> Account:
        try:
            await self.collection(account.kind).insert_one(to_document(account))
        except DuplicateKeyError as exc:
            raise Conflict(f"{account.kind.value} {account.id} already exists") from exc
        return account

    async def upsert_many(self, accounts: Iterable[Account]) -> Tuple[str, ...]:
        """
        Bulk ReplaceOne(upsert=True) per collection.

        The filter pins `version - 1`, so a document that moved on does not
        match and the upsert collides on `_id`; those ids are returned.
        """
        by_kind: Dict[AccountKind, List[Account]] = {}
        for account in accounts:
            by_kind.setdefault(account.kind, []).append(account)

        now = _utcnow()
        lost: List[str] = []
        for kind, batch in by_kind.items():
            requests = [
                ReplaceOne(
                    {"_id": account.id, "version": account.version - 1},
                    to_document(rebuild(account, updated_at=now)),
                    upsert=True,
                )
                for account in batch
            ]
            try:
                await self.collection(kind).bulk_write(requests, ordered=False)
            except BulkWriteError as exc:
                errors = exc.details.get("writeErrors", [])
                if any(error.get("code") != DUPLICATE_KEY for error in errors):
                    raise
                ids = [batch[error["index"]].id for error in errors]
                logger.warning(
                    "Upsert lost version race on %s %s", kind.value, ", ".join(ids)
                )
                lost.extend(ids)
        return tuple(lost)
