from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Iterable, Tuple

from arap.models.account import Account, AccountKind, AccountPage, MODEL_BY_KIND


class AccountStore(ABC):
    """
    Versioned store of debtor and creditor accounts.

    Commits are compare-and-swap on `version`: a commit succeeds only while
    the stored version still equals the version the caller read.
    """

    @abstractmethod
    async def get(self, kind: AccountKind, account_id: str) -> Account:
        """Return the account or raise NotFound."""

    @abstractmethod
    async def list(self, kind: AccountKind, page: int, size: int) -> AccountPage:
        """Zero-based page of accounts with the total count."""

    @abstractmethod
    async def commit(self, account: Account, expected_version: int) -> Account:
        """Replace the stored account if its version is still `expected_version`."""

    @abstractmethod
    async def snapshot(self, kind: AccountKind) -> Tuple[Account, ...]:
        """Immutable point-in-time copy of every account of a kind."""

    @abstractmethod
    async def insert(self, account: Account) -> Account:
        """Create a new account. Raises Conflict if the id is taken."""

    @abstractmethod
    async def upsert_many(self, accounts: Iterable[Account]) -> Tuple[str, ...]:
        """
        Bulk create-or-replace for imports.

        Each account carries the version it is stored at: an absent id is
        inserted, a present one is replaced only while its stored version is
        `account.version - 1`. Returns the ids that lost that race.
        """


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def to_document(account: Account) -> Dict[str, Any]:
    """Account -> MongoDB document (`_id` key, enums as strings, Money as cents)."""
    doc = _plain(account.model_dump())
    doc["_id"] = doc.pop("id")
    return doc


def from_document(kind: AccountKind, doc: Dict[str, Any]) -> Account:
    data = dict(doc)
    data["_id"] = str(data["_id"])
    return MODEL_BY_KIND[kind].model_validate(data)
