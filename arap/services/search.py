"""Read-only search over an account snapshot."""

from typing import Iterable, Optional, Sequence, Tuple

from arap.models.account import Account, PaymentStatus


def _field_text(account: Account, field: str) -> str:
    value = getattr(account, field, None)
    return "" if value is None else str(value)


def search(
    snapshot: Iterable[Account],
    term: Optional[str],
    fields: Optional[Sequence[str]] = None,
) -> Tuple[Account, ...]:
    """
    Case-insensitive, unanchored substring match.

    Matches against `fields`, or each account's own search fields. Missing
    values count as an empty string. A blank term matches everything.
    """
    accounts = tuple(snapshot)
    needle = (term or "").strip().casefold()
    if not needle:
        return accounts

    matches = []
    for account in accounts:
        for field in fields or account.search_fields:
            if needle in _field_text(account, field).casefold():
                matches.append(account)
                break
    return tuple(matches)


def filter_by_status(snapshot: Iterable[Account], status: PaymentStatus) -> Tuple[Account, ...]:
    return tuple(account for account in snapshot if account.current_status() == status)
