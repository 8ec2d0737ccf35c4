from typing import Tuple

from pydantic import BaseModel, ConfigDict

from arap.models.account import AccountKind


class ImportSummary(BaseModel):
    """Outcome of one backend import."""
    model_config = ConfigDict(frozen=True)

    kind: AccountKind
    imported: int
    # Accounts left as stored: unreconcilable or changed during the import
    skipped: Tuple[str, ...] = ()
