from fastapi import APIRouter, Depends, HTTPException, status

from arap.api.deps import get_backend_client
from arap.clients.backend import BackendClient
from arap.core.exceptions import NetworkFailure
from arap.db.session import get_store
from arap.models.account import AccountKind
from arap.repositories.base import AccountStore
from arap.schemas.sync import ImportSummary
from arap.services.backend_sync import BackendSync

router = APIRouter()


@router.post("/{kind}", response_model=ImportSummary)
async def import_from_backend(
    kind: AccountKind,
    client: BackendClient = Depends(get_backend_client),
    store: AccountStore = Depends(get_store)
):
    """Import accounts of a kind from the sales/purchasing backend."""
    try:
        summary = await BackendSync(client, store).import_accounts(kind)
    except NetworkFailure as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=exc.message
        )
    return summary
