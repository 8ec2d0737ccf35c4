from typing import Dict, List, Optional, Union

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from fastapi.responses import JSONResponse

from arap.api.deps import get_ledger_service
from arap.core.exceptions import InvalidPagination, NotFound
from arap.models.account import AccountKind, AccountPage, Creditor, Debtor, PaymentStatus
from arap.schemas.payment import PaymentRequest, PaymentResult
from arap.services.aggregation import LedgerTotals, StatusBucket
from arap.services.ledger_service import LedgerService

router = APIRouter()

ERROR_STATUS = {
    "invalid_amount": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "amount_exceeds_balance": status.HTTP_400_BAD_REQUEST,
    "missing_sale_reference": status.HTTP_400_BAD_REQUEST,
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "idempotency_key_reused": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "network_failure": status.HTTP_502_BAD_GATEWAY,
}


@router.get("/{kind}", response_model=AccountPage)
async def list_accounts(
    kind: AccountKind,
    page: int = Query(0),
    size: Optional[int] = Query(None),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """List one zero-based page of accounts."""
    try:
        return await ledger.list_accounts(kind, page, size)
    except InvalidPagination as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.message
        )


@router.get("/{kind}/totals", response_model=LedgerTotals)
async def get_totals(
    kind: AccountKind,
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Outstanding and overdue totals in minor units."""
    return await ledger.get_totals(kind)


@router.get("/{kind}/status-breakdown", response_model=Dict[str, StatusBucket])
async def get_status_breakdown(
    kind: AccountKind,
    ledger: LedgerService = Depends(get_ledger_service)
):
    return await ledger.status_breakdown(kind)


@router.get("/{kind}/search", response_model=List[Union[Debtor, Creditor]])
async def search_accounts(
    kind: AccountKind,
    term: str = Query(""),
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Case-insensitive substring search over names and contact details."""
    return list(await ledger.search(kind, term, payment_status))


@router.get("/{kind}/{account_id}", response_model=Union[Debtor, Creditor])
async def get_account(
    kind: AccountKind,
    account_id: str,
    ledger: LedgerService = Depends(get_ledger_service)
):
    try:
        return await ledger.get_account(kind, account_id)
    except NotFound as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.message
        )


@router.post("/{kind}/{account_id}/payments", response_model=PaymentResult)
async def record_payment(
    kind: AccountKind,
    account_id: str,
    payload: PaymentRequest,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """
    Record a payment against an account (or one of a debtor's sales).

    Repeating the request with the same Idempotency-Key returns the account
    as committed by the first attempt instead of paying twice.
    """
    result = await ledger.record_payment(
        kind,
        account_id,
        payload.sale_id,
        payload.amount_cents,
        attempt_id=idempotency_key
    )
    if result.error is not None:
        return JSONResponse(
            status_code=ERROR_STATUS.get(result.error.code, status.HTTP_400_BAD_REQUEST),
            content=result.model_dump(mode="json")
        )
    return result
