from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict

from arap.models.account import Creditor, Debtor


class PaymentRequest(BaseModel):
    """Request body to record a payment. Amount is in minor units (cents)."""
    amount_cents: Any = None
    sale_id: Optional[str] = None


class PaymentErrorBody(BaseModel):
    code: str
    message: str


class PaymentResult(BaseModel):
    """Either the committed account or the reason nothing changed."""
    model_config = ConfigDict(frozen=True)

    ok: Optional[Union[Debtor, Creditor]] = None
    error: Optional[PaymentErrorBody] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None
