import logging

from fastapi import APIRouter, Depends

from dailybag.modules.auth.deps import RequireAuthenticated, UserContext
from dailybag.modules.billing.schemas import PaymentReturnOut, PaymentReturnRequest
from dailybag.modules.billing.services import PaymentReturnHandler

router = APIRouter(prefix="/api/billing", tags=["billing"])
logger = logging.getLogger("dailybag.billing")

_payment_returns = PaymentReturnHandler()


@router.post("/payment-return", response_model=PaymentReturnOut)
def ResolvePaymentReturnItem(
    payload: PaymentReturnRequest,
    user: UserContext = Depends(RequireAuthenticated),
) -> PaymentReturnOut:
    return PaymentReturnOut.model_validate(_payment_returns.Handle(payload.Url, user.Id))
