import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from soulsketch.deps import get_gateway, get_mailer

logger = logging.getLogger(__name__)

router = APIRouter()


class PaymentIntentRequest(BaseModel):
    amount: int = Field(..., gt=0, description="amount in cents")
    currency: str = "usd"
    metadata: Dict[str, Any] = Field(default_factory=dict)


@router.post("/payment-intent")
def payment_intent(req: PaymentIntentRequest, gateway=Depends(get_gateway)):
    try:
        intent = gateway.create_transaction(req.amount, req.currency.lower(), req.metadata)
    except Exception as e:
        logger.error("Payment intent failed: %s", e)
        raise HTTPException(status_code=502, detail="payment provider unavailable")
    return intent


@router.get("/health")
def health(gateway=Depends(get_gateway), mailer=Depends(get_mailer)):
    return {"status": "ok", "payments": gateway.name, "email": mailer.method}
