"""
Razorpay webhook receiver.

The signature is computed over the raw body, so the request is read as
bytes before any JSON parsing. Only a bad signature or a missing secret
is answered with an error; anything else gets a 200 so Razorpay stops
retrying.
"""

import logging
from fastapi import APIRouter, Depends, Header, HTTPException, Request

from services.payments import PaymentService, SignatureError, get_payment_service
from services.razorpay_client import GatewayConfigError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/razorpay")
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: str | None = Header(None),
    payments: PaymentService = Depends(get_payment_service),
):
    body = await request.body()
    try:
        return await payments.handle_webhook(body, x_razorpay_signature)
    except (SignatureError, GatewayConfigError) as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Webhook processing failed")
        return {"status": "ok", "note": "processing-error"}
