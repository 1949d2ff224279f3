"""Stripe payment webhook route handler."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from api.dependencies import get_reconciler
from booking.services.reconciliation_service import NotificationReconciler
from shared.errors import InvalidSignature
from shared.stripe_client import SIGNATURE_HEADER

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/payment")
async def receive_payment_webhook(
    request: Request,
    reconciler: NotificationReconciler = Depends(get_reconciler),
) -> JSONResponse:
    """
    Receive a Stripe webhook delivery.

    The unparsed body is passed through because signature verification needs
    the exact bytes Stripe signed.

    Returns:
        200 {received: true} for applied and no-op events
        400 {error} when the signature cannot be verified
        500 {error} on internal processing failure (Stripe retries)
    """
    body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)

    try:
        outcome = await reconciler.handle(body, signature)
    except InvalidSignature as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except SQLAlchemyError:
        logger.exception(
            "Payment webhook processing failed",
            extra={"request_path": request.url.path},
        )
        return JSONResponse(status_code=500, content={"error": "Webhook processing failed"})

    return JSONResponse(
        status_code=200,
        content={"received": True, "outcome": outcome.value},
    )
