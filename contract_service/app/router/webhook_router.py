import logging
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from shared.core.database import get_contract_db as get_db
from shared.utils.payment_gateway import PaymentGateway, get_payment_gateway
from ..crud import payments_crud as crud

logger = logging.getLogger(__name__)

# processor callbacks authenticate by signature, not bearer token
router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway)
):
    payload = await request.body()
    event = gateway.construct_event(payload, stripe_signature)
    logger.info("Processor event %s received", event.get("type"))
    return crud.handle_processor_event(db, event)
