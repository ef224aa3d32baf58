import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from backend import config
from backend.infra.database import get_db
from backend.payments import reconciler
from backend.payments import service as payments_service
from backend.payments import stripe_client
from backend.utils.rate_limit import optional_rate_limit
from backend.utils.responses import ok
from backend.utils.security import require_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])


class PaymentIntentRequest(BaseModel):
    order_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("order_id", "orderId"))
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class CheckoutRequest(BaseModel):
    order_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("order_id", "orderId"))


# module backend.payments.views
@router.get("/config")
def payments_config():
    """Clé publiable Stripe et devise par défaut (pour Stripe.js côté client)."""
    return ok(payments_service.publishable_config())

@router.post("/create-payment-intent", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_payment_intent(req: PaymentIntentRequest, user: dict = Depends(require_user), db: Session = Depends(get_db)):
    """
    Crée un PaymentIntent pour une commande de l'utilisateur (ou son panier courant).
    - Entrée JSON: {"order_id": "<id>"?, "currency": "inr"?}
    - Retour: {client_secret, payment_intent_id, amount, currency}
    """
    result = payments_service.create_intent_for_user(db, user["id"], order_id=req.order_id, currency=req.currency)
    return ok(result, status_code=201)

@router.get("/payment-intent/{intent_id}")
def get_payment_intent(intent_id: str, user: dict = Depends(require_user)):
    return ok(payments_service.get_intent_for_user(intent_id, user["id"]))

@router.post("/create-checkout-session", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout_session(req: CheckoutRequest, user: dict = Depends(require_user), db: Session = Depends(get_db)):
    """
    Crée une session Checkout Stripe pour une commande (ou le panier courant).
    - URLs de retour construites depuis FRONTEND_URL (jamais fournies par le client)
    - Retour: {id, url}
    """
    base = config.FRONTEND_URL.rstrip("/")
    session = payments_service.create_checkout_for_user(
        db,
        user["id"],
        success_url=f"{base}{config.CHECKOUT_SUCCESS_PATH}",
        cancel_url=f"{base}{config.CHECKOUT_CANCEL_PATH}",
        order_id=req.order_id,
    )
    return ok(session, status_code=201)

@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request, db: Session = Depends(get_db)):
    """
    Webhook Stripe: body brut + en-tête stripe-signature, vérifiés avant toute lecture.
    - Signature absente/invalide: 400
    - Événement non géré: 200 {"status": "ignored"}
    - Échec base de données: 500 (Stripe redélivre)
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    event = stripe_client.construct_webhook_event(payload, signature, config.STRIPE_WEBHOOK_SECRET)
    result = await run_in_threadpool(reconciler.handle_event, db, event)
    return ok({"received": True, **result})
