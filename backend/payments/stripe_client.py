"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
- Les montants circulent en unités majeures (Decimal) dans l'application;
  la conversion en unités mineures (x100, arrondi half-up) se fait ici uniquement.
- Les objets Stripe sont rendus sous forme de dict.
- Erreurs SDK -> PaymentGatewayError (502); signature webhook invalide -> 400.
"""
import json
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

import stripe

from backend import config
from backend.app_setup.exceptions import AppError, NotFound, PaymentGatewayError, ValidationFailed

logger = logging.getLogger(__name__)

# module backend.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi (stripe.api_key depuis STRIPE_SECRET_KEY).
    Sans clé: 500, l'appel ne part pas.
    """
    if not config.STRIPE_SECRET_KEY:
        raise AppError("STRIPE_SECRET_KEY manquant")
    stripe.api_key = config.STRIPE_SECRET_KEY
    return stripe

def _as_dict(obj: Any) -> Dict[str, Any]:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(obj)

def _stringify(metadata: Optional[Dict[str, Any]]) -> Dict[str, str]:
    # Stripe n'accepte que des chaînes en metadata
    return {str(k): str(v) for k, v in (metadata or {}).items() if v is not None}

def to_minor_units(amount: Any) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def from_minor_units(amount: Optional[int]) -> Decimal:
    return (Decimal(int(amount or 0)) / 100).quantize(Decimal("0.01"))

def create_payment_intent(amount: Any, currency: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
    """
    Crée un PaymentIntent.
    - amount: unités majeures (ex 499.50) -> 49950
    - metadata: ex {"user_id": "...", "order_id": "..."}
    Retour: dict (id, client_secret, amount, currency, status, metadata, ...)
    """
    require_stripe()
    try:
        intent = stripe.PaymentIntent.create(
            amount=to_minor_units(amount),
            currency=(currency or config.DEFAULT_CURRENCY).lower(),
            metadata=_stringify(metadata),
            automatic_payment_methods={"enabled": True},
        )
    except stripe.StripeError as e:
        logger.exception("Stripe PaymentIntent.create a échoué")
        raise PaymentGatewayError(getattr(e, "user_message", None) or "Erreur du prestataire de paiement")
    return _as_dict(intent)

def create_checkout_session(
    line_items: List[Dict[str, Any]],
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout (mode paiement, carte).
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    try:
        session = stripe.checkout.Session.create(
            line_items=line_items,
            mode="payment",
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=_stringify(metadata),
            payment_method_types=["card"],
        )
    except stripe.StripeError as e:
        logger.exception("Stripe checkout.Session.create a échoué")
        raise PaymentGatewayError(getattr(e, "user_message", None) or "Erreur du prestataire de paiement")
    return _as_dict(session)

def retrieve_payment_intent(intent_id: str) -> Dict[str, Any]:
    require_stripe()
    try:
        intent = stripe.PaymentIntent.retrieve(intent_id)
    except stripe.InvalidRequestError:
        raise NotFound("Intention de paiement introuvable")
    except stripe.StripeError:
        logger.exception("Stripe PaymentIntent.retrieve a échoué (%s)", intent_id)
        raise PaymentGatewayError()
    return _as_dict(intent)

def construct_webhook_event(payload: bytes, signature: Optional[str], secret: Optional[str]) -> Dict[str, Any]:
    """
    Vérifie la signature Stripe puis retourne l'événement sous forme de dict.
    - signature absente -> 400
    - secret non configuré -> 500 (jamais d'acceptation silencieuse)
    - signature ou payload invalides -> 400
    """
    if not signature:
        raise ValidationFailed("En-tête stripe-signature manquant")
    if not secret:
        logger.error("STRIPE_WEBHOOK_SECRET non configuré: webhook refusé")
        raise AppError("Webhook Stripe non configuré")
    try:
        stripe.Webhook.construct_event(payload, signature, secret)
    except stripe.SignatureVerificationError:
        raise ValidationFailed("Signature webhook invalide")
    except ValueError:
        raise ValidationFailed("Payload webhook invalide")
    return json.loads(payload)
