"""
Cas d'usage 'payments': orchestre commandes/panier, stripe_client et métadonnées.
- create_intent_for_user: PaymentIntent pour une commande (ou le panier courant).
- get_intent_for_user: lecture d'une intention, réservée à son propriétaire.
- create_checkout_for_user: session Checkout pour une commande (ou le panier courant).
Aucun appel Stripe n'est fait pendant qu'une transaction tient des verrous.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from backend import config
from backend.app_setup.exceptions import Forbidden, NotFound, ValidationFailed
from backend.cart import service as cart_service
from backend.infra.database import atomic
from backend.models import OrderModel, OrderStatus
from backend.orders import repository as orders_repo
from backend.payments import cart as payments_cart
from backend.payments import stripe_client

logger = logging.getLogger(__name__)


def publishable_config() -> Dict[str, Any]:
    return {
        "publishable_key": config.STRIPE_PUBLISHABLE_KEY,
        "currency": config.DEFAULT_CURRENCY,
    }


def _payable_order(db: Session, order_id: str, user_id: str) -> OrderModel:
    order = orders_repo.get_order(db, order_id)
    if order is None or order.user_id != user_id:
        raise NotFound("Commande introuvable")
    if order.status != OrderStatus.PENDING.value or order.payment is None:
        raise ValidationFailed("La commande n'est plus en attente de paiement")
    return order


def create_intent_for_user(
    db: Session,
    user_id: str,
    order_id: Optional[str] = None,
    currency: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Avec commande: montant = total figé de la commande, metadata {user_id, order_id},
    Payment.stripe_payment_id renseigné avec l'id de l'intention; devise = celle de la commande (autre devise -> 400).
    Sans commande: montant = total du panier (panier vide -> 400), metadata {user_id}.
    """
    metadata: Dict[str, Any] = {"user_id": user_id}
    if order_id:
        with atomic(db):
            order = _payable_order(db, order_id, user_id)
            amount = order.total
            order_currency = order.payment.currency.lower()
        if currency and currency.lower() != order_currency:
            raise ValidationFailed(
                "Devise différente de celle de la commande",
                {"currency": f"attendu: {order_currency}"},
            )
        currency = order_currency
        metadata["order_id"] = order_id
    else:
        summary = cart_service.summarize(cart_service.cart_lines(db, user_id))
        if summary["item_count"] == 0:
            raise ValidationFailed("Le panier est vide")
        amount = summary["total"]
        # fin de la lecture du panier, avant l'appel réseau
        db.rollback()

    currency = (currency or config.DEFAULT_CURRENCY).lower()
    intent = stripe_client.create_payment_intent(amount, currency, metadata)

    if order_id:
        with atomic(db):
            payment = orders_repo.find_payment_by_order_id(db, order_id, lock=True)
            payment.stripe_payment_id = intent["id"]
        logger.info("PaymentIntent %s rattaché à la commande %s", intent["id"], order_id)

    return {
        "client_secret": intent.get("client_secret"),
        "payment_intent_id": intent["id"],
        "amount": amount,
        "currency": currency,
    }


def get_intent_for_user(intent_id: str, user_id: str) -> Dict[str, Any]:
    intent = stripe_client.retrieve_payment_intent(intent_id)
    meta = intent.get("metadata") or {}
    owner = meta.get("user_id") or meta.get("userId")
    if owner != user_id:
        raise Forbidden("Intention de paiement appartenant à un autre utilisateur")
    return {
        "id": intent["id"],
        "status": intent.get("status"),
        "amount": stripe_client.from_minor_units(intent.get("amount")),
        "currency": intent.get("currency"),
        "metadata": meta,
    }


def create_checkout_for_user(
    db: Session,
    user_id: str,
    success_url: str,
    cancel_url: str,
    order_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Lignes Stripe depuis la commande (prix figés) ou depuis le panier courant.
    Metadata: {user_id, order_id?, cart_total}.
    """
    metadata: Dict[str, Any] = {"user_id": user_id}
    if order_id:
        order = _payable_order(db, order_id, user_id)
        lines = [(item.quantity, item.product.name, item.price) for item in order.items]
        currency = order.payment.currency
        metadata["order_id"] = order_id
        metadata["cart_total"] = order.total
    else:
        product_lines = cart_service.cart_lines(db, user_id)
        if not product_lines:
            raise ValidationFailed("Le panier est vide")
        lines = payments_cart.cart_lines(product_lines)
        currency = config.DEFAULT_CURRENCY
        metadata["cart_total"] = cart_service.summarize(product_lines)["total"]
    db.rollback()

    line_items = payments_cart.to_line_items(lines, currency)
    session = stripe_client.create_checkout_session(
        line_items=line_items,
        success_url=success_url,
        cancel_url=cancel_url,
        metadata=metadata,
    )
    logger.info("session Checkout %s créée (user=%s, order=%s)", session.get("id"), user_id, order_id)
    return {"id": session.get("id"), "url": session.get("url")}
