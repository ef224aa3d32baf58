"""
Rapprochement des événements Stripe (webhook) avec les paires Commande/Paiement.
- payment_intent.succeeded            -> CONFIRMED
- payment_intent.payment_failed       -> CANCELLED (stock restitué)
- checkout.session.completed + paid   -> CONFIRMED
- tout autre type: loggé puis ignoré
Idempotent: un événement redélivré dont le statut cible est déjà atteint ne déclenche aucune écriture.
Ordre des verrous: commande puis paiement, comme les changements de statut manuels.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from backend.app_setup.exceptions import AppError
from backend.infra.database import atomic
from backend.models import OrderStatus, PaymentModel
from backend.orders import repository as orders_repo
from backend.orders.service import apply_status_change
from backend.orders.transitions import to_status
from backend.payments.metadata import event_object, extract_ids, gateway_payment_id

logger = logging.getLogger(__name__)

EVENT_TARGETS: Dict[str, OrderStatus] = {
    "payment_intent.succeeded": OrderStatus.CONFIRMED,
    "payment_intent.payment_failed": OrderStatus.CANCELLED,
    "checkout.session.completed": OrderStatus.CONFIRMED,
}

# Au-delà de PENDING, le webhook ne fait plus bouger la commande
TERMINAL_FOR_WEBHOOK = frozenset({
    OrderStatus.CONFIRMED,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
})


def _ignored(reason: str, **extra: Any) -> Dict[str, Any]:
    return {"status": "ignored", "reason": reason, **extra}


def _locate_payment(db: Session, gateway_id: Optional[str], order_id: Optional[str]) -> Optional[PaymentModel]:
    """Par stripe_payment_id d'abord, puis par metadata.order_id (avec backfill de l'identifiant)."""
    if gateway_id:
        payment = orders_repo.find_payment_by_stripe_id(db, gateway_id)
        if payment is not None:
            return payment
    if not order_id:
        return None
    payment = orders_repo.find_payment_by_order_id(db, order_id)
    if payment is None or not gateway_id:
        return payment
    if payment.stripe_payment_id is None:
        payment.stripe_payment_id = gateway_id
        db.flush()
        logger.info("stripe_payment_id %s renseigné pour la commande %s", gateway_id, order_id)
    elif payment.stripe_payment_id != gateway_id:
        logger.warning(
            "commande %s: identifiant Stripe %s différent de celui enregistré (%s), conservé",
            order_id, gateway_id, payment.stripe_payment_id,
        )
    return payment


def handle_event(db: Session, event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Applique un événement Stripe déjà vérifié.
    Retour: {"status": "processed" | "noop" | "ignored", ...}
    Erreur base de données -> AppError 500 (Stripe redélivrera l'événement).
    """
    event_type = (event or {}).get("type") or ""
    event_id = (event or {}).get("id")
    obj = event_object(event)
    logger.info("webhook Stripe reçu: %s (%s)", event_type, event_id)

    target = EVENT_TARGETS.get(event_type)
    if target is None:
        logger.info("type d'événement non géré, ignoré: %s", event_type)
        return _ignored("unhandled_event_type", type=event_type)
    if event_type == "checkout.session.completed" and obj.get("payment_status") != "paid":
        logger.info("session %s non payée (payment_status=%s), ignorée", obj.get("id"), obj.get("payment_status"))
        return _ignored("not_paid")

    gateway_id = gateway_payment_id(event_type, obj)
    order_id, _ = extract_ids(obj)

    try:
        with atomic(db):
            payment = _locate_payment(db, gateway_id, order_id)
            if payment is None:
                logger.warning("aucun paiement pour %s (stripe=%s, order=%s), ignoré", event_type, gateway_id, order_id)
                return _ignored("payment_not_found")

            order = orders_repo.get_order(db, payment.order_id, lock=True)
            current = to_status(order.status)
            if current == target:
                logger.info("commande %s déjà %s, redélivrance sans effet", order.id, current.value)
                return {"status": "noop", "order_id": order.id, "order_status": current.value}
            if current in TERMINAL_FOR_WEBHOOK:
                logger.info("commande %s déjà %s, %s ignoré", order.id, current.value, event_type)
                return _ignored("terminal_status", order_id=order.id, order_status=current.value)

            apply_status_change(db, order, target)
    except AppError:
        raise
    except Exception:
        logger.exception("échec du traitement webhook %s (%s)", event_type, event_id)
        raise AppError("Traitement du webhook échoué")

    logger.info("commande %s -> %s (%s)", order.id, target.value, event_type)
    return {"status": "processed", "order_id": order.id, "order_status": target.value}
