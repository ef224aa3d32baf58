"""Couche service du domaine Commandes.
Rôles:
- create_order: transforme le panier en commande dans UNE transaction bornée
  (validation -> calcul -> insertion -> décrément de stock -> vidage du panier).
- Lecture: get_order, list_orders, get_order_summary.
- Changements de statut: cancel_order (client), update_order_status et
  update_payment_status (vendeur), tous via apply_status_change.
Invariants:
- Order.status et Payment.status changent ensemble, dans la même transaction.
- Toute entrée dans CANCELLED restitue le stock des lignes de la commande.
Ne jamais lire la session avant atomic(): la transaction implicite empêcherait db.begin().
"""
import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend import config
from backend.app_setup.exceptions import (
    AppError,
    Conflict,
    InsufficientStock,
    InvalidTransition,
    NotFound,
    OrderCreationFailed,
    ProductUnavailable,
    ValidationFailed,
)
from backend.cart.service import money, summarize
from backend.infra.database import atomic
from backend.models import (
    OrderModel,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    payment_status_for,
)
from backend.orders import repository
from backend.orders.transitions import ensure_transition, to_status

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50
CANCELLABLE_BY_OWNER = (OrderStatus.PENDING, OrderStatus.CONFIRMED)
REVENUE_STATUSES = (OrderStatus.CONFIRMED, OrderStatus.SHIPPED, OrderStatus.DELIVERED)


def create_order(
    db: Session,
    user_id: str,
    address_id: str,
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY,
    notes: Optional[str] = None,
) -> OrderModel:
    """
    Crée une commande depuis le panier de l'utilisateur.
    Tout ou rien: en cas d'erreur aucune commande, ligne, paiement ni mouvement de stock n'est persisté.
    - Erreurs métier (adresse, panier vide, produit indisponible, stock) propagées telles quelles.
    - Toute autre erreur (base, délai dépassé) -> OrderCreationFailed (500, cause loggée).
    """
    try:
        with atomic(db, config.ORDER_TRANSACTION_TIMEOUT_MS) as deadline:
            address = repository.get_user_address(db, address_id, user_id)
            if address is None:
                raise NotFound("Adresse introuvable")

            rows = repository.lock_cart_lines(db, user_id)
            if not rows:
                raise ValidationFailed("Le panier est vide")

            for item, product in rows:
                if not product.is_active:
                    raise ProductUnavailable(product.name)
                if product.stock < item.quantity:
                    raise InsufficientStock(product.name, product.stock)
            deadline.check("validation")

            lines = [(item.quantity, product) for item, product in rows]
            total = summarize(lines)["total"]

            order = repository.insert_order(
                db,
                user_id=user_id,
                address_id=address.id,
                total=total,
                payment_method=payment_method.value,
                currency=config.DEFAULT_CURRENCY,
                lines=lines,
                notes=notes,
            )
            deadline.check("insertion")

            for quantity, product in lines:
                if not repository.decrement_stock(db, product.id, quantity):
                    raise InsufficientStock(product.name)

            repository.clear_cart(db, user_id)
            deadline.check("finalisation")
    except AppError:
        raise
    except Exception:
        logger.exception("création de commande échouée (user=%s)", user_id)
        raise OrderCreationFailed()

    logger.info("commande %s créée (user=%s, total=%s)", order.id, user_id, order.total)
    return order


def apply_status_change(db: Session, order: OrderModel, target: OrderStatus) -> None:
    """
    Applique le statut cible à la commande ET à son paiement (même transaction, appelant).
    Passage à CANCELLED: restitution du stock ligne par ligne.
    """
    order.status = target.value
    if order.payment is not None:
        order.payment.status = payment_status_for(target).value
    if target == OrderStatus.CANCELLED:
        for item in order.items:
            repository.increment_stock(db, item.product_id, item.quantity)
    db.flush()


def get_order(db: Session, order_id: str, user_id: Optional[str] = None) -> OrderModel:
    """Commande par id; user_id restreint au propriétaire (404 sinon, sans révéler l'existence)."""
    order = repository.get_order(db, order_id)
    if order is None or (user_id is not None and order.user_id != user_id):
        raise NotFound("Commande introuvable")
    return order


def list_orders(
    db: Session,
    user_id: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Tuple[List[OrderModel], Dict[str, int]]:
    page = max(1, int(page))
    limit = max(1, min(int(limit), MAX_PAGE_SIZE))
    status_value = to_status(status).value if status else None
    if start_date and end_date and start_date > end_date:
        raise ValidationFailed("Intervalle de dates invalide", {"start_date": "doit précéder end_date"})

    orders, total = repository.list_orders(
        db,
        user_id=user_id,
        status=status_value,
        start_date=start_date,
        end_date=end_date,
        offset=(page - 1) * limit,
        limit=limit,
    )
    pagination = {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if total else 0,
    }
    return orders, pagination


def get_order_summary(db: Session, user_id: Optional[str] = None) -> Dict[str, Any]:
    by_status = {s.value: 0 for s in OrderStatus}
    by_status.update(repository.count_orders_by_status(db, user_id))
    payments = {s.value: 0 for s in PaymentStatus}
    payments.update(repository.count_payments_by_status(db, user_id))
    revenue, paid_count = repository.sum_order_totals(db, [s.value for s in REVENUE_STATUSES], user_id)
    return {
        "total_orders": sum(by_status.values()),
        "orders_by_status": by_status,
        "payments_by_status": payments,
        "revenue": money(revenue),
        "average_order_value": money(revenue / paid_count) if paid_count else money(0),
    }


def cancel_order(db: Session, order_id: str, user_id: str) -> OrderModel:
    """Annulation par le client: commandes PENDING ou CONFIRMED uniquement; stock restitué."""
    with atomic(db):
        order = repository.get_order(db, order_id, lock=True)
        if order is None or order.user_id != user_id:
            raise NotFound("Commande introuvable")
        current = to_status(order.status)
        if current not in CANCELLABLE_BY_OWNER:
            raise InvalidTransition(current.value, OrderStatus.CANCELLED.value)
        apply_status_change(db, order, OrderStatus.CANCELLED)
    logger.info("commande %s annulée par son propriétaire", order_id)
    return order


def update_order_status(db: Session, order_id: str, status: Any) -> OrderModel:
    """Changement manuel (vendeur) soumis à la table de transitions."""
    target = to_status(status)
    with atomic(db):
        order = repository.get_order(db, order_id, lock=True)
        if order is None:
            raise NotFound("Commande introuvable")
        ensure_transition(order.status, target)
        apply_status_change(db, order, target)
    logger.info("commande %s -> %s (vendeur)", order_id, target.value)
    return order


def update_payment_status(
    db: Session,
    order_id: str,
    status: Any,
    stripe_payment_id: Optional[str] = None,
) -> OrderModel:
    """
    Rapprochement manuel d'un paiement (vendeur).
    - Paiement déjà au statut demandé: seul stripe_payment_id est éventuellement renseigné.
    - Sinon la commande suit, via la même garde de transitions (PENDING est refusé).
    - stripe_payment_id déjà porté par une autre commande -> Conflict (409).
    """
    try:
        target = PaymentStatus(str(getattr(status, "value", status)).strip().upper())
    except ValueError:
        raise ValidationFailed("Statut de paiement inconnu", {"status": f"valeur invalide: {status}"})

    try:
        with atomic(db):
            order = repository.get_order(db, order_id, lock=True)
            if order is None or order.payment is None:
                raise NotFound("Commande introuvable")
            if stripe_payment_id:
                holder = repository.find_payment_by_stripe_id(db, stripe_payment_id)
                if holder is not None and holder.order_id != order.id:
                    raise Conflict("Identifiant Stripe déjà attribué à une autre commande")
                order.payment.stripe_payment_id = stripe_payment_id
            if order.payment.status != target.value:
                order_target = ensure_transition(order.status, target.value)
                apply_status_change(db, order, order_target)
            db.flush()
    except IntegrityError:
        # écriture concurrente du même identifiant (contrainte unique)
        logger.warning("stripe_payment_id %s en conflit (commande %s)", stripe_payment_id, order_id)
        raise Conflict("Identifiant Stripe déjà attribué à une autre commande")
    logger.info("paiement de la commande %s -> %s (vendeur)", order_id, target.value)
    return order
