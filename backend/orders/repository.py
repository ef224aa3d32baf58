"""Accès aux données du domaine Commandes (SQLAlchemy).
Toutes les fonctions reçoivent la Session en premier argument; aucune ne commit:
la transaction appartient au service appelant (voir backend.infra.database.atomic).
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, selectinload

from backend.models import (
    AddressModel,
    CartItemModel,
    OrderItemModel,
    OrderModel,
    PaymentModel,
    ProductModel,
)


def _order_query():
    return select(OrderModel).options(
        selectinload(OrderModel.items).selectinload(OrderItemModel.product),
        selectinload(OrderModel.payment),
        selectinload(OrderModel.address),
    )


def get_user_address(db: Session, address_id: str, user_id: str) -> Optional[AddressModel]:
    stmt = select(AddressModel).where(AddressModel.id == address_id, AddressModel.user_id == user_id)
    return db.execute(stmt).scalar_one_or_none()


def lock_cart_lines(db: Session, user_id: str) -> List[Tuple[CartItemModel, ProductModel]]:
    """Lignes du panier jointes au produit; les produits sont verrouillés (FOR UPDATE), ordre stable par id."""
    stmt = (
        select(CartItemModel, ProductModel)
        .join(ProductModel, CartItemModel.product_id == ProductModel.id)
        .where(CartItemModel.user_id == user_id)
        .order_by(ProductModel.id)
        .with_for_update(of=ProductModel)
    )
    return [(row[0], row[1]) for row in db.execute(stmt).all()]


def insert_order(
    db: Session,
    user_id: str,
    address_id: str,
    total: Decimal,
    payment_method: str,
    currency: str,
    lines: Sequence[Tuple[int, ProductModel]],
    notes: Optional[str] = None,
) -> OrderModel:
    """Insère Order + OrderItems (prix figé) + Payment(PENDING) puis flush."""
    order = OrderModel(
        user_id=user_id,
        address_id=address_id,
        total=total,
        payment_method=payment_method,
        notes=notes,
    )
    for quantity, product in lines:
        order.items.append(OrderItemModel(product=product, quantity=quantity, price=product.unit_price))
    order.payment = PaymentModel(amount=total, currency=currency, payment_method=payment_method)
    db.add(order)
    db.flush()
    return order


def decrement_stock(db: Session, product_id: str, quantity: int) -> bool:
    """UPDATE conditionnel: False si le stock ne couvre plus la quantité (aucune ligne touchée)."""
    stmt = (
        update(ProductModel)
        .where(ProductModel.id == product_id, ProductModel.stock >= quantity)
        .values(stock=ProductModel.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).rowcount == 1


def increment_stock(db: Session, product_id: str, quantity: int) -> None:
    stmt = (
        update(ProductModel)
        .where(ProductModel.id == product_id)
        .values(stock=ProductModel.stock + quantity)
        .execution_options(synchronize_session=False)
    )
    db.execute(stmt)


def clear_cart(db: Session, user_id: str) -> int:
    stmt = delete(CartItemModel).where(CartItemModel.user_id == user_id).execution_options(synchronize_session=False)
    return db.execute(stmt).rowcount


def get_order(db: Session, order_id: str, lock: bool = False) -> Optional[OrderModel]:
    stmt = _order_query().where(OrderModel.id == order_id)
    if lock:
        stmt = stmt.with_for_update(of=OrderModel).execution_options(populate_existing=True)
    return db.execute(stmt).scalar_one_or_none()


def _payment_query(lock: bool):
    stmt = select(PaymentModel)
    if lock:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return stmt


def find_payment_by_stripe_id(db: Session, stripe_payment_id: str, lock: bool = False) -> Optional[PaymentModel]:
    stmt = _payment_query(lock).where(PaymentModel.stripe_payment_id == stripe_payment_id)
    return db.execute(stmt).scalar_one_or_none()


def find_payment_by_order_id(db: Session, order_id: str, lock: bool = False) -> Optional[PaymentModel]:
    stmt = _payment_query(lock).where(PaymentModel.order_id == order_id)
    return db.execute(stmt).scalar_one_or_none()


def _filters(user_id: Optional[str], status: Optional[str], start_date: Optional[datetime], end_date: Optional[datetime]) -> List[Any]:
    clauses: List[Any] = []
    if user_id:
        clauses.append(OrderModel.user_id == user_id)
    if status:
        clauses.append(OrderModel.status == status)
    if start_date:
        clauses.append(OrderModel.created_at >= start_date)
    if end_date:
        clauses.append(OrderModel.created_at <= end_date)
    return clauses


def list_orders(
    db: Session,
    user_id: Optional[str] = None,
    status: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    offset: int = 0,
    limit: int = 10,
) -> Tuple[List[OrderModel], int]:
    clauses = _filters(user_id, status, start_date, end_date)
    total = db.execute(select(func.count(OrderModel.id)).where(*clauses)).scalar_one()
    stmt = _order_query().where(*clauses).order_by(OrderModel.created_at.desc()).offset(offset).limit(limit)
    return list(db.execute(stmt).scalars().all()), int(total)


def count_orders_by_status(db: Session, user_id: Optional[str] = None) -> Dict[str, int]:
    stmt = select(OrderModel.status, func.count(OrderModel.id)).where(*_filters(user_id, None, None, None)).group_by(OrderModel.status)
    return {status: int(count) for status, count in db.execute(stmt).all()}


def count_payments_by_status(db: Session, user_id: Optional[str] = None) -> Dict[str, int]:
    stmt = (
        select(PaymentModel.status, func.count(PaymentModel.id))
        .join(OrderModel, PaymentModel.order_id == OrderModel.id)
        .where(*_filters(user_id, None, None, None))
        .group_by(PaymentModel.status)
    )
    return {status: int(count) for status, count in db.execute(stmt).all()}


def sum_order_totals(db: Session, statuses: Sequence[str], user_id: Optional[str] = None) -> Tuple[Decimal, int]:
    stmt = select(func.coalesce(func.sum(OrderModel.total), 0), func.count(OrderModel.id)).where(
        OrderModel.status.in_(list(statuses)), *_filters(user_id, None, None, None)
    )
    total, count = db.execute(stmt).one()
    return Decimal(str(total)), int(count)
