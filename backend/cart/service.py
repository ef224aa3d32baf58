"""Couche service du panier.
- summarize: lecture « instantané » du panier {subtotal, discount, total, item_count}.
- add_item / remove_item: mutations, chacune dans sa propre transaction.
Le total du panier est calculé comme celui de la commande (prix soldé prioritaire).
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Tuple

from sqlalchemy.orm import Session

from backend.app_setup.exceptions import InsufficientStock, NotFound, ProductUnavailable, ValidationFailed
from backend.cart import repository
from backend.infra.database import atomic
from backend.models import CartItemModel, ProductModel

CENT = Decimal("0.01")


def money(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def summarize(lines: Iterable[Tuple[int, ProductModel]]) -> Dict[str, Any]:
    """
    subtotal = Σ prix catalogue × qté
    discount = Σ (prix − prix soldé) × qté, seulement si un prix soldé existe
    total    = Σ (prix soldé ?? prix) × qté
    """
    subtotal = Decimal("0")
    discount = Decimal("0")
    total = Decimal("0")
    item_count = 0
    for quantity, product in lines:
        price = Decimal(str(product.price))
        subtotal += price * quantity
        if product.sale_price is not None:
            discount += (price - Decimal(str(product.sale_price))) * quantity
        total += Decimal(str(product.unit_price)) * quantity
        item_count += quantity
    return {
        "subtotal": money(subtotal),
        "discount": money(discount),
        "total": money(total),
        "item_count": item_count,
    }


def _serialize_line(line: CartItemModel) -> Dict[str, Any]:
    product = line.product
    return {
        "product_id": line.product_id,
        "name": product.name,
        "quantity": line.quantity,
        "price": product.price,
        "sale_price": product.sale_price,
        "stock": product.stock,
        "is_active": product.is_active,
        "images": product.images or [],
    }


def get_cart(db: Session, user_id: str) -> Dict[str, Any]:
    lines = repository.list_lines(db, user_id)
    return {
        "items": [_serialize_line(line) for line in lines],
        "summary": summarize((line.quantity, line.product) for line in lines),
    }


def cart_lines(db: Session, user_id: str) -> List[Tuple[int, ProductModel]]:
    return [(line.quantity, line.product) for line in repository.list_lines(db, user_id)]


def add_item(db: Session, user_id: str, product_id: str, quantity: int) -> None:
    """Upsert: fixe la quantité de la ligne (produit actif et stock suffisant requis)."""
    if quantity < 1:
        raise ValidationFailed("Quantité invalide", {"quantity": "doit être >= 1"})
    with atomic(db):
        product = repository.get_product(db, product_id)
        if product is None:
            raise NotFound("Produit introuvable")
        if not product.is_active:
            raise ProductUnavailable(product.name)
        if product.stock < quantity:
            raise InsufficientStock(product.name, product.stock)
        line = repository.get_line(db, user_id, product_id)
        if line is None:
            repository.add_line(db, user_id, product_id, quantity)
        else:
            line.quantity = quantity


def remove_item(db: Session, user_id: str, product_id: str) -> None:
    with atomic(db):
        if repository.delete_line(db, user_id, product_id) == 0:
            raise NotFound("Article absent du panier")
