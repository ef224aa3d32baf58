"""
Construction des line_items Stripe (logique pure, pas de DB).
"""
from typing import Any, Dict, Iterable, List, Tuple

from backend.app_setup.exceptions import ValidationFailed
from backend.models import ProductModel
from backend.payments.stripe_client import to_minor_units

# module backend.payments.cart
def to_line_items(lines: Iterable[Tuple[int, str, Any]], currency: str) -> List[Dict[str, Any]]:
    """
    Construit les line_items Stripe à partir de (quantité, nom, prix unitaire majeur).
    - price_data.unit_amount en unités mineures
    - Ignore les lignes à quantité ou prix non valides
    - Lève ValidationFailed (400) si aucune ligne n'est construite
    """
    line_items: List[Dict[str, Any]] = []
    for quantity, name, unit_price in lines:
        unit_amount = to_minor_units(unit_price)
        if quantity <= 0 or unit_amount <= 0:
            continue
        line_items.append({
            "quantity": int(quantity),
            "price_data": {
                "currency": currency.lower(),
                "unit_amount": unit_amount,
                "product_data": {"name": name or "Article"},
            },
        })
    if not line_items:
        raise ValidationFailed("Aucun article valide")
    return line_items

def cart_lines(lines: Iterable[Tuple[int, ProductModel]]) -> List[Tuple[int, str, Any]]:
    return [(qty, product.name, product.unit_price) for qty, product in lines]
