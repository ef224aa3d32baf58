# module backend.products.models
"""Vue publique d'un produit du catalogue (lecture seule)."""
from typing import Any, Dict

from backend.models import ProductModel

SORT_FIELDS = ("name", "price", "stock")


def serialize_product(product: ProductModel) -> Dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "price": product.price,
        "sale_price": product.sale_price,
        "unit_price": product.unit_price,
        "stock": product.stock,
        "in_stock": product.stock > 0,
        "is_active": bool(product.is_active),
        "images": product.images or [],
    }
