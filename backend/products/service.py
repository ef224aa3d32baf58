"""Catalogue public: liste filtrée/paginée des produits actifs et fiche produit.
Un produit désactivé est invisible (404), comme un produit inexistant.
"""
import math
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from backend.app_setup.exceptions import NotFound, ValidationFailed
from backend.models import ProductModel
from backend.products import repository
from backend.products.models import SORT_FIELDS

MAX_PAGE_SIZE = 50


def get_product(db: Session, product_id: str) -> ProductModel:
    product = repository.get_active_product(db, product_id)
    if product is None:
        raise NotFound("Produit introuvable")
    return product


def list_products(
    db: Session,
    page: int = 1,
    limit: int = 12,
    search: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    sort_by: str = "name",
    sort_order: str = "asc",
) -> Tuple[List[ProductModel], Dict[str, int]]:
    page = max(1, int(page))
    limit = max(1, min(int(limit), MAX_PAGE_SIZE))
    if min_price is not None and max_price is not None and min_price > max_price:
        raise ValidationFailed("Intervalle de prix invalide", {"min_price": "doit être <= max_price"})
    if sort_by not in SORT_FIELDS:
        sort_by = "name"

    products, total = repository.list_products(
        db,
        search=(search or "").strip() or None,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        descending=(sort_order or "").lower() == "desc",
        offset=(page - 1) * limit,
        limit=limit,
    )
    pagination = {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if total else 0,
    }
    return products, pagination
