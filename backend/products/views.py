# module backend.products.views
"""Catalogue public (/api/v1/products), sans authentification.
- GET ""     liste des produits actifs: page, limit, search, min_price, max_price, sort_by, sort_order
- GET /{id}  fiche produit (404 si inexistant ou désactivé)
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from backend.infra.database import get_db
from backend.products import service as products_service
from backend.products.models import serialize_product
from backend.utils.responses import ok

router = APIRouter(prefix="/api/v1/products", tags=["Products API"])


@router.get("")
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=products_service.MAX_PAGE_SIZE),
    search: Optional[str] = Query(None, max_length=100),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    sort_by: str = Query("name"),
    sort_order: str = Query("asc"),
    db: Session = Depends(get_db),
):
    products, pagination = products_service.list_products(
        db,
        page=page,
        limit=limit,
        search=search,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ok({"products": [serialize_product(p) for p in products], "pagination": pagination})


@router.get("/{product_id}")
def get_product(product_id: str, db: Session = Depends(get_db)):
    return ok(serialize_product(products_service.get_product(db, product_id)))
