from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.models import ProductModel


def get_active_product(db: Session, product_id: str) -> Optional[ProductModel]:
    stmt = select(ProductModel).where(ProductModel.id == product_id, ProductModel.is_active.is_(True))
    return db.execute(stmt).scalar_one_or_none()


def list_products(
    db: Session,
    search: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    sort_by: str = "name",
    descending: bool = False,
    offset: int = 0,
    limit: int = 12,
) -> Tuple[List[ProductModel], int]:
    """Produits actifs uniquement; recherche insensible à la casse sur le nom."""
    clauses = [ProductModel.is_active.is_(True)]
    if search:
        clauses.append(ProductModel.name.ilike(f"%{search}%"))
    if min_price is not None:
        clauses.append(ProductModel.price >= min_price)
    if max_price is not None:
        clauses.append(ProductModel.price <= max_price)

    column = getattr(ProductModel, sort_by)
    total = db.execute(select(func.count(ProductModel.id)).where(*clauses)).scalar_one()
    stmt = (
        select(ProductModel)
        .where(*clauses)
        .order_by(column.desc() if descending else column.asc(), ProductModel.id)
        .offset(offset)
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all()), int(total)
