from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from backend.models import CartItemModel, ProductModel


def list_lines(db: Session, user_id: str) -> List[CartItemModel]:
    stmt = (
        select(CartItemModel)
        .options(selectinload(CartItemModel.product))
        .where(CartItemModel.user_id == user_id)
        .order_by(CartItemModel.product_id)
    )
    return list(db.execute(stmt).scalars().all())


def get_product(db: Session, product_id: str) -> Optional[ProductModel]:
    return db.get(ProductModel, product_id)


def get_line(db: Session, user_id: str, product_id: str) -> Optional[CartItemModel]:
    stmt = select(CartItemModel).where(CartItemModel.user_id == user_id, CartItemModel.product_id == product_id)
    return db.execute(stmt).scalar_one_or_none()


def add_line(db: Session, user_id: str, product_id: str, quantity: int) -> CartItemModel:
    line = CartItemModel(user_id=user_id, product_id=product_id, quantity=quantity)
    db.add(line)
    db.flush()
    return line


def delete_line(db: Session, user_id: str, product_id: str) -> int:
    stmt = (
        delete(CartItemModel)
        .where(CartItemModel.user_id == user_id, CartItemModel.product_id == product_id)
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).rowcount
