"""Accès aux données du carnet d'adresses (SQLAlchemy).
Comme pour les commandes: aucune fonction ne commit, la transaction appartient au service.
"""
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from backend.models import AddressModel, OrderModel


def get_address(db: Session, address_id: str, user_id: str) -> Optional[AddressModel]:
    stmt = select(AddressModel).where(AddressModel.id == address_id, AddressModel.user_id == user_id)
    return db.execute(stmt).scalar_one_or_none()


def get_default_address(db: Session, user_id: str) -> Optional[AddressModel]:
    stmt = select(AddressModel).where(AddressModel.user_id == user_id, AddressModel.is_default.is_(True))
    return db.execute(stmt).scalars().first()


def count_addresses(db: Session, user_id: str) -> int:
    return int(db.execute(select(func.count(AddressModel.id)).where(AddressModel.user_id == user_id)).scalar_one())


def list_addresses(
    db: Session,
    user_id: str,
    is_default: Optional[bool] = None,
    offset: int = 0,
    limit: int = 12,
) -> Tuple[List[AddressModel], int]:
    """Adresse par défaut en tête, puis les plus récentes."""
    clauses = [AddressModel.user_id == user_id]
    if is_default is not None:
        clauses.append(AddressModel.is_default.is_(is_default))
    total = db.execute(select(func.count(AddressModel.id)).where(*clauses)).scalar_one()
    stmt = (
        select(AddressModel)
        .where(*clauses)
        .order_by(AddressModel.is_default.desc(), AddressModel.created_at.desc(), AddressModel.id)
        .offset(offset)
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all()), int(total)


def insert_address(db: Session, user_id: str, fields: Dict[str, Any]) -> AddressModel:
    address = AddressModel(user_id=user_id, **fields)
    db.add(address)
    db.flush()
    return address


def clear_default(db: Session, user_id: str, keep_id: Optional[str] = None) -> int:
    """Retire le drapeau par défaut de toutes les adresses de l'utilisateur (sauf keep_id)."""
    stmt = update(AddressModel).where(AddressModel.user_id == user_id, AddressModel.is_default.is_(True))
    if keep_id:
        stmt = stmt.where(AddressModel.id != keep_id)
    stmt = stmt.values(is_default=False).execution_options(synchronize_session=False)
    return db.execute(stmt).rowcount


def latest_other_address(db: Session, user_id: str, exclude_id: str) -> Optional[AddressModel]:
    stmt = (
        select(AddressModel)
        .where(AddressModel.user_id == user_id, AddressModel.id != exclude_id)
        .order_by(AddressModel.created_at.desc(), AddressModel.id)
        .limit(1)
    )
    return db.execute(stmt).scalar_one_or_none()


def is_used_by_orders(db: Session, address_id: str) -> bool:
    stmt = select(OrderModel.id).where(OrderModel.address_id == address_id).limit(1)
    return db.execute(stmt).first() is not None


def delete_address(db: Session, address: AddressModel) -> None:
    db.delete(address)
    db.flush()
