from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.models import UserModel


def get_user_by_email(db: Session, email: str) -> Optional[UserModel]:
    stmt = select(UserModel).where(func.lower(UserModel.email) == (email or "").strip().lower())
    return db.execute(stmt).scalar_one_or_none()


def get_user_by_id(db: Session, user_id: str) -> Optional[UserModel]:
    return db.get(UserModel, user_id)


def create_user(db: Session, name: str, email: str, password_hash: str) -> UserModel:
    """Insère un client (sans rôle, non vérifié) puis flush; le commit revient à l'appelant."""
    user = UserModel(
        name=name.strip(),
        email=email.strip().lower(),
        password_hash=password_hash,
        roles=[],
        is_verified=False,
    )
    db.add(user)
    db.flush()
    return user
