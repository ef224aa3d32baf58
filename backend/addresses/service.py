"""Couche service du carnet d'adresses.
- create_address: la première adresse devient l'adresse par défaut.
- Une seule adresse par défaut par utilisateur: en définir une retire le drapeau des autres.
- delete_address: refusée (409) si une commande référence l'adresse; si elle était
  par défaut, la plus récente des restantes prend le relais.
Toutes les lectures sont restreintes au propriétaire (404 sinon).
"""
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.addresses import repository
from backend.app_setup.exceptions import Conflict, NotFound
from backend.infra.database import atomic
from backend.models import AddressModel

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50


def _owned(db: Session, address_id: str, user_id: str) -> AddressModel:
    address = repository.get_address(db, address_id, user_id)
    if address is None:
        raise NotFound("Adresse introuvable")
    return address


def create_address(db: Session, user_id: str, fields: Dict[str, Any]) -> AddressModel:
    fields = dict(fields)
    wants_default = bool(fields.pop("is_default", False))
    with atomic(db):
        first = repository.count_addresses(db, user_id) == 0
        if wants_default:
            repository.clear_default(db, user_id)
        address = repository.insert_address(db, user_id, {**fields, "is_default": wants_default or first})
    logger.info("adresse %s créée (user=%s, défaut=%s)", address.id, user_id, address.is_default)
    return address


def get_address(db: Session, address_id: str, user_id: str) -> AddressModel:
    return _owned(db, address_id, user_id)


def get_default_address(db: Session, user_id: str) -> AddressModel:
    address = repository.get_default_address(db, user_id)
    if address is None:
        raise NotFound("Aucune adresse par défaut")
    return address


def list_addresses(
    db: Session,
    user_id: str,
    page: int = 1,
    limit: int = 12,
    is_default: Optional[bool] = None,
) -> Tuple[List[AddressModel], Dict[str, int]]:
    page = max(1, int(page))
    limit = max(1, min(int(limit), MAX_PAGE_SIZE))
    addresses, total = repository.list_addresses(
        db, user_id, is_default=is_default, offset=(page - 1) * limit, limit=limit
    )
    pagination = {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if total else 0,
    }
    return addresses, pagination


def address_stats(db: Session, user_id: str) -> Dict[str, int]:
    return {
        "total": repository.count_addresses(db, user_id),
        "default": 1 if repository.get_default_address(db, user_id) is not None else 0,
    }


def update_address(db: Session, address_id: str, user_id: str, fields: Dict[str, Any]) -> AddressModel:
    """Mise à jour partielle; is_default=True retire le drapeau des autres adresses."""
    changes = {k: v for k, v in fields.items() if v is not None}
    with atomic(db):
        address = _owned(db, address_id, user_id)
        if changes.pop("is_default", None):
            repository.clear_default(db, user_id, keep_id=address.id)
            address.is_default = True
        for key, value in changes.items():
            setattr(address, key, value)
        db.flush()
    return address


def set_default_address(db: Session, address_id: str, user_id: str) -> AddressModel:
    with atomic(db):
        address = _owned(db, address_id, user_id)
        repository.clear_default(db, user_id, keep_id=address.id)
        address.is_default = True
        db.flush()
    logger.info("adresse %s par défaut (user=%s)", address_id, user_id)
    return address


def delete_address(db: Session, address_id: str, user_id: str) -> None:
    try:
        with atomic(db):
            address = _owned(db, address_id, user_id)
            if repository.is_used_by_orders(db, address.id):
                raise Conflict("Adresse utilisée par une commande")
            if address.is_default:
                successor = repository.latest_other_address(db, user_id, address.id)
                if successor is not None:
                    successor.is_default = True
            repository.delete_address(db, address)
    except IntegrityError:
        # commande créée entre la vérification et la suppression
        logger.warning("suppression de l'adresse %s refusée par la base", address_id)
        raise Conflict("Adresse utilisée par une commande")
    logger.info("adresse %s supprimée (user=%s)", address_id, user_id)
