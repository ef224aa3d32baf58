# module backend.addresses.views
"""Carnet d'adresses de l'utilisateur authentifié (/api/v1/addresses).
- POST   ""                     création (201)
- GET    ""                     liste paginée, filtre is_default
- GET    /default, /stats       adresse par défaut (404 si aucune), compteurs
- GET    /{id}, PATCH /{id}     lecture / mise à jour partielle
- PATCH  /{id}/set-default      bascule de l'adresse par défaut
- DELETE /{id}                  suppression (409 si une commande l'utilise)
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from backend.addresses import service as addresses_service
from backend.addresses.models import AddressRequest, AddressUpdateRequest, serialize_address
from backend.infra.database import get_db
from backend.utils.responses import ok
from backend.utils.security import require_user

router = APIRouter(prefix="/api/v1/addresses", tags=["Addresses API"])


@router.post("")
def create_address(req: AddressRequest, user: dict = Depends(require_user), db: Session = Depends(get_db)):
    address = addresses_service.create_address(db, user["id"], req.model_dump())
    return ok(serialize_address(address), status_code=201)


@router.get("")
def list_addresses(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=addresses_service.MAX_PAGE_SIZE),
    is_default: Optional[bool] = Query(None),
    user: dict = Depends(require_user),
    db: Session = Depends(get_db),
):
    addresses, pagination = addresses_service.list_addresses(db, user["id"], page, limit, is_default)
    return ok({"addresses": [serialize_address(a) for a in addresses], "pagination": pagination})


@router.get("/default")
def get_default_address(user: dict = Depends(require_user), db: Session = Depends(get_db)):
    return ok(serialize_address(addresses_service.get_default_address(db, user["id"])))


@router.get("/stats")
def address_stats(user: dict = Depends(require_user), db: Session = Depends(get_db)):
    return ok(addresses_service.address_stats(db, user["id"]))


@router.get("/{address_id}")
def get_address(address_id: str, user: dict = Depends(require_user), db: Session = Depends(get_db)):
    return ok(serialize_address(addresses_service.get_address(db, address_id, user["id"])))


@router.patch("/{address_id}")
def update_address(
    address_id: str,
    req: AddressUpdateRequest,
    user: dict = Depends(require_user),
    db: Session = Depends(get_db),
):
    address = addresses_service.update_address(db, address_id, user["id"], req.model_dump())
    return ok(serialize_address(address))


@router.patch("/{address_id}/set-default")
def set_default_address(address_id: str, user: dict = Depends(require_user), db: Session = Depends(get_db)):
    return ok(serialize_address(addresses_service.set_default_address(db, address_id, user["id"])))


@router.delete("/{address_id}")
def delete_address(address_id: str, user: dict = Depends(require_user), db: Session = Depends(get_db)):
    addresses_service.delete_address(db, address_id, user["id"])
    return ok({"id": address_id, "deleted": True})
