# module backend.orders.views
"""Endpoints du domaine Commandes (/api/v1/orders).
- POST /orders, /orders/create: crée la commande depuis le panier (authentifié, rate-limité).
- GET  /orders, /orders/summary, /orders/{id}: lecture; un vendeur voit toutes les commandes.
- POST /orders/{id}/cancel: annulation par le propriétaire.
- PATCH /orders/{id}/status, /orders/{id}/payment: réservés au vendeur.
Les erreurs métier remontent telles quelles jusqu'aux handlers centralisés.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from backend.infra.database import get_db
from backend.orders import service as orders_service
from backend.orders.models import (
    CreateOrderRequest,
    PaymentUpdateRequest,
    StatusUpdateRequest,
    serialize_order,
)
from backend.utils.rate_limit import optional_rate_limit
from backend.utils.responses import ok
from backend.utils.security import VENDOR_ROLE, require_user, require_vendor

router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])


def _scope(user: dict) -> Optional[str]:
    # Vendeur: toutes les commandes; client: les siennes
    return None if VENDOR_ROLE in (user.get("roles") or []) else user["id"]


def _create(req: CreateOrderRequest, user: dict, db: Session):
    order = orders_service.create_order(db, user["id"], req.address_id, req.payment_method, req.notes)
    return ok(serialize_order(order), status_code=201)


@router.post("", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_order(req: CreateOrderRequest, user: dict = Depends(require_user), db: Session = Depends(get_db)):
    return _create(req, user, db)


@router.post("/create", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_order_alias(req: CreateOrderRequest, user: dict = Depends(require_user), db: Session = Depends(get_db)):
    return _create(req, user, db)


@router.get("")
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=orders_service.MAX_PAGE_SIZE),
    status: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    user: dict = Depends(require_user),
    db: Session = Depends(get_db),
):
    orders, pagination = orders_service.list_orders(
        db,
        user_id=_scope(user),
        status=status,
        page=page,
        limit=limit,
        start_date=start_date,
        end_date=end_date,
    )
    return ok({"orders": [serialize_order(o) for o in orders], "pagination": pagination})


@router.get("/summary")
def order_summary(user: dict = Depends(require_user), db: Session = Depends(get_db)):
    return ok(orders_service.get_order_summary(db, _scope(user)))


@router.get("/{order_id}")
def get_order(order_id: str, user: dict = Depends(require_user), db: Session = Depends(get_db)):
    return ok(serialize_order(orders_service.get_order(db, order_id, _scope(user))))


@router.post("/{order_id}/cancel")
def cancel_order(order_id: str, user: dict = Depends(require_user), db: Session = Depends(get_db)):
    return ok(serialize_order(orders_service.cancel_order(db, order_id, user["id"])))


@router.patch("/{order_id}/status")
def update_status(order_id: str, req: StatusUpdateRequest, vendor: dict = Depends(require_vendor), db: Session = Depends(get_db)):
    return ok(serialize_order(orders_service.update_order_status(db, order_id, req.status)))


@router.patch("/{order_id}/payment")
def update_payment(order_id: str, req: PaymentUpdateRequest, vendor: dict = Depends(require_vendor), db: Session = Depends(get_db)):
    order = orders_service.update_payment_status(db, order_id, req.status, req.stripe_payment_id)
    return ok(serialize_order(order))
