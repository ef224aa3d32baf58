# module backend.cart.views
"""Endpoints du panier (utilisateur authentifié).
- GET    /api/v1/cart                      lignes + résumé
- POST   /api/v1/cart/items                upsert {product_id, quantity}
- DELETE /api/v1/cart/items/{product_id}   retrait d'une ligne
"""
from fastapi import APIRouter, Depends
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.orm import Session

from backend.cart import service as cart_service
from backend.infra.database import get_db
from backend.utils.responses import ok
from backend.utils.security import require_user

router = APIRouter(prefix="/api/v1/cart", tags=["Cart API"])


class CartItemRequest(BaseModel):
    product_id: str = Field(min_length=1, validation_alias=AliasChoices("product_id", "productId"))
    quantity: int = Field(default=1, ge=1, le=100)


@router.get("")
def get_cart(user: dict = Depends(require_user), db: Session = Depends(get_db)):
    return ok(cart_service.get_cart(db, user["id"]))


@router.post("/items")
def upsert_item(req: CartItemRequest, user: dict = Depends(require_user), db: Session = Depends(get_db)):
    cart_service.add_item(db, user["id"], req.product_id, req.quantity)
    return ok(cart_service.get_cart(db, user["id"]))


@router.delete("/items/{product_id}")
def remove_item(product_id: str, user: dict = Depends(require_user), db: Session = Depends(get_db)):
    cart_service.remove_item(db, user["id"], product_id)
    return ok(cart_service.get_cart(db, user["id"]))
