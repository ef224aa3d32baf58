# module backend.orders.models
"""Schémas d'entrée des endpoints Commandes et sérialisation des commandes.
- Les requêtes acceptent snake_case et camelCase (addressId, paymentMethod).
- serialize_order: forme JSON unique d'une commande (items, paiement, adresse).
"""
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from backend.models import OrderModel, OrderStatus, PaymentMethod, PaymentStatus, parse_payment_method


class CreateOrderRequest(BaseModel):
    address_id: str = Field(min_length=1, validation_alias=AliasChoices("address_id", "addressId"))
    payment_method: PaymentMethod = Field(
        default=PaymentMethod.CASH_ON_DELIVERY,
        validation_alias=AliasChoices("payment_method", "paymentMethod"),
    )
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("payment_method", mode="before")
    @classmethod
    def normalize_method(cls, v: Any) -> PaymentMethod:
        try:
            return parse_payment_method(v)
        except ValueError:
            raise ValueError("Moyen de paiement invalide")


class StatusUpdateRequest(BaseModel):
    status: OrderStatus

    @field_validator("status", mode="before")
    @classmethod
    def upper(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v


class PaymentUpdateRequest(BaseModel):
    status: PaymentStatus
    stripe_payment_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("stripe_payment_id", "stripePaymentId"),
    )

    @field_validator("status", mode="before")
    @classmethod
    def upper(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v


def serialize_order(order: OrderModel) -> Dict[str, Any]:
    payment = order.payment
    address = order.address
    return {
        "id": order.id,
        "order_number": order.order_number,
        "user_id": order.user_id,
        "address_id": order.address_id,
        "total": order.total,
        "status": order.status,
        "payment_method": order.payment_method,
        "notes": order.notes,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
        "items": [
            {
                "id": item.id,
                "product_id": item.product_id,
                "name": item.product.name if item.product is not None else None,
                "quantity": item.quantity,
                "price": item.price,
            }
            for item in order.items
        ],
        "payment": None if payment is None else {
            "id": payment.id,
            "status": payment.status,
            "payment_method": payment.payment_method,
            "stripe_payment_id": payment.stripe_payment_id,
            "amount": payment.amount,
            "currency": payment.currency,
        },
        "address": None if address is None else {
            "id": address.id,
            "street": address.street,
            "city": address.city,
            "state": address.state,
            "postal_code": address.postal_code,
            "country": address.country,
            "phone": address.phone,
        },
    }
