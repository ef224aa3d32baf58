# Façade "M" (Models): schéma ORM et enums métier partagés par les features.
from .enums import OrderStatus, PaymentStatus, PaymentMethod, payment_status_for, parse_payment_method
from .db import (
    Base,
    UserModel,
    AddressModel,
    ProductModel,
    CartItemModel,
    OrderModel,
    OrderItemModel,
    PaymentModel,
)

__all__ = [
    # Enums
    "OrderStatus",
    "PaymentStatus",
    "PaymentMethod",
    "payment_status_for",
    "parse_payment_method",
    # ORM
    "Base",
    "UserModel",
    "AddressModel",
    "ProductModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "PaymentModel",
]
