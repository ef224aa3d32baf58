from enum import Enum
from typing import Optional


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    """Sous-ensemble des statuts de commande reflété sur le paiement."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    CASH_ON_DELIVERY = "CASH_ON_DELIVERY"
    ONLINE_PAYMENT = "ONLINE_PAYMENT"
    BANK_TRANSFER = "BANK_TRANSFER"


_PAYMENT_METHOD_ALIASES = {
    "COD": PaymentMethod.CASH_ON_DELIVERY,
    "CASH": PaymentMethod.CASH_ON_DELIVERY,
    "CARD": PaymentMethod.ONLINE_PAYMENT,
    "STRIPE": PaymentMethod.ONLINE_PAYMENT,
}


def payment_status_for(order_status: OrderStatus) -> PaymentStatus:
    """Statut de paiement couplé à un statut de commande (expédition/livraison => payé)."""
    if order_status == OrderStatus.PENDING:
        return PaymentStatus.PENDING
    if order_status == OrderStatus.CANCELLED:
        return PaymentStatus.CANCELLED
    return PaymentStatus.CONFIRMED


def parse_payment_method(value: Optional[str]) -> PaymentMethod:
    """
    Normalise le moyen de paiement saisi par le client.
    - None/vide => CASH_ON_DELIVERY (défaut)
    - Alias acceptés: COD, CASH, CARD, STRIPE
    - Lève ValueError si inconnu
    """
    raw = (value or "").strip().upper()
    if not raw:
        return PaymentMethod.CASH_ON_DELIVERY
    if raw in _PAYMENT_METHOD_ALIASES:
        return _PAYMENT_METHOD_ALIASES[raw]
    return PaymentMethod(raw)
