"""
Garde des changements de statut manuels (vendeur / client).
Table fixe; DELIVERED et CANCELLED sont terminaux.
"""
from typing import Dict, FrozenSet, Union

from backend.app_setup.exceptions import InvalidTransition, ValidationFailed
from backend.models.enums import OrderStatus

ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def to_status(value: Union[str, OrderStatus]) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(str(value).strip().upper())
    except ValueError:
        raise ValidationFailed("Statut de commande inconnu", {"status": f"valeur invalide: {value}"})


def can_transition(current: Union[str, OrderStatus], target: Union[str, OrderStatus]) -> bool:
    return to_status(target) in ALLOWED_TRANSITIONS[to_status(current)]


def ensure_transition(current: Union[str, OrderStatus], target: Union[str, OrderStatus]) -> OrderStatus:
    """Retourne le statut cible normalisé, ou lève InvalidTransition (400) nommant from/to."""
    cur, tgt = to_status(current), to_status(target)
    if tgt not in ALLOWED_TRANSITIONS[cur]:
        raise InvalidTransition(cur.value, tgt.value)
    return tgt
