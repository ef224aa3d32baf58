"""
Lecture des métadonnées Stripe (order_id, user_id) portées par les événements webhook.
"""
from typing import Any, Dict, Optional, Tuple

# module backend.payments.metadata
def event_object(event: Dict[str, Any]) -> Dict[str, Any]:
    """Retourne event.data.object (dict vide si absent)."""
    if not isinstance(event, dict):
        return {}
    return (event.get("data") or {}).get("object") or {}

def extract_ids(obj: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    """
    Extrait (order_id, user_id) depuis obj.metadata.
    - order_id: clé "order_id", "orderId" accepté
    - user_id: clé "user_id", "userId" accepté
    - Valeurs vides -> None
    """
    meta = (obj or {}).get("metadata") or {}
    order_id = meta.get("order_id") or meta.get("orderId") or None
    user_id = meta.get("user_id") or meta.get("userId") or None
    return order_id, user_id

def gateway_payment_id(event_type: str, obj: Dict[str, Any]) -> Optional[str]:
    """
    Identifiant à rapprocher de Payment.stripe_payment_id.
    - payment_intent.*: id de l'intention
    - checkout.session.*: intention associée si présente, sinon id de la session
    """
    if event_type.startswith("checkout.session."):
        return obj.get("payment_intent") or obj.get("id")
    return obj.get("id")
