"""
Module 'payments' (feature-first): point d'entrée public.
Réunit l'adaptateur Stripe, les line_items, les métadonnées, les services et le rapprochement webhook.
"""

from .stripe_client import (
    require_stripe,
    create_payment_intent,
    create_checkout_session,
    retrieve_payment_intent,
    construct_webhook_event,
    to_minor_units,
    from_minor_units,
)
from .cart import to_line_items
from .metadata import event_object, extract_ids, gateway_payment_id
from .service import publishable_config, create_intent_for_user, get_intent_for_user, create_checkout_for_user
from .reconciler import handle_event

__all__ = [
    # stripe
    "require_stripe",
    "create_payment_intent",
    "create_checkout_session",
    "retrieve_payment_intent",
    "construct_webhook_event",
    "to_minor_units",
    "from_minor_units",
    # cart
    "to_line_items",
    # metadata
    "event_object",
    "extract_ids",
    "gateway_payment_id",
    # services
    "publishable_config",
    "create_intent_for_user",
    "get_intent_for_user",
    "create_checkout_for_user",
    # webhook
    "handle_event",
]
