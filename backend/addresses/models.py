# module backend.addresses.models
"""Schémas d'entrée du carnet d'adresses et sérialisation.
Les requêtes acceptent snake_case et camelCase (postalCode, isDefault).
"""
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, Field

from backend.models import AddressModel


class AddressRequest(BaseModel):
    street: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=120)
    state: str = Field(min_length=1, max_length=120)
    postal_code: str = Field(
        min_length=1,
        max_length=20,
        validation_alias=AliasChoices("postal_code", "postalCode"),
    )
    country: str = Field(min_length=1, max_length=120)
    phone: str = Field(min_length=6, max_length=32)
    is_default: bool = Field(default=False, validation_alias=AliasChoices("is_default", "isDefault"))


class AddressUpdateRequest(BaseModel):
    street: Optional[str] = Field(default=None, min_length=1, max_length=255)
    city: Optional[str] = Field(default=None, min_length=1, max_length=120)
    state: Optional[str] = Field(default=None, min_length=1, max_length=120)
    postal_code: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=20,
        validation_alias=AliasChoices("postal_code", "postalCode"),
    )
    country: Optional[str] = Field(default=None, min_length=1, max_length=120)
    phone: Optional[str] = Field(default=None, min_length=6, max_length=32)
    is_default: Optional[bool] = Field(default=None, validation_alias=AliasChoices("is_default", "isDefault"))


def serialize_address(address: AddressModel) -> Dict[str, Any]:
    return {
        "id": address.id,
        "user_id": address.user_id,
        "street": address.street,
        "city": address.city,
        "state": address.state,
        "postal_code": address.postal_code,
        "country": address.country,
        "phone": address.phone,
        "is_default": bool(address.is_default),
        "created_at": address.created_at,
    }
