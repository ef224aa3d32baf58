from typing import Optional, Dict, Any

from pydantic import BaseModel, EmailStr, Field

from backend.models import UserModel


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)


class AuthResponse:
    def __init__(
        self,
        success: bool,
        user: Optional[Dict[str, Any]] = None,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        error: Optional[str] = None,
    ):
        self.success = success
        self.user = user
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.error = error


def build_user_dict(user: UserModel) -> Dict[str, Any]:
    """Vue publique d'un utilisateur (jamais le hash du mot de passe)."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "roles": list(user.roles or []),
        "is_verified": bool(user.is_verified),
    }
