from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

import bcrypt
import jwt
from fastapi import Request, Depends
from fastapi.responses import Response

from backend import config
from backend.app_setup.exceptions import Unauthorized, Forbidden

ACCESS_COOKIE_NAME = "access_token"
REFRESH_COOKIE_NAME = "refresh_token"
JWT_ALGORITHM = "HS256"
VENDOR_ROLE = "VENDOR"

# --- Mots de passe (bcrypt) ---

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12)).decode("utf-8")

def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), (password_hash or "").encode("utf-8"))
    except ValueError:
        # Hash mal formé en base
        return False

# --- Jetons JWT ---

def _require_secret(secret: str, name: str) -> str:
    if not secret:
        raise RuntimeError(f"{name} n'est pas configuré")
    return secret

def create_access_token(user: Dict[str, Any]) -> str:
    """
    Jeton d'accès court: {sub, name, email, roles, is_verified}.
    Durée: ACCESS_TOKEN_EXPIRY_MINUTES.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user["id"]),
        "name": user.get("name"),
        "email": user.get("email"),
        "roles": list(user.get("roles") or []),
        "is_verified": bool(user.get("is_verified")),
        "type": "access",
        "iat": now,
        "exp": now + timedelta(minutes=config.ACCESS_TOKEN_EXPIRY_MINUTES),
    }
    return jwt.encode(payload, _require_secret(config.ACCESS_TOKEN_SECRET, "ACCESS_TOKEN_SECRET"), algorithm=JWT_ALGORITHM)

def create_refresh_token(user_id: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "type": "refresh",
        "iat": now,
        "exp": now + timedelta(days=config.REFRESH_TOKEN_EXPIRY_DAYS),
    }
    return jwt.encode(payload, _require_secret(config.REFRESH_TOKEN_SECRET, "REFRESH_TOKEN_SECRET"), algorithm=JWT_ALGORITHM)

def decode_access_token(token: str) -> Dict[str, Any]:
    """Décode et normalise le jeton d'accès; lève Unauthorized si invalide/expiré."""
    try:
        payload = jwt.decode(token, _require_secret(config.ACCESS_TOKEN_SECRET, "ACCESS_TOKEN_SECRET"), algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError:
        raise Unauthorized("Jeton d'accès invalide ou expiré")
    if payload.get("type") != "access" or not payload.get("sub"):
        raise Unauthorized("Jeton d'accès invalide ou expiré")
    return {
        "id": payload["sub"],
        "name": payload.get("name"),
        "email": payload.get("email"),
        "roles": payload.get("roles") or [],
        "is_verified": bool(payload.get("is_verified")),
    }

def decode_refresh_token(token: str) -> str:
    try:
        payload = jwt.decode(token, _require_secret(config.REFRESH_TOKEN_SECRET, "REFRESH_TOKEN_SECRET"), algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError:
        raise Unauthorized("Jeton de rafraîchissement invalide ou expiré")
    if payload.get("type") != "refresh" or not payload.get("sub"):
        raise Unauthorized("Jeton de rafraîchissement invalide ou expiré")
    return str(payload["sub"])

# --- Cookies ---

def set_auth_cookies(response: Response, access_token: str, refresh_token: Optional[str] = None):
    response.set_cookie(
        key=ACCESS_COOKIE_NAME,
        value=access_token,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="strict",
        max_age=config.ACCESS_TOKEN_EXPIRY_MINUTES * 60,
        path="/",
    )
    if refresh_token:
        response.set_cookie(
            key=REFRESH_COOKIE_NAME,
            value=refresh_token,
            httponly=True,
            secure=config.COOKIE_SECURE,
            samesite="strict",
            max_age=config.REFRESH_TOKEN_EXPIRY_DAYS * 24 * 60 * 60,
            path="/",
        )

def clear_auth_cookies(response: Response):
    response.delete_cookie(ACCESS_COOKIE_NAME, path="/")
    response.delete_cookie(REFRESH_COOKIE_NAME, path="/")

# --- Dépendances FastAPI ---

def get_current_user(request: Request) -> Dict[str, Any]:
    # Hybride: priorité au Bearer, fallback cookie
    token = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
    if not token:
        token = request.cookies.get(ACCESS_COOKIE_NAME)

    if not token:
        raise Unauthorized("Jeton d'accès absent (en-tête ou cookie)")
    return decode_access_token(token)

def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user

def require_vendor(user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
    roles = user.get("roles") or []
    if not roles:
        raise Forbidden("Accès interdit: aucun rôle attribué")
    if VENDOR_ROLE not in roles:
        raise Forbidden("Accès interdit: permissions insuffisantes")
    return user
