from typing import Dict, Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from backend.app_setup.exceptions import Conflict, Unauthorized
from backend.infra.database import get_db
from backend.utils.rate_limit import optional_rate_limit
from backend.utils.responses import ok
from backend.utils.security import (
    REFRESH_COOKIE_NAME,
    clear_auth_cookies,
    require_user,
    set_auth_cookies,
)
from .models import LoginRequest, RegisterRequest
from .service import login as svc_login, refresh as svc_refresh, register as svc_register

# --- API Router (/api/v1/auth) ---

api_router = APIRouter(prefix="/api/v1/auth", tags=["Auth API"])


def _with_cookies(payload: Dict[str, Any], access_token: str, refresh_token: str = None):
    r = ok(payload)
    set_auth_cookies(r, access_token, refresh_token)
    return r


@api_router.post("/login", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def api_login(req: LoginRequest, db: Session = Depends(get_db)):
    """Point d'entrée de connexion (API JSON).
    - Applique un rate limit (5 requêtes par 60 secondes via la dépendance).
    - Délègue la vérification des identifiants au service (bcrypt).
    - Pose les cookies httpOnly access_token et refresh_token (sameSite=strict).
    - Retourne aussi {access_token, token_type, user} pour les clients Bearer.
    """
    result = svc_login(db, req.email, req.password)
    if not result.success:
        raise Unauthorized(result.error or "Identifiants invalides")
    payload = {"access_token": result.access_token, "token_type": "bearer", "user": result.user}
    return _with_cookies(payload, result.access_token, result.refresh_token)


@api_router.post("/register", dependencies=[Depends(optional_rate_limit(times=3, seconds=60))])
def api_register(req: RegisterRequest, db: Session = Depends(get_db)):
    """Inscription (API JSON): 201 {user}, 409 si l'email est déjà pris.
    Aucun cookie posé: le client enchaîne sur /login.
    """
    result = svc_register(db, req.name, req.email, req.password)
    if not result.success:
        raise Conflict(result.error or "Utilisateur existe déjà")
    return ok({"user": result.user}, status_code=201)


@api_router.post("/refresh", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def api_refresh(request: Request, db: Session = Depends(get_db)):
    token = request.cookies.get(REFRESH_COOKIE_NAME)
    if not token:
        raise Unauthorized("Jeton de rafraîchissement absent")
    result = svc_refresh(db, token)
    if not result.success:
        raise Unauthorized(result.error or "Session expirée")
    payload = {"access_token": result.access_token, "token_type": "bearer", "user": result.user}
    return _with_cookies(payload, result.access_token)


@api_router.get("/me")
def api_me(user: Dict[str, Any] = Depends(require_user)):
    """Retourne l'utilisateur courant tel que porté par le jeton d'accès."""
    return ok(user)


@api_router.post("/logout")
def api_logout():
    """Supprime les cookies access_token et refresh_token."""
    r = ok({"message": "Déconnexion réussie"})
    clear_auth_cookies(r)
    return r
