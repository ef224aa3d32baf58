import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.auth import repository
from backend.auth.models import AuthResponse, build_user_dict
from backend.utils.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    hash_password,
    verify_password,
)
from backend.infra.database import atomic

logger = logging.getLogger(__name__)

# --- Cas d'usage Auth exposés ---

def login(db: Session, email: str, password: str) -> AuthResponse:
    """Connexion:
    - Recherche l'utilisateur par email (insensible à la casse)
    - Vérifie le mot de passe (bcrypt)
    - Émet un jeton d'accès et un jeton de rafraîchissement
    Message unique en cas d'échec pour ne pas révéler l'existence du compte.
    """
    user = repository.get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("échec de connexion pour %s", (email or "").strip().lower())
        return AuthResponse(False, error="Identifiants invalides")
    user_dict = build_user_dict(user)
    return AuthResponse(
        True,
        user=user_dict,
        access_token=create_access_token(user_dict),
        refresh_token=create_refresh_token(user.id),
    )

def refresh(db: Session, refresh_token: str) -> AuthResponse:
    """Nouveau jeton d'accès depuis le cookie refresh_token (utilisateur relu en base)."""
    user_id = decode_refresh_token(refresh_token)
    user = repository.get_user_by_id(db, user_id)
    if user is None:
        return AuthResponse(False, error="Utilisateur introuvable")
    user_dict = build_user_dict(user)
    return AuthResponse(True, user=user_dict, access_token=create_access_token(user_dict))

def register(db: Session, name: str, email: str, password: str) -> AuthResponse:
    """Inscription d'un client:
    - Email déjà utilisé (insensible à la casse) -> échec "Utilisateur existe déjà"
    - Mot de passe haché (bcrypt), compte sans rôle et non vérifié
    Pas de jetons émis: la connexion reste une étape distincte.
    """
    try:
        with atomic(db):
            if repository.get_user_by_email(db, email) is not None:
                return AuthResponse(False, error="Utilisateur existe déjà")
            user = repository.create_user(db, name, email, hash_password(password))
    except IntegrityError:
        # inscription concurrente avec le même email
        return AuthResponse(False, error="Utilisateur existe déjà")
    logger.info("nouvel utilisateur %s", user.id)
    return AuthResponse(True, user=build_user_dict(user))
