"""
Erreurs métier et gestionnaires d'exceptions (utilisés par la factory).
- AppError et ses sous-classes: levées par les services/repositories, jamais formatées sur place.
- register_exception_handlers: point unique de traduction erreur -> statut HTTP + enveloppe ApiErr.
- Les exceptions inattendues deviennent un 500 générique (cause loggée côté serveur uniquement).
"""
import logging
from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

from backend.utils.responses import error_response

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    default_message = "Erreur interne du serveur"

    def __init__(self, message: Optional[str] = None, errors: Optional[Dict[str, str]] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        self.errors = errors
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = 400
    default_message = "Erreur de validation"


class Unauthorized(AppError):
    status_code = 401
    default_message = "Non authentifié"


class Forbidden(AppError):
    status_code = 403
    default_message = "Accès interdit"


class NotFound(AppError):
    status_code = 404
    default_message = "Ressource introuvable"


class Conflict(AppError):
    status_code = 409
    default_message = "Conflit"


class ProductUnavailable(AppError):
    status_code = 400

    def __init__(self, product_name: str):
        super().__init__(f"Le produit {product_name} n'est plus disponible")
        self.product_name = product_name


class InsufficientStock(AppError):
    status_code = 400

    def __init__(self, product_name: str, available: Optional[int] = None):
        if available is None:
            msg = f"Stock insuffisant pour {product_name}"
        else:
            msg = f"Seulement {available} unité(s) de {product_name} disponible(s)"
        super().__init__(msg)
        self.product_name = product_name
        self.available = available


class InvalidTransition(AppError):
    status_code = 400

    def __init__(self, current: str, target: str):
        super().__init__(f"Transition de statut invalide: {current} -> {target}")
        self.current = current
        self.target = target


class OrderCreationFailed(AppError):
    status_code = 500
    default_message = "La création de la commande a échoué"


class PaymentGatewayError(AppError):
    status_code = 502
    default_message = "Erreur du prestataire de paiement"


def _validation_errors(exc: RequestValidationError) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        errors[".".join(loc) or "body"] = err.get("msg", "invalide")
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    """
    Enregistre les handlers:
    - AppError: statut et message de l'erreur métier.
    - HTTPException: détail FastAPI/Starlette (401 des dépendances, 404 de routage, 429...).
    - RequestValidationError: 400 avec messages par champ.
    - Exception: 500 générique, loggé.
    """
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        return error_response(exc.status_code, exc.message, exc.errors)

    @app.exception_handler(HTTPException)
    async def handle_http_exception(request: Request, exc: HTTPException):
        return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return error_response(400, "Erreur de validation", _validation_errors(exc))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Erreur inattendue sur %s %s", request.method, request.url.path)
        return error_response(500, "Erreur interne du serveur")
