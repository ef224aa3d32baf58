"""
Lancement local du backend: python -m backend

Hôte, port, reload et niveau de logs viennent de backend.config (HOST, PORT,
UVICORN_RELOAD, LOG_LEVEL), comme le reste de la configuration.
"""
from typing import Any, Dict

import uvicorn

from backend import config

APP_PATH = "backend.asgi:app"


def run_options() -> Dict[str, Any]:
    """Arguments passés à uvicorn.run (lus à l'appel, pas à l'import)."""
    return {
        "host": config.HOST,
        "port": config.PORT,
        "reload": config.UVICORN_RELOAD,
        "log_level": config.LOG_LEVEL,
    }


def main() -> None:
    # chaîne d'import obligatoire pour le reload
    uvicorn.run(APP_PATH, **run_options())


if __name__ == "__main__":
    main()
