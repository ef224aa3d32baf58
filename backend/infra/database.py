"""
Accès base de données (SQLAlchemy).
- create_db_engine: construit le pool de connexions une seule fois (lifespan).
- get_db: dépendance FastAPI, une Session par requête, injectée dans les repositories.
- atomic: transaction bornée dans le temps pour les opérations critiques (commandes, webhooks).
"""
import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class TransactionTimeout(Exception):
    """Deadline dépassée au milieu d'une transaction (rollback garanti par atomic)."""


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """
    Crée l'engine SQLAlchemy.
    - SQLite en mémoire: StaticPool + check_same_thread=False (tests, une seule connexion partagée).
    - Autres URLs: pool par défaut avec pre_ping pour survivre aux coupures réseau.
    """
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/").endswith("sqlite:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)
    return create_engine(url, echo=echo, pool_pre_ping=True)


def make_session_factory(engine: Engine) -> sessionmaker:
    # expire_on_commit=False: les objets retournés par les services restent lisibles après commit
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db(request: Request) -> Iterator[Session]:
    """Session par requête, construite depuis la factory initialisée dans le lifespan."""
    factory: sessionmaker = request.app.state.session_factory
    with factory() as db:
        yield db


class Deadline:
    """Horloge murale d'une transaction; check() lève TransactionTimeout une fois dépassée."""

    def __init__(self, timeout_ms: Optional[int]):
        self.expires_at = time.monotonic() + timeout_ms / 1000 if timeout_ms else None

    def check(self, step: str = "") -> None:
        if self.expires_at is not None and time.monotonic() > self.expires_at:
            raise TransactionTimeout(f"Transaction expirée ({step})" if step else "Transaction expirée")


@contextmanager
def atomic(db: Session, timeout_ms: Optional[int] = None) -> Iterator[Deadline]:
    """
    Ouvre une transaction sur la session et la commit en sortie (rollback sur exception).
    - PostgreSQL: applique statement_timeout/lock_timeout en SET LOCAL (portée transaction).
    - Retourne un Deadline que l'appelant vérifie entre les étapes.
    """
    with db.begin():
        if timeout_ms and db.get_bind().dialect.name == "postgresql":
            db.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))
            db.execute(text(f"SET LOCAL lock_timeout = {int(timeout_ms)}"))
        yield Deadline(timeout_ms)


def ping(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.exception("database ping failed")
        return False
