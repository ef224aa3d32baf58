from typing import Any, Dict

from sqlalchemy.orm import Session

from backend.infra.database import ping


def health_database_info(db: Session) -> Dict[str, Any]:
    bind = db.get_bind()
    return {
        "connect_ok": ping(db),
        "dialect": bind.dialect.name,
        "database": bind.url.database,
    }
