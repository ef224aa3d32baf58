from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from backend.health.service import health_database_info
from backend.infra.database import get_db
from backend.utils.rate_limit import rate_limit_health_info
from backend.utils.responses import ok, error_response

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root():
    return ok({"ok": True})

@router.get("/db")
def health_db(db: Session = Depends(get_db)):
    info = health_database_info(db)
    if not info["connect_ok"]:
        return error_response(503, "Base de données injoignable")
    return ok(info)

@router.get("/rate-limit")
def health_rate_limit(request: Request):
    return ok(rate_limit_health_info(request))
