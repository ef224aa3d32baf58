"""
Enveloppe de réponse unique de l'API.
- ApiOk[T]:  {"success": true,  "data": ..., "timestamp": ...}
- ApiErr:    {"success": false, "error": {...}, "timestamp": ...}
Le champ `success` discrimine les deux formes: une réponse porte soit des données, soit une erreur.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Generic, Literal, Mapping, Optional, TypeVar, Union

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

T = TypeVar("T")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ApiErrorBody(BaseModel):
    status_code: int
    message: str
    errors: Optional[Dict[str, str]] = None


class ApiOk(BaseModel, Generic[T]):
    success: Literal[True] = True
    data: T
    timestamp: datetime = Field(default_factory=_now)


class ApiErr(BaseModel):
    success: Literal[False] = False
    error: ApiErrorBody
    timestamp: datetime = Field(default_factory=_now)


ApiResult = Union[ApiOk[Any], ApiErr]


def ok(data: Any, status_code: int = 200) -> JSONResponse:
    body = ApiOk[Any](data=jsonable_encoder(data))
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def error_response(
    status_code: int,
    message: str,
    errors: Optional[Dict[str, str]] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    body = ApiErr(error=ApiErrorBody(status_code=status_code, message=message, errors=errors))
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=dict(headers) if headers else None)
