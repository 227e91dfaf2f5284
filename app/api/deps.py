from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.db import get_db
from app.services.access import Identity
from app.services.auth import resolve_identity

bearer = HTTPBearer(auto_error=False)


def require_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> Identity:
    token = credentials.credentials if credentials else None
    return resolve_identity(db, token)


__all__ = ["get_db", "require_identity"]
