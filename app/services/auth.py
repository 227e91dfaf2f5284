import logging
import uuid

import jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import AuthenticationError
from app.models.person import User
from app.services.access import Identity

logger = logging.getLogger(__name__)


def verify_token(token: str) -> dict:
    if not settings.jwt_secret:
        logger.error("JWT_SECRET is not configured; rejecting bearer token")
        raise AuthenticationError("Authentication failed")
    options = {"require": ["sub"]}
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")


def _find_user(db: Session, subject: str) -> User | None:
    user = db.scalar(select(User).where(User.external_id == subject))
    if user:
        return user
    try:
        return db.get(User, uuid.UUID(subject))
    except ValueError:
        return None


def resolve_identity(db: Session, token: str | None) -> Identity:
    """Bearer token -> ``Identity(user_id, role, company_id)``."""
    if not token:
        raise AuthenticationError("Authentication required")
    claims = verify_token(token)
    user = _find_user(db, str(claims["sub"]))
    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")
    return Identity(user_id=user.id, role=user.role, company_id=user.company_id)
