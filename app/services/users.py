from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import AuthorizationError, NotFoundError, ValidationError
from app.models.person import User
from app.schemas.user import UserProfileUpdate
from app.services.access import Identity, is_company_admin
from app.services.common import coerce_uuid, partial_update

logger = logging.getLogger(__name__)


class Users:
    @staticmethod
    def _load(db: Session, user_id) -> User:
        user = db.get(User, coerce_uuid(user_id))
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def get(db: Session, identity: Identity, user_id) -> User:
        user = Users._load(db, user_id)
        same_company = (
            identity.company_id is not None and user.company_id == identity.company_id
        )
        if user.id != identity.user_id and not same_company:
            raise AuthorizationError("Access denied to this user")
        return user

    @staticmethod
    def list(db: Session, identity: Identity, include_inactive: bool = False) -> list[User]:
        if not is_company_admin(identity, identity.company_id):
            raise AuthorizationError("Only company admins can list users")
        stmt = select(User).where(User.company_id == identity.company_id)
        if not include_inactive:
            stmt = stmt.where(User.is_active.is_(True))
        return list(db.scalars(stmt.order_by(User.full_name)).all())

    @staticmethod
    def update_profile(
        db: Session, identity: Identity, payload: UserProfileUpdate
    ) -> User:
        user = Users._load(db, identity.user_id)
        data = partial_update(payload)
        if "full_name" in data and not data["full_name"]:
            raise ValidationError("full_name cannot be empty")
        for key, value in data.items():
            setattr(user, key, value)
        db.flush()
        logger.info("Updated profile for user %s", user.id)
        return user

    @staticmethod
    def deactivate(db: Session, identity: Identity, user_id) -> User:
        user = Users._load(db, user_id)
        if not is_company_admin(identity, user.company_id):
            raise AuthorizationError("Only company admins can deactivate users")
        if user.id == identity.user_id:
            raise ValidationError("You cannot deactivate your own account")
        user.is_active = False
        db.flush()
        logger.info("Deactivated user %s", user.id)
        return user


users = Users()
