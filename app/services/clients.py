from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import AuthorizationError, NotFoundError, ValidationError
from app.models.person import Client, UserRole
from app.schemas.client import ClientCreate, ClientUpdate
from app.services.access import Identity, is_company_admin
from app.services.common import coerce_uuid, partial_update

logger = logging.getLogger(__name__)

_EDITOR_ROLES = {UserRole.admin, UserRole.member}


def _require_company(identity: Identity) -> None:
    if identity.company_id is None:
        raise AuthorizationError("Clients belong to a company; join one first")


def _require_editor(identity: Identity) -> None:
    _require_company(identity)
    if identity.role not in _EDITOR_ROLES:
        raise AuthorizationError("Only company admins and members can edit clients")


class Clients:
    @staticmethod
    def get(db: Session, identity: Identity, client_id) -> Client:
        _require_company(identity)
        client = db.get(Client, coerce_uuid(client_id))
        # Other companies' clients look the same as missing ones
        if not client or client.company_id != identity.company_id:
            raise NotFoundError("Client not found")
        return client

    @staticmethod
    def list(db: Session, identity: Identity) -> list[Client]:
        _require_company(identity)
        stmt = (
            select(Client)
            .where(Client.company_id == identity.company_id)
            .order_by(Client.name)
        )
        return list(db.scalars(stmt).all())

    @staticmethod
    def create(db: Session, identity: Identity, payload: ClientCreate) -> Client:
        _require_editor(identity)
        if not payload.name.strip():
            raise ValidationError("Client name is required")
        client = Client(company_id=identity.company_id, **payload.model_dump())
        client.name = client.name.strip()
        db.add(client)
        db.flush()
        logger.info("Created client %s for company %s", client.id, client.company_id)
        return client

    @staticmethod
    def update(
        db: Session, identity: Identity, client_id, payload: ClientUpdate
    ) -> Client:
        _require_editor(identity)
        client = Clients.get(db, identity, client_id)
        data = partial_update(payload)
        if "name" in data:
            if not data["name"] or not data["name"].strip():
                raise ValidationError("Client name cannot be empty")
            data["name"] = data["name"].strip()
        for key, value in data.items():
            setattr(client, key, value)
        db.flush()
        logger.info("Updated client %s", client.id)
        return client

    @staticmethod
    def delete(db: Session, identity: Identity, client_id) -> None:
        client = Clients.get(db, identity, client_id)
        if not is_company_admin(identity, client.company_id):
            raise AuthorizationError("Only company admins can delete clients")
        db.delete(client)
        db.flush()
        logger.info("Deleted client %s", client.id)


clients = Clients()
