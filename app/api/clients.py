from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_identity
from app.schemas.client import ClientCreate, ClientRead, ClientUpdate
from app.schemas.common import envelope
from app.services.access import Identity
from app.services.clients import clients

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("")
def get_clients(
    client_id: str | None = Query(default=None, alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    if client_id:
        return envelope(ClientRead.model_validate(clients.get(db, identity, client_id)))
    rows = [ClientRead.model_validate(c) for c in clients.list(db, identity)]
    return envelope(rows, count=len(rows))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_client(
    payload: ClientCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    client = clients.create(db, identity, payload)
    return envelope(ClientRead.model_validate(client), message="Client created")


@router.put("")
def update_client(
    payload: ClientUpdate,
    client_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    client = clients.update(db, identity, client_id, payload)
    return envelope(ClientRead.model_validate(client), message="Client updated")


@router.delete("")
def delete_client(
    client_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    clients.delete(db, identity, client_id)
    return envelope(message="Client deleted")
