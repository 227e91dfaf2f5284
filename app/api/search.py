from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_identity
from app.schemas.common import envelope
from app.services.access import Identity
from app.services.search import search

router = APIRouter(prefix="/search", tags=["search"])


@router.get("")
def global_search(
    q: str = Query(default="", max_length=200),
    limit: int = Query(default=10, ge=1, le=50),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    results = search.run(db, identity, q, limit)
    return envelope(results, count=results.total)
