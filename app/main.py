import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from app import models  # noqa: F401
from app.api.city_approvals import router as city_approvals_router
from app.api.clients import router as clients_router
from app.api.documents import router as documents_router
from app.api.invitations import router as invitations_router
from app.api.messages import router as messages_router
from app.api.notifications import router as notifications_router
from app.api.project_members import router as project_members_router
from app.api.projects import router as projects_router
from app.api.search import router as search_router
from app.api.tasks import router as tasks_router
from app.api.users import router as users_router
from app.config import settings
from app.db import Base, engine
from app.errors import register_error_handlers
from app.logging import configure_logging
from app.observability import ObservabilityMiddleware

logger = logging.getLogger(__name__)

_ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
_DEFAULT_ALLOW_HEADERS = "Content-Type, Authorization"


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.db_create_all:
        Base.metadata.create_all(bind=engine)
        logger.info("Created missing database tables")
    yield


app = FastAPI(title="Olumba API", lifespan=lifespan)

configure_logging()
app.add_middleware(ObservabilityMiddleware)
register_error_handlers(app)


@app.middleware("http")
async def cors_middleware(request: Request, call_next):
    # Preflight requests never reach the routers
    if request.method == "OPTIONS":
        response = Response(status_code=200)
    else:
        response = await call_next(request)
    origin = request.headers.get("origin")
    response.headers["Access-Control-Allow-Origin"] = origin or settings.cors_allow_origin
    response.headers["Access-Control-Allow-Methods"] = _ALLOW_METHODS
    response.headers["Access-Control-Allow-Headers"] = request.headers.get(
        "access-control-request-headers", _DEFAULT_ALLOW_HEADERS
    )
    if origin:
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Vary"] = "Origin"
    return response


for router in (
    projects_router,
    project_members_router,
    tasks_router,
    documents_router,
    city_approvals_router,
    messages_router,
    notifications_router,
    users_router,
    invitations_router,
    clients_router,
    search_router,
):
    app.include_router(router, prefix="/api")


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
