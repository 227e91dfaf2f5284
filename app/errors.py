import logging

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    """Base for errors that map onto a fixed HTTP status.

    Subclasses ``HTTPException`` so services can raise them and FastAPI (or a
    test) can inspect ``status_code``/``detail`` the same way.
    """

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str | None = None, details=None):
        super().__init__(
            status_code=self.status_code, detail=message or "Request failed"
        )
        self.message = self.detail
        self.details = details


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"


class AuthenticationError(AppError):
    status_code = 401
    code = "authentication_required"


class AuthorizationError(AppError):
    status_code = 403
    code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class ConflictError(AppError):
    status_code = 409
    code = "conflict"


class UnexpectedError(AppError):
    status_code = 500
    code = "internal_error"


class ServiceUnavailableError(AppError):
    status_code = 503
    code = "service_unavailable"


def _error_payload(code: str, message: str, details=None):
    payload = {"success": False, "error": message, "code": code}
    if details is not None:
        payload["details"] = details
    return payload


def register_error_handlers(app) -> None:
    # Starlette's base class also covers routing errors (unknown path, bad method)
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if isinstance(exc, AppError):
            if exc.status_code >= 500:
                message = (
                    exc.message
                    if isinstance(exc, ServiceUnavailableError)
                    else "Internal server error"
                )
                return JSONResponse(
                    status_code=exc.status_code,
                    content=_error_payload(exc.code, message),
                )
            return JSONResponse(
                status_code=exc.status_code,
                content=_error_payload(exc.code, exc.message, exc.details),
            )
        detail = exc.detail
        code = f"http_{exc.status_code}"
        message = "Request failed"
        details = None
        if isinstance(detail, dict):
            code = detail.get("code", code)
            message = detail.get("message", message)
            details = detail.get("details")
        elif isinstance(detail, str):
            message = detail
        else:
            details = detail
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(code, message, details),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        # ctx may hold raw exception objects, which are not JSON serialisable
        errors = [
            {k: str(v) if k == "ctx" else v for k, v in err.items()}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=jsonable_encoder(
                _error_payload("validation_error", "Validation error", errors)
            ),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled error on %s %s", request.method, request.url.path
        )
        return JSONResponse(
            status_code=500,
            content=_error_payload(UnexpectedError.code, "Internal server error"),
        )
