"""Exception types raised by the API and their mapping to HTTP responses."""
import logging

from fastapi import status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """The request could not be tied to a verified user.

    The message is for server logs only; clients always get the same body.
    """


class NotFoundError(Exception):
    """The resource does not exist or belongs to someone else."""

    def __init__(self, detail="Note not found."):
        super().__init__(detail)
        self.detail = detail


def _field_name(loc):
    names = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(names) or "body"


def authentication_error_handler(request, exc):
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": "Could not validate credentials."},
        headers={"WWW-Authenticate": "Bearer"},
    )


def not_found_error_handler(request, exc):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.detail})


def validation_error_handler(request, exc):
    errors = {}
    for error in exc.errors():
        errors.setdefault(_field_name(error.get("loc", ())), error.get("msg", "Invalid value"))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Validation failed.", "errors": errors},
    )


def http_exception_handler(request, exc):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def server_error_handler(request, exc):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error."},
    )


# PUBLIC_INTERFACE
def register_exception_handlers(app):
    """Maps every error a route can raise onto one of the public error bodies."""
    app.add_exception_handler(AuthenticationError, authentication_error_handler)
    app.add_exception_handler(NotFoundError, not_found_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, server_error_handler)
    app.add_exception_handler(Exception, server_error_handler)
