"""Error taxonomy and handlers for upstream/storage failures."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """An error with a stable code and an HTTP-like status."""

    def __init__(self, message: str, code: str, status_code: int):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"<ServiceError(code='{self.code}', status={self.status_code})>"


class ServiceErrorHandler:
    """Buckets arbitrary exceptions into HTTP-status-like categories."""

    # (message fragment, public message, code, status) checked in order
    CATEGORIES = [
        ("not found", "Resource not found", "DOCUMENT_NOT_FOUND", 404),
        ("unauthorized", "Unauthorized access", "UNAUTHORIZED", 401),
        ("forbidden", "Forbidden access", "FORBIDDEN", 403),
        ("invalid query", "Invalid query parameters", "INVALID_QUERY", 400),
    ]

    @staticmethod
    def handle(error: BaseException) -> ServiceError:
        """Map an exception to a ServiceError."""
        logger.debug("Handling error: %r", error)
        if isinstance(error, ServiceError):
            return error

        message = str(error).lower()
        for fragment, public_message, code, status_code in ServiceErrorHandler.CATEGORIES:
            if fragment in message:
                return ServiceError(public_message, code, status_code)

        return ServiceError(
            f"Internal server error, ({error})",
            "INTERNAL_ERROR",
            500,
        )


def register_exception_handlers(app: FastAPI) -> None:
    """Install JSON handlers for service and database errors."""

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        logger.warning("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "code": exc.code},
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error on %s %s", request.method, request.url.path)
        error = ServiceErrorHandler.handle(exc)
        return JSONResponse(
            status_code=error.status_code,
            content={"detail": error.message, "code": error.code},
        )
