"""Service error taxonomy and its mapping onto HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from cms.schemas import ErrorResponse

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for failures that carry their own HTTP status and error code."""

    status_code = 500
    code = "INTERNAL"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    @property
    def payload(self) -> ErrorResponse:
        return ErrorResponse(code=self.code, message=self.message)


class InvalidArgumentError(ServiceError):
    status_code = 400
    code = "INVALID_ARGUMENT"


class UnauthorizedError(ServiceError):
    status_code = 401
    code = "UNAUTHORIZED"


class NotFoundError(ServiceError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(ServiceError):
    status_code = 409
    code = "CONFLICT"


class InternalError(ServiceError):
    status_code = 500
    code = "INTERNAL"


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def handle_service_error(_: Request, exc: ServiceError) -> JSONResponse:
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload.model_dump(),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.debug("Rejected request %s %s: %s", request.method, request.url.path, exc.errors())
        payload = ErrorResponse(code=InvalidArgumentError.code, message="Invalid request")
        return JSONResponse(status_code=400, content=payload.model_dump())

    @app.exception_handler(SQLAlchemyError)
    async def handle_storage_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("Storage failure on %s %s", request.method, request.url.path)
        payload = ErrorResponse(code=InternalError.code, message="Internal server error")
        return JSONResponse(status_code=500, content=payload.model_dump())


__all__ = [
    "ConflictError",
    "InternalError",
    "InvalidArgumentError",
    "NotFoundError",
    "ServiceError",
    "UnauthorizedError",
    "install_error_handlers",
]
