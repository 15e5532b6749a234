"""Error taxonomy and FastAPI exception handlers.

Every failure the service reports belongs to one ``ErrorKind``. Components
raise the matching ``AnalyticsError`` subclass; the HTTP layer maps the kind
to a status code and a ``{"error", "code"}`` JSON body.
"""

from enum import Enum
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger()


class ErrorKind(str, Enum):
    """Closed set of failure kinds."""

    NOT_FOUND = "not_found"
    INVALID_ARGUMENT = "invalid_argument"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    DATA_INCONSISTENCY = "data_inconsistency"
    STORE_ERROR = "store_error"


class AnalyticsError(Exception):
    """Base class for all typed errors raised by the service."""

    kind: ErrorKind
    status_code: int = 500

    def __init__(self, message: str, *, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.kind.value}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class NotFoundError(AnalyticsError):
    """A referenced link or user does not exist."""

    kind = ErrorKind.NOT_FOUND
    status_code = 404

    def __init__(self, entity: str, key: object) -> None:
        super().__init__(f"{entity} not found", details={"entity": entity, "key": str(key)})
        self.entity = entity
        self.key = key


class InvalidArgumentError(AnalyticsError):
    """Malformed period, date range or pagination parameters."""

    kind = ErrorKind.INVALID_ARGUMENT
    status_code = 400


class UpstreamUnavailableError(AnalyticsError):
    """The geolocation service failed, timed out or answered garbage."""

    kind = ErrorKind.UPSTREAM_UNAVAILABLE
    status_code = 502


class DataInconsistencyError(AnalyticsError):
    """Aggregate counts failed an internal cross-check."""

    kind = ErrorKind.DATA_INCONSISTENCY
    status_code = 500


class StoreError(AnalyticsError):
    """The underlying persistence layer failed."""

    kind = ErrorKind.STORE_ERROR
    status_code = 503

    def __init__(self, entity: str, key: object, cause: Exception) -> None:
        super().__init__(
            f"{entity} store operation failed",
            details={"entity": entity, "key": str(key)},
        )
        self.entity = entity
        self.key = key
        self.__cause__ = cause


def register_error_handlers(app: FastAPI) -> None:
    """Register the exception handlers for ``AnalyticsError`` and request validation."""

    @app.exception_handler(AnalyticsError)
    async def analytics_error_handler(request: Request, exc: AnalyticsError) -> JSONResponse:
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "Request failed",
            error_code=exc.kind.value,
            error=exc.message,
            path=request.url.path,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        error = InvalidArgumentError(
            "Invalid request parameters",
            details=[
                {
                    "field": ".".join(str(part) for part in err.get("loc", ())),
                    "message": err.get("msg", ""),
                }
                for err in exc.errors()
            ],
        )
        logger.warning(
            "Request validation failed",
            error_code=error.kind.value,
            path=request.url.path,
        )
        return JSONResponse(status_code=error.status_code, content=error.to_dict())
