# backend/app/errors.py
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

log = logging.getLogger("agency_listings.errors")


class DomainError(Exception):
    """
    Base for every failure the core hands back to a request handler.

    Each subclass pins the HTTP status and a stable error_code so handlers
    never choose status codes themselves.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "ERROR"
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None, *, details: Optional[dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"error": self.message, "error_code": self.error_code}
        if self.details:
            out["details"] = self.details
        return out


class AuthenticationError(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "NOT_AUTHENTICATED"
    default_message = "Not authenticated"


class AuthorizationError(DomainError):
    # Message stays generic: no hint about agencies or owners.
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"
    default_message = "Forbidden"


class ValidationError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_ERROR"
    default_message = "Validation failed"

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, details={"fields": [{"field": field, "message": message}]})


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    default_message = "Not found"


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"
    default_message = "Conflict"


class InternalError(DomainError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "INTERNAL_ERROR"
    default_message = "Internal server error"


def _field_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for err in exc.errors():
        loc = [str(x) for x in err.get("loc", ()) if x not in ("body", "query", "path")]
        out.append({"field": ".".join(loc) or "body", "message": err.get("msg"), "type": err.get("type")})
    return out


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def _domain_error(request: Request, exc: DomainError) -> JSONResponse:
        if isinstance(exc, InternalError):
            log.error("internal_error", extra={"action": f"{request.method} {request.url.path}"})
            return JSONResponse(status_code=exc.status_code, content=InternalError().to_dict())
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        err = ValidationError(details={"fields": _field_errors(exc)})
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(StaleDataError)
    async def _stale(request: Request, exc: StaleDataError) -> JSONResponse:
        err = ConflictError("Resource was modified concurrently; reload and retry")
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(IntegrityError)
    async def _integrity(request: Request, exc: IntegrityError) -> JSONResponse:
        log.warning("integrity_error", extra={"action": f"{request.method} {request.url.path}"})
        err = ConflictError("Request conflicts with existing data")
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        log.exception("unhandled_error", extra={"action": f"{request.method} {request.url.path}"})
        return JSONResponse(status_code=500, content=InternalError().to_dict())
