"""
Excepciones de negocio y manejadores globales.

Toda regla de negocio violada se expresa como un BusinessError con un código
de clasificación estable (RESOURCE_NOT_FOUND, RESOURCE_ALREADY_EXISTS, ...).
Los manejadores registrados en la aplicación traducen ese código al status
HTTP correspondiente con un cuerpo de error uniforme.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
RESOURCE_ALREADY_EXISTS = "RESOURCE_ALREADY_EXISTS"
DELETE_FORBIDDEN = "DELETE_FORBIDDEN"
OPERATION_FORBIDDEN = "OPERATION_FORBIDDEN"
INVALID_DATA = "INVALID_DATA"
CONSTRAINT_VIOLATION = "CONSTRAINT_VIOLATION"
INTERNAL_ERROR = "INTERNAL_ERROR"

STATUS_BY_CODE = {
    RESOURCE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RESOURCE_ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    DELETE_FORBIDDEN: status.HTTP_403_FORBIDDEN,
    OPERATION_FORBIDDEN: status.HTTP_403_FORBIDDEN,
    INVALID_DATA: status.HTTP_400_BAD_REQUEST,
    CONSTRAINT_VIOLATION: status.HTTP_400_BAD_REQUEST,
}


class BusinessError(Exception):
    """Error funcional con código de clasificación."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    @property
    def status_code(self) -> int:
        return STATUS_BY_CODE.get(self.code, status.HTTP_400_BAD_REQUEST)

    @classmethod
    def resource_not_found(cls, resource: str, identifier: Any) -> "BusinessError":
        return cls(
            RESOURCE_NOT_FOUND,
            f"{resource} non trouvé(e) avec l'identifiant : {identifier}",
            {"resource": resource, "identifier": str(identifier)},
        )

    @classmethod
    def resource_already_exists(cls, resource: str, field: str, value: Any) -> "BusinessError":
        return cls(
            RESOURCE_ALREADY_EXISTS,
            f"{resource} avec {field} '{value}' existe déjà",
            {"resource": resource, "field": field, "value": str(value)},
        )

    @classmethod
    def delete_forbidden(cls, resource: str, reason: str) -> "BusinessError":
        return cls(
            DELETE_FORBIDDEN,
            f"Impossible de supprimer {resource} : {reason}",
            {"resource": resource},
        )

    @classmethod
    def operation_forbidden(cls, operation: str, reason: str) -> "BusinessError":
        return cls(
            OPERATION_FORBIDDEN,
            f"Opération '{operation}' non autorisée : {reason}",
            {"operation": operation},
        )

    @classmethod
    def invalid_data(cls, message: str, **details) -> "BusinessError":
        return cls(INVALID_DATA, message, details)

    @classmethod
    def constraint_violation(cls, constraint: str, value: Any) -> "BusinessError":
        return cls(
            CONSTRAINT_VIOLATION,
            f"Contrainte '{constraint}' violée pour la valeur : {value}",
            {"constraint": constraint, "value": str(value)},
        )


def _error_body(request: Request, status_code: int, code: str, message: str,
                details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "detail": message,
        "code": code,
        "status": status_code,
        "path": request.url.path,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "details": details or {},
    }


async def business_error_handler(request: Request, exc: BusinessError):
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.status_code, exc.code, exc.message, exc.details),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        details[field or "body"] = error.get("msg", "")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(
            request, status.HTTP_400_BAD_REQUEST, INVALID_DATA,
            "Les données envoyées sont invalides", details
        ),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError):
    message = str(exc.orig).lower() if exc.orig is not None else ""
    if "unique" in message or "duplicate" in message:
        status_code, code = status.HTTP_409_CONFLICT, RESOURCE_ALREADY_EXISTS
        text = "Une ressource avec ces valeurs existe déjà"
    else:
        status_code, code = status.HTTP_400_BAD_REQUEST, CONSTRAINT_VIOLATION
        text = "Contrainte d'intégrité violée"
    logger.warning(f"Integrity error on {request.url.path}: {exc.orig}")
    return JSONResponse(status_code=status_code, content=_error_body(request, status_code, code, text))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            request, status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR,
            "Une erreur interne est survenue"
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Registrar los manejadores globales en la aplicación."""
    app.add_exception_handler(BusinessError, business_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
