from fastapi import HTTPException

from ..config import settings
from ..domain.exceptions import (
    AlertError, AlertValidationError, CompanyNotFoundError, AlertQueryTimeoutError
)


def internal_error_detail(exc: Exception) -> dict:
    """El mensaje del error solo se expone fuera de producción."""
    return {
        "error": "Internal Server Error",
        "details": str(exc) if not settings.is_production else "An error occurred while processing the request",
    }


def to_http_exception(exc: AlertError) -> HTTPException:
    if isinstance(exc, AlertValidationError):
        return HTTPException(status_code=400, detail={"error": exc.error, "details": exc.details})
    if isinstance(exc, CompanyNotFoundError):
        return HTTPException(status_code=404, detail={"error": "Company not found", "details": str(exc)})
    if isinstance(exc, AlertQueryTimeoutError):
        return HTTPException(status_code=504, detail={"error": "Query timeout", "details": str(exc)})
    return HTTPException(status_code=500, detail=internal_error_detail(exc))
