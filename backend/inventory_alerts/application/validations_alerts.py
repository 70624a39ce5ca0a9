"""
Validaciones de borde para los endpoints de alertas de stock bajo.

Cada parámetro de query llega como texto crudo y sale como valor tipado y
con rango verificado, o como AlertValidationError. Nada aquí cae en un
valor por defecto cuando el valor viene presente pero mal formado, salvo
threshold_override, que solo se aplica cuando se puede interpretar.
"""
import re
from typing import Optional

from ..config import settings
from ..domain.exceptions import AlertValidationError
from .dtos import AlertFilters
from .thresholds import parse_threshold_override

_ID_PATTERN = re.compile(r"^[1-9][0-9]{0,17}$")

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off", ""}


def parse_company_id(raw) -> int:
    text = str(raw).strip() if raw is not None else ""
    if not _ID_PATTERN.match(text):
        raise AlertValidationError(
            "Invalid company ID format",
            "Company ID must be a positive integer"
        )
    return int(text)


def validate_limit(limit: int, max_limit: Optional[int] = None) -> int:
    """limit en [1, max_limit]; sin max_limit se usa el de la configuración."""
    if max_limit is None:
        max_limit = settings.max_alert_limit
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1 or limit > max_limit:
        raise AlertValidationError(
            "Invalid limit parameter",
            f"Limit must be a number between 1 and {max_limit}"
        )
    return limit


def parse_limit(raw: Optional[str]) -> int:
    if raw is None:
        return settings.default_alert_limit
    try:
        limit = int(str(raw).strip())
    except ValueError:
        raise AlertValidationError(
            "Invalid limit parameter",
            f"Limit must be a number between 1 and {settings.max_alert_limit}"
        )
    return validate_limit(limit)


def parse_include_inactive(raw: Optional[str]) -> bool:
    if raw is None:
        return False
    text = str(raw).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise AlertValidationError(
        "Invalid include_inactive parameter",
        "include_inactive must be true or false"
    )


def parse_alert_filters(
    company_id,
    limit: Optional[str] = None,
    include_inactive: Optional[str] = None,
    threshold_override: Optional[str] = None
) -> AlertFilters:
    return AlertFilters(
        company_id=parse_company_id(company_id),
        limit=parse_limit(limit),
        include_inactive=parse_include_inactive(include_inactive),
        threshold_override=parse_threshold_override(threshold_override),
    )
