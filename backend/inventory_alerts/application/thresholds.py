"""
Umbrales de stock bajo por categoría.

Las reglas de categoría se evalúan en orden y gana la primera que coincide:
electronics, luego clothing, luego food, luego default. El orden es parte
del contrato: "Electronics Apparel" se resuelve como electronics.
"""
import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from ..domain.enums import ThresholdCategory, DEFAULT_LOW_STOCK_THRESHOLDS

logger = logging.getLogger(__name__)

CATEGORY_RULES: Tuple[Tuple[Tuple[str, ...], ThresholdCategory], ...] = (
    (("electronic", "tech"), ThresholdCategory.ELECTRONICS),
    (("clothing", "apparel", "fashion"), ThresholdCategory.CLOTHING),
    (("food", "grocery", "beverage"), ThresholdCategory.FOOD),
)


def classify_category(category: Optional[str]) -> ThresholdCategory:
    """Mapea la categoría libre de un producto a su clave de umbral."""
    text = (category or "").lower()
    for needles, key in CATEGORY_RULES:
        if any(needle in text for needle in needles):
            return key
    return ThresholdCategory.DEFAULT


def resolve_threshold_table(raw: Optional[Mapping[str, Any]]) -> Dict[str, int]:
    """
    Tabla de umbrales de la empresa combinada sobre los valores por defecto.

    Las claves que la empresa omite, y los valores que no son enteros no
    negativos, conservan el valor por defecto.
    """
    table = dict(DEFAULT_LOW_STOCK_THRESHOLDS)
    for key, value in (raw or {}).items():
        key = str(key).lower()
        if key not in table:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            logger.warning(f"Se ignora umbral {key}={value!r}: no es entero")
            continue
        try:
            number = int(value)
        except ValueError:
            logger.warning(f"Se ignora umbral {key}={value!r}: no es entero")
            continue
        if number < 0:
            logger.warning(f"Se ignora umbral {key}={value!r}: negativo")
            continue
        table[key] = number
    return table


def parse_threshold_override(value: Any) -> Optional[int]:
    """Valor entero del override, o None si no viene o no se puede interpretar."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


class ThresholdResolver:
    """Resuelve el umbral de una categoría para una empresa y una petición."""

    def __init__(self, thresholds: Mapping[str, int], override: Optional[int] = None):
        self.thresholds = dict(thresholds)
        self.override = override

    def resolve(self, category: Optional[str]) -> int:
        if self.override is not None:
            return self.override
        key = classify_category(category)
        return self.thresholds.get(key.value, self.thresholds[ThresholdCategory.DEFAULT.value])
