"""
Endpoints de alertas de stock bajo
==================================

Solo lectura. Los parámetros de query se reciben como texto crudo y se
validan en el borde, así un valor mal formado devuelve 400 y no un 422 del framework.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from ...dependencies import get_alert_service
from ...application.dtos import LowStockAlertsOut, LowStockSummaryOut
from ...application.services_alerts import LowStockAlertService
from ...application.validations_alerts import parse_alert_filters, parse_company_id
from ...domain.exceptions import AlertError
from ..errors import to_http_exception, internal_error_detail

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/companies", tags=["alerts"])


@router.get("/{company_id}/alerts/low-stock", response_model=LowStockAlertsOut)
async def get_low_stock_alerts(
    company_id: str,
    limit: Optional[str] = Query(None, description="Máximo de alertas devueltas, 1 a 1000 (por defecto 100)"),
    include_inactive: Optional[str] = Query(None, description="Incluir productos inactivos (por defecto false)"),
    threshold_override: Optional[str] = Query(None, description="Umbral entero aplicado a todas las categorías"),
    service: LowStockAlertService = Depends(get_alert_service)
):
    """
    Alertas de stock bajo de los almacenes activos de una empresa.

    Solo se consideran pares (producto, almacén) con ventas en los últimos
    30 días. Las alertas se ordenan por urgencia:
    - primero horizonte de quiebre conocido, menos días primero
    - luego menor ratio disponible/umbral
    """
    try:
        filters = parse_alert_filters(company_id, limit, include_inactive, threshold_override)
        return await service.generate_alerts(filters)
    except AlertError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error generando alertas de stock bajo para empresa {company_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=internal_error_detail(e))


@router.get("/{company_id}/alerts/low-stock/summary", response_model=LowStockSummaryOut)
async def get_low_stock_summary(
    company_id: str,
    service: LowStockAlertService = Depends(get_alert_service)
):
    """Conteos de stock bajo y críticos por almacén y por categoría."""
    try:
        return await service.generate_summary(parse_company_id(company_id))
    except AlertError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error generando resumen de stock bajo para empresa {company_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=internal_error_detail(e))
