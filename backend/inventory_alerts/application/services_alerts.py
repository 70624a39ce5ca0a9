"""
Servicio de alertas de stock bajo
=================================

Orquesta el pipeline de alertas de una petición. Solo lectura: nunca
agrega, actualiza ni hace commit.

Cada lectura corre en un hilo de trabajo con su propio UnitOfWork. Las
lecturas independientes se lanzan juntas:
- empresa + almacenes activos
- actividad de 30 días + velocidad de 7 días (cuando se conocen los almacenes)
- inventario + proveedores principales (cuando se conocen los pares)

La concurrencia está acotada por petición y cada lectura tiene timeout. Si
una lectura falla, las demás se cancelan y no se devuelve nada parcial.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Tuple

import anyio

from ..config import settings as app_settings
from ..domain.exceptions import CompanyNotFoundError, AlertQueryTimeoutError
from ..infrastructure.unit_of_work import UnitOfWork
from .dtos import AlertFilters, FiltersAppliedOut, LowStockAlertsOut, LowStockSummaryOut, AlertSummaryOut
from .thresholds import ThresholdResolver, resolve_threshold_table
from .validations_alerts import validate_limit
from . import alert_engine

logger = logging.getLogger(__name__)

NO_WAREHOUSES_MESSAGE = "No active warehouses found for this company"
NO_RECENT_SALES_MESSAGE = "No products with recent sales activity found"


class LowStockAlertService:
    """
    Calcula las alertas de stock bajo de una empresa y su resumen.

    uow_factory crea un UnitOfWork nuevo por lectura; clock entrega el
    "ahora" de las ventanas de actividad y velocidad.
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork] = UnitOfWork,
        clock: Callable[[], datetime] = datetime.now,
        settings=app_settings
    ):
        self.uow_factory = uow_factory
        self.clock = clock
        self.settings = settings

    # ===== LECTURAS =====

    async def _read(self, limiter: anyio.CapacityLimiter, query: Callable[[UnitOfWork], Any], name: str):
        """Ejecuta una lectura en un hilo de trabajo; se abandona al cancelar o al vencer el timeout."""
        def run():
            uow = self.uow_factory()
            with uow.read_only():
                return query(uow)

        try:
            with anyio.fail_after(self.settings.query_timeout_seconds):
                return await anyio.to_thread.run_sync(run, abandon_on_cancel=True, limiter=limiter)
        except TimeoutError:
            logger.error(f"Lectura '{name}' excedió {self.settings.query_timeout_seconds}s")
            raise AlertQueryTimeoutError(f"Query '{name}' timed out")

    async def _gather(self, *reads):
        """Todo o nada: el primer fallo cancela las lecturas restantes."""
        tasks = [asyncio.ensure_future(read) for read in reads]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _load_scope(self, limiter, company_id: int) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
        company, warehouses = await self._gather(
            self._read(limiter, lambda uow: uow.companies.get(company_id), "company"),
            self._read(limiter, lambda uow: uow.warehouses.active_for_company(company_id), "warehouses"),
        )
        if company is None:
            logger.warning(f"Empresa {company_id} no encontrada")
            raise CompanyNotFoundError(company_id)
        return company, warehouses

    def _read_activity(self, limiter, warehouse_ids: List[int], now: datetime, days: int, name: str):
        since = alert_engine.window_start(now, days)
        return self._read(
            limiter,
            lambda uow: uow.sales.aggregate_by_pair(warehouse_ids, since, now),
            name,
        )

    # ===== ALERTAS =====

    async def generate_alerts(self, filters: AlertFilters) -> LowStockAlertsOut:
        validate_limit(filters.limit, self.settings.max_alert_limit)
        limiter = anyio.CapacityLimiter(self.settings.max_concurrent_queries)
        company_id = filters.company_id

        company, warehouses = await self._load_scope(limiter, company_id)
        thresholds = resolve_threshold_table(company["low_stock_thresholds"])
        now = self.clock()

        def response(alerts, total, message=None) -> LowStockAlertsOut:
            return LowStockAlertsOut(
                alerts=alerts,
                total_alerts=total,
                limited_alerts=len(alerts),
                company_name=company["name"],
                thresholds_used=thresholds,
                filters_applied=FiltersAppliedOut(
                    company_id=company_id,
                    limit=filters.limit,
                    include_inactive=filters.include_inactive,
                    threshold_override=filters.threshold_override if filters.threshold_override is not None else "none",
                ),
                generated_at=now,
                message=message,
            )

        if not warehouses:
            logger.info(f"Empresa {company_id}: sin almacenes activos")
            return response([], 0, NO_WAREHOUSES_MESSAGE)

        warehouse_ids = [w["id"] for w in warehouses]
        recent_rows, velocity_rows = await self._gather(
            self._read_activity(limiter, warehouse_ids, now, self.settings.recent_activity_days, "recent_activity"),
            self._read_activity(limiter, warehouse_ids, now, self.settings.velocity_window_days, "velocity"),
        )
        recent = alert_engine.aggregate_recent_activity(recent_rows)
        if not recent:
            logger.info(f"Empresa {company_id}: sin ventas recientes")
            return response([], 0, NO_RECENT_SALES_MESSAGE)

        pairs = list(recent)
        product_ids = list(dict.fromkeys(product_id for product_id, _ in pairs))
        inventory_rows, supplier_links = await self._gather(
            self._read(limiter, lambda uow: uow.inventory.for_pairs(pairs), "inventory"),
            self._read(limiter, lambda uow: uow.product_suppliers.primary_for_products(product_ids), "suppliers"),
        )

        velocity = alert_engine.estimate_velocity(velocity_rows)
        snapshot = alert_engine.join_inventory_snapshot(inventory_rows, recent, filters.include_inactive)
        suppliers = alert_engine.resolve_suppliers(product_ids, supplier_links)
        resolver = ThresholdResolver(thresholds, filters.threshold_override)

        ranked = alert_engine.rank_alerts(
            alert_engine.build_alerts(snapshot, resolver, velocity, suppliers, recent)
        )
        limited = alert_engine.apply_limit(ranked, filters.limit)

        logger.info(
            f"Empresa {company_id}: {len(ranked)} alertas de stock bajo "
            f"({len(limited)} devueltas) de {len(snapshot)} pares monitoreados"
        )
        return response(limited, len(ranked))

    # ===== RESUMEN =====

    async def generate_summary(self, company_id: int) -> LowStockSummaryOut:
        limiter = anyio.CapacityLimiter(self.settings.max_concurrent_queries)

        company, warehouses = await self._load_scope(limiter, company_id)
        thresholds = resolve_threshold_table(company["low_stock_thresholds"])
        now = self.clock()

        if not warehouses:
            return LowStockSummaryOut(
                summary=AlertSummaryOut(),
                generated_at=now,
                message=NO_WAREHOUSES_MESSAGE,
            )

        warehouse_ids = [w["id"] for w in warehouses]
        recent_rows = await self._read_activity(
            limiter, warehouse_ids, now, self.settings.recent_activity_days, "recent_activity"
        )
        recent = alert_engine.aggregate_recent_activity(recent_rows)
        if not recent:
            return LowStockSummaryOut(
                summary=AlertSummaryOut(total_warehouses=len(warehouses)),
                generated_at=now,
                message=NO_RECENT_SALES_MESSAGE,
            )

        pairs = list(recent)
        inventory_rows = await self._read(limiter, lambda uow: uow.inventory.for_pairs(pairs), "inventory")
        snapshot = alert_engine.join_inventory_snapshot(inventory_rows, recent)
        summary = alert_engine.summarize_alerts(
            snapshot,
            ThresholdResolver(thresholds),
            total_warehouses=len(warehouses),
            total_products_monitored=len(recent),
        )

        logger.info(
            f"Resumen empresa {company_id}: {summary.low_stock_alerts} con stock bajo, "
            f"{summary.critical_alerts} críticas"
        )
        return LowStockSummaryOut(summary=summary, generated_at=now)
