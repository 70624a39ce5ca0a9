"""
Tests de LowStockAlertService contra una base SQLite con datos cargados

Cubre los escenarios de punta a punta:
- A: electrónica con stock 3 bajo el umbral 10 genera alerta
- B: override 1 la elimina
- C: días hasta quiebre a partir de la velocidad de 7 días
- D: sin ventas recientes no hay alerta, sin importar el stock
- resultados vacíos, empresa inexistente, filtros de inactivos/bundles,
  bordes de las ventanas y consistencia del resumen
"""
import asyncio
import math
import threading
import time
from contextlib import contextmanager
from types import SimpleNamespace

import pytest

from inventory_alerts.application.dtos import AlertFilters
from inventory_alerts.application.services_alerts import (
    LowStockAlertService, NO_WAREHOUSES_MESSAGE, NO_RECENT_SALES_MESSAGE
)
from inventory_alerts.domain.exceptions import (
    CompanyNotFoundError, AlertValidationError, AlertQueryTimeoutError
)


def run(coro):
    return asyncio.run(coro)


def alerts_for(service, company, **kwargs):
    return run(service.generate_alerts(AlertFilters(company_id=company.id, **kwargs)))


@pytest.fixture
def company(store):
    return store.company()


@pytest.fixture
def warehouse(store, company):
    return store.warehouse(company)


class TestScenarios:

    def test_scenario_a_electronics_under_threshold(self, service, store, company, warehouse):
        p = store.product("EL-1", category="Electronics")
        store.inventory(p, warehouse, 3)
        store.sale(p, warehouse, 2, days_ago=10)

        result = alerts_for(service, company)
        assert result.total_alerts == 1
        alert = result.alerts[0]
        assert alert.current_stock == 3
        assert alert.threshold == 10
        assert alert.sku == "EL-1"
        assert alert.warehouse_name == "Main Warehouse"
        assert alert.recent_quantity_sold == 2
        # vendido hace 10 días: fuera de la ventana de velocidad
        assert alert.days_until_stockout is None

    def test_scenario_b_override_removes_alert(self, service, store, company, warehouse):
        p = store.product("EL-1", category="Electronics")
        store.inventory(p, warehouse, 3)
        store.sale(p, warehouse, 2, days_ago=10)

        result = alerts_for(service, company, threshold_override=1)
        assert result.alerts == []
        assert result.total_alerts == 0
        assert result.filters_applied.threshold_override == 1

    def test_scenario_c_days_until_stockout(self, service, store, company, warehouse):
        p = store.product("FD-1", category="Food")
        store.inventory(p, warehouse, 20, reserved=5)
        store.sale(p, warehouse, 4, days_ago=1)
        store.sale(p, warehouse, 6, days_ago=2)

        alert = alerts_for(service, company).alerts[0]
        assert alert.current_stock == 15
        assert alert.average_daily_sales == 5.0
        assert alert.days_until_stockout == 3

    def test_scenario_d_no_recent_sales_no_alert(self, service, store, company, warehouse):
        quiet = store.product("QT-1", category="Electronics")
        store.inventory(quiet, warehouse, 0)
        store.sale(quiet, warehouse, 5, days_ago=45)
        busy = store.product("BS-1", category="Electronics")
        store.inventory(busy, warehouse, 100)
        store.sale(busy, warehouse, 1, days_ago=2)

        result = alerts_for(service, company)
        assert result.alerts == []
        assert result.message is None

    def test_scenario_e_limit_rejected(self, service, company):
        with pytest.raises(AlertValidationError):
            alerts_for(service, company, limit=5000)

    def test_alert_carries_warehouse_details(self, service, store, company):
        """La alerta incluye ubicación y dirección del almacén"""
        wh = store.warehouse(company, "Central", location="Lima", address="Av. Central 123")
        p = store.product("EL-1")
        store.inventory(p, wh, 1)
        store.sale(p, wh, 1)

        dumped = alerts_for(service, company).alerts[0].model_dump()
        assert dumped["warehouse_location"] == "Lima"
        assert dumped["warehouse_address"] == "Av. Central 123"


class TestAlertProperties:

    @pytest.fixture
    def seeded(self, store, company, warehouse):
        second = store.warehouse(company, "Overflow")
        specs = [
            ("EL-1", "Electronics", warehouse, 3, 0, [(1, 2), (2, 1)]),
            ("EL-2", "tech", second, 9, 2, [(3, 1)]),
            ("CL-1", "Apparel", warehouse, 24, 0, [(20, 3)]),
            ("CL-2", "Clothing", second, 40, 0, [(5, 1)]),
            ("FD-1", "Grocery", warehouse, 12, 0, [(5, 6), (5, 5)]),
            ("MS-1", "Garden", second, 0, 0, [(1, 25)]),
        ]
        for sku, category, wh, qty, reserved, sales in specs:
            p = store.product(sku, category=category)
            store.inventory(p, wh, qty, reserved=reserved)
            for quantity, days_ago in sales:
                store.sale(p, wh, quantity, days_ago=days_ago)
        return specs

    def test_every_alert_is_under_its_threshold(self, service, company, seeded):
        result = alerts_for(service, company)
        assert result.total_alerts == 5
        for alert in result.alerts:
            assert alert.current_stock <= alert.threshold

    def test_days_until_stockout_matches_velocity(self, service, company, seeded):
        for alert in alerts_for(service, company).alerts:
            if alert.days_until_stockout is not None:
                assert alert.average_daily_sales > 0
                assert alert.days_until_stockout == math.ceil(alert.current_stock / alert.average_daily_sales)

    def test_ranking(self, service, company, seeded):
        skus = [a.sku for a in alerts_for(service, company).alerts]
        # EL-1 y CL-1 se agotan en 2 días, FD-1 y EL-2 en 3, MS-1 sin ventas en 7 días
        assert skus[-1] == "MS-1"
        assert skus[:2] == ["EL-1", "CL-1"]  # mismos días, ratio EL-1 0.3 < CL-1 0.96
        assert skus[2:4] == ["FD-1", "EL-2"]  # mismos días, ratio FD-1 0.24 < EL-2 0.7

    def test_ranking_is_repeatable(self, service, company, seeded):
        first = [a.sku for a in alerts_for(service, company).alerts]
        second = [a.sku for a in alerts_for(service, company).alerts]
        assert first == second

    def test_limit(self, service, company, seeded):
        result = alerts_for(service, company, limit=2)
        assert result.total_alerts == 5
        assert result.limited_alerts == 2
        assert len(result.alerts) == 2

    def test_summary_consistent_with_alerts(self, service, company, seeded):
        alerts = alerts_for(service, company)
        summary = run(service.generate_summary(company.id)).summary
        assert summary.low_stock_alerts == alerts.total_alerts
        assert summary.total_warehouses == 2
        assert summary.total_products_monitored == 6
        assert sum(w.alert_count for w in summary.by_warehouse) == summary.low_stock_alerts


class TestFiltering:

    def test_bundle_never_alerts(self, service, store, company, warehouse):
        p = store.product("BN-1", is_bundle=True)
        store.inventory(p, warehouse, 0)
        store.sale(p, warehouse, 1)
        assert alerts_for(service, company, include_inactive=True).alerts == []

    def test_inactive_only_when_requested(self, service, store, company, warehouse):
        p = store.product("IN-1", is_active=False)
        store.inventory(p, warehouse, 1)
        store.sale(p, warehouse, 1)
        assert alerts_for(service, company).alerts == []
        assert len(alerts_for(service, company, include_inactive=True).alerts) == 1

    def test_summary_skips_bundles_and_inactive(self, service, store, company, warehouse):
        """El resumen aplica los mismos filtros por defecto que la lista de alertas"""
        bundle = store.product("BN-1", is_bundle=True)
        inactive = store.product("IN-1", is_active=False)
        for p in (bundle, inactive):
            store.inventory(p, warehouse, 0)
            store.sale(p, warehouse, 2)

        summary = run(service.generate_summary(company.id)).summary
        assert summary.low_stock_alerts == 0
        assert summary.critical_alerts == 0
        assert summary.by_warehouse == []
        assert summary.by_category == []
        assert alerts_for(service, company).total_alerts == summary.low_stock_alerts

    def test_negative_available_stock(self, service, store, company, warehouse):
        p = store.product("NG-1")
        store.inventory(p, warehouse, 2, reserved=6)
        store.sale(p, warehouse, 4, days_ago=1)
        alert = alerts_for(service, company).alerts[0]
        assert alert.current_stock == -4
        assert alert.days_until_stockout == -1

    def test_company_thresholds_and_supplier(self, service, store):
        company = store.company(name="Tuned", thresholds={"electronics": 2})
        wh = store.warehouse(company)
        p = store.product("EL-9")
        store.inventory(p, wh, 3)
        store.sale(p, wh, 1)
        assert alerts_for(service, company).alerts == []

        q = store.product("EL-8")
        store.inventory(q, wh, 2)
        store.sale(q, wh, 1)
        store.supplier(q, name="Volt Supply", email=None)
        result = alerts_for(service, company)
        assert result.thresholds_used["electronics"] == 2
        assert result.alerts[0].supplier.name == "Volt Supply"
        assert result.alerts[0].supplier.contact_email == "N/A"


class TestWindows:
    """Ambas ventanas son inclusivas: [ahora - N días, ahora]"""

    def test_sale_exactly_30_days_ago_is_recent(self, service, store, company, warehouse):
        p = store.product("EL-1")
        store.inventory(p, warehouse, 0)
        store.sale(p, warehouse, 3, days_ago=30)

        alert = alerts_for(service, company).alerts[0]
        assert alert.recent_quantity_sold == 3
        assert alert.days_until_stockout is None

    def test_sale_31_days_ago_is_not_recent(self, service, store, company, warehouse):
        p = store.product("EL-1")
        store.inventory(p, warehouse, 0)
        store.sale(p, warehouse, 3, days_ago=31)

        result = alerts_for(service, company)
        assert result.alerts == []
        assert result.message == NO_RECENT_SALES_MESSAGE

    def test_velocity_includes_day_7_and_excludes_day_8(self, service, store, company, warehouse):
        """Solo la venta de hace 7 días entra al divisor: 4 unidades en 1 día"""
        p = store.product("EL-1")
        store.inventory(p, warehouse, 10)
        store.sale(p, warehouse, 4, days_ago=7)
        store.sale(p, warehouse, 100, days_ago=8)

        alert = alerts_for(service, company).alerts[0]
        assert alert.recent_quantity_sold == 104
        assert alert.average_daily_sales == 4.0
        assert alert.days_until_stockout == 3


class TestEmptyAndErrors:

    def test_unknown_company(self, service):
        with pytest.raises(CompanyNotFoundError):
            run(service.generate_alerts(AlertFilters(company_id=424242)))
        with pytest.raises(CompanyNotFoundError):
            run(service.generate_summary(424242))

    def test_no_active_warehouses(self, service, store, company):
        store.warehouse(company, is_active=False)
        result = alerts_for(service, company)
        assert result.alerts == []
        assert result.message == NO_WAREHOUSES_MESSAGE
        assert result.company_name == "Acme Retail"

    def test_summary_without_active_warehouses(self, service, store, company):
        closed = store.warehouse(company, "Closed", is_active=False)
        p = store.product("EL-1")
        store.inventory(p, closed, 0)
        store.sale(p, closed, 1)

        result = run(service.generate_summary(company.id))
        assert result.message == NO_WAREHOUSES_MESSAGE
        assert result.summary.total_warehouses == 0
        assert result.summary.low_stock_alerts == 0

    def test_no_recent_sales(self, service, store, company, warehouse):
        p = store.product("EL-1")
        store.inventory(p, warehouse, 0)
        result = alerts_for(service, company)
        assert result.alerts == []
        assert result.message == NO_RECENT_SALES_MESSAGE

        summary = run(service.generate_summary(company.id))
        assert summary.message == NO_RECENT_SALES_MESSAGE
        assert summary.summary.total_warehouses == 1
        assert summary.summary.low_stock_alerts == 0


class _StubUnitOfWork:
    """Reemplaza a UnitOfWork con repositorios armados a mano."""

    def __init__(self, **repos):
        for name, repo in repos.items():
            setattr(self, name, repo)

    @contextmanager
    def read_only(self):
        yield self


class TestFanOut:

    def _settings(self, timeout=5.0, max_alert_limit=1000):
        return SimpleNamespace(
            query_timeout_seconds=timeout,
            max_concurrent_queries=4,
            recent_activity_days=30,
            velocity_window_days=7,
            max_alert_limit=max_alert_limit,
        )

    def test_limit_checked_against_service_settings(self):
        """El límite se valida con la configuración del servicio, antes de cualquier lectura"""
        def no_reads():
            raise AssertionError("no se esperaba ninguna lectura")

        service = LowStockAlertService(uow_factory=no_reads, settings=self._settings(max_alert_limit=5))
        with pytest.raises(AlertValidationError) as exc:
            run(service.generate_alerts(AlertFilters(company_id=1, limit=10)))
        assert exc.value.details == "Limit must be a number between 1 and 5"

    def test_timeout_aborts_request(self):
        def slow_company(company_id):
            time.sleep(0.5)
            return {"id": company_id, "name": "Slow", "low_stock_thresholds": None}

        uow = _StubUnitOfWork(
            companies=SimpleNamespace(get=slow_company),
            warehouses=SimpleNamespace(active_for_company=lambda company_id: []),
        )
        service = LowStockAlertService(uow_factory=lambda: uow, settings=self._settings(timeout=0.05))
        with pytest.raises(AlertQueryTimeoutError):
            run(service.generate_alerts(AlertFilters(company_id=1)))

    def test_failure_cancels_siblings(self):
        finished = threading.Event()

        def slow_warehouses(company_id):
            time.sleep(0.3)
            finished.set()
            return []

        def broken_company(company_id):
            raise RuntimeError("store unavailable")

        uow = _StubUnitOfWork(
            companies=SimpleNamespace(get=broken_company),
            warehouses=SimpleNamespace(active_for_company=slow_warehouses),
        )
        service = LowStockAlertService(uow_factory=lambda: uow, settings=self._settings())
        started = time.monotonic()
        with pytest.raises(RuntimeError, match="store unavailable"):
            run(service.generate_alerts(AlertFilters(company_id=1)))
        # la lectura lenta se abandona en vez de esperarla
        assert time.monotonic() - started < 0.3 or not finished.is_set()
