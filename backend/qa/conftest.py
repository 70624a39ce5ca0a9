"""
Configuración global de pytest para los tests de alertas de stock bajo

Cada test usa su propia base SQLite en archivo; las filas se cargan con el
ORM mediante el fixture `store`.
"""
import os
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# La configuración se lee al importar, el entorno va primero
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("ENVIRONMENT", "test")

# Agregar backend/ al path para imports
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

from sqlalchemy.orm import sessionmaker

from inventory_alerts.db import build_engine, init_db
from inventory_alerts.domain.models import (
    Company, Warehouse, Product, Inventory, SalesActivity, Supplier, ProductSupplier
)
from inventory_alerts.infrastructure.unit_of_work import UnitOfWork
from inventory_alerts.application.services_alerts import LowStockAlertService

NOW = datetime(2025, 6, 15, 12, 0, 0)


class Store:
    """Carga filas y hace commit de inmediato para que las sesiones de los hilos de trabajo las vean."""

    def __init__(self, session):
        self.db = session

    def _add(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def company(self, name="Acme Retail", thresholds=None):
        return self._add(Company(name=name, low_stock_thresholds=thresholds))

    def warehouse(self, company, name="Main Warehouse", is_active=True, location="Lima", address=None):
        return self._add(Warehouse(
            company_id=company.id, name=name, location=location, address=address, is_active=is_active,
        ))

    def product(self, sku, category="Electronics", name=None, is_bundle=False, is_active=True):
        return self._add(Product(
            sku=sku, name=name or f"Product {sku}", category=category,
            is_bundle=is_bundle, is_active=is_active,
        ))

    def inventory(self, product, warehouse, quantity, reserved=0):
        return self._add(Inventory(
            product_id=product.id, warehouse_id=warehouse.id,
            quantity=quantity, reserved_quantity=reserved,
        ))

    def sale(self, product, warehouse, quantity, days_ago=1, hours=0):
        return self._add(SalesActivity(
            product_id=product.id, warehouse_id=warehouse.id, quantity_sold=quantity,
            sale_date=NOW - timedelta(days=days_ago, hours=hours),
        ))

    def supplier(self, product, name="Global Parts", email="orders@globalparts.test", phone="555-0100", is_primary=True):
        supplier = self._add(Supplier(name=name, contact_email=email, phone=phone))
        self._add(ProductSupplier(
            product_id=product.id, supplier_id=supplier.id, is_primary=is_primary, lead_time_days=5,
        ))
        return supplier


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'alerts.db'}")
    init_db(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
    yield factory
    engine.dispose()


@pytest.fixture
def store(session_factory):
    session = session_factory()
    yield Store(session)
    session.close()


@pytest.fixture
def service(session_factory):
    return LowStockAlertService(
        uow_factory=lambda: UnitOfWork(session_factory()),
        clock=lambda: NOW,
    )
