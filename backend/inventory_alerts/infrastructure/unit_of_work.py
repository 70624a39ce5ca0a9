from contextlib import contextmanager
from sqlalchemy.orm import Session
from ..db import SessionLocal
from .repositories import (
    CompanyRepository, WarehouseRepository, SalesActivityRepository,
    InventoryRepository, ProductSupplierRepository
)

class UnitOfWork:
    def __init__(self, db: Session = None):
        self.db: Session = db if db is not None else SessionLocal()
        self.companies = CompanyRepository(self.db)
        self.warehouses = WarehouseRepository(self.db)
        self.sales = SalesActivityRepository(self.db)
        self.inventory = InventoryRepository(self.db)
        self.product_suppliers = ProductSupplierRepository(self.db)

    def rollback(self): self.db.rollback()
    def close(self): self.db.close()

    @contextmanager
    def read_only(self):
        """Nunca se hace commit; la transacción se revierte al salir."""
        try:
            yield self
        finally:
            self.rollback()
            self.close()
