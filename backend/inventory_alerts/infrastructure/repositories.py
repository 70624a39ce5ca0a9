"""
Repositorios de solo lectura usados por el motor de alertas.
Ninguno agrega, hace flush ni commit.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple
from sqlalchemy import func, distinct
from sqlalchemy.orm import Session

from ..domain.exceptions import IdentifierCastError
from ..domain.models import Company, Warehouse, Product, Inventory, SalesActivity, Supplier, ProductSupplier


def as_ids(values: Iterable[Any], label: str = "id") -> List[int]:
    """Convierte ids a int antes de llegar a una consulta; rechaza bools y valores no numéricos."""
    ids = []
    for value in values:
        if isinstance(value, bool):
            raise IdentifierCastError(f"{label} {value!r} is not a valid identifier")
        try:
            ids.append(int(value))
        except (TypeError, ValueError):
            raise IdentifierCastError(f"{label} {value!r} is not a valid identifier")
    return ids


class CompanyRepository:
    def __init__(self, db: Session): self.db = db
    def get(self, company_id: int) -> Optional[Dict[str, Any]]:
        (company_id,) = as_ids([company_id], "company_id")
        c = self.db.get(Company, company_id)
        if c is None:
            return None
        return {"id": c.id, "name": c.name, "low_stock_thresholds": c.low_stock_thresholds}


class WarehouseRepository:
    def __init__(self, db: Session): self.db = db
    def active_for_company(self, company_id: int) -> List[Dict[str, Any]]:
        (company_id,) = as_ids([company_id], "company_id")
        rows = (
            self.db.query(Warehouse.id, Warehouse.name)
            .filter(Warehouse.company_id == company_id, Warehouse.is_active == True)  # noqa: E712
            .order_by(Warehouse.id)
            .all()
        )
        return [{"id": r.id, "name": r.name} for r in rows]


class SalesActivityRepository:
    def __init__(self, db: Session): self.db = db

    def aggregate_by_pair(
        self,
        warehouse_ids: Iterable[Any],
        since: datetime,
        until: datetime
    ) -> List[Dict[str, Any]]:
        """
        Agrupa las ventas de [since, until] por (producto, almacén).

        Por grupo:
        - total_quantity_sold (suma)
        - last_sale_date (máximo)
        - days_with_sales (días calendario distintos)
        """
        warehouse_ids = as_ids(warehouse_ids, "warehouse_id")
        if not warehouse_ids:
            return []
        rows = (
            self.db.query(
                SalesActivity.product_id.label("product_id"),
                SalesActivity.warehouse_id.label("warehouse_id"),
                func.sum(SalesActivity.quantity_sold).label("total_quantity_sold"),
                func.max(SalesActivity.sale_date).label("last_sale_date"),
                func.count(distinct(func.date(SalesActivity.sale_date))).label("days_with_sales"),
            )
            .filter(
                SalesActivity.warehouse_id.in_(warehouse_ids),
                SalesActivity.sale_date >= since,
                SalesActivity.sale_date <= until,
            )
            .group_by(SalesActivity.product_id, SalesActivity.warehouse_id)
            .order_by(SalesActivity.product_id, SalesActivity.warehouse_id)
            .all()
        )
        return [
            {
                "product_id": r.product_id,
                "warehouse_id": r.warehouse_id,
                "total_quantity_sold": int(r.total_quantity_sold or 0),
                "last_sale_date": r.last_sale_date,
                "days_with_sales": int(r.days_with_sales or 0),
            }
            for r in rows
        ]


class InventoryRepository:
    def __init__(self, db: Session): self.db = db

    def for_pairs(self, pairs: Iterable[Tuple[Any, Any]]) -> List[Dict[str, Any]]:
        """
        Filas de inventario para los pares (product_id, warehouse_id) dados,
        con datos de producto y almacén. Ordenadas por id de inventario.
        """
        wanted = set()
        for product_id, warehouse_id in pairs:
            (product_id,) = as_ids([product_id], "product_id")
            (warehouse_id,) = as_ids([warehouse_id], "warehouse_id")
            wanted.add((product_id, warehouse_id))
        if not wanted:
            return []

        # IN por columna, los pares exactos se filtran abajo
        rows = (
            self.db.query(
                Inventory.id.label("inventory_id"),
                Inventory.product_id,
                Inventory.warehouse_id,
                Inventory.quantity,
                Inventory.reserved_quantity,
                Inventory.updated_at,
                Product.name.label("product_name"),
                Product.sku,
                Product.category,
                Product.is_bundle,
                Product.is_active,
                Warehouse.name.label("warehouse_name"),
                Warehouse.location.label("warehouse_location"),
                Warehouse.address.label("warehouse_address"),
            )
            .join(Product, Product.id == Inventory.product_id)
            .join(Warehouse, Warehouse.id == Inventory.warehouse_id)
            .filter(
                Inventory.product_id.in_({p for p, _ in wanted}),
                Inventory.warehouse_id.in_({w for _, w in wanted}),
            )
            .order_by(Inventory.id)
            .all()
        )
        return [
            {
                "inventory_id": r.inventory_id,
                "product_id": r.product_id,
                "warehouse_id": r.warehouse_id,
                "quantity": r.quantity or 0,
                "reserved_quantity": r.reserved_quantity or 0,
                "updated_at": r.updated_at,
                "product_name": r.product_name,
                "sku": r.sku,
                "category": r.category,
                "is_bundle": bool(r.is_bundle),
                "is_active": bool(r.is_active),
                "warehouse_name": r.warehouse_name,
                "warehouse_location": r.warehouse_location,
                "warehouse_address": r.warehouse_address,
            }
            for r in rows
            if (r.product_id, r.warehouse_id) in wanted
        ]


class ProductSupplierRepository:
    def __init__(self, db: Session): self.db = db

    def primary_for_products(self, product_ids: Iterable[Any]) -> List[Dict[str, Any]]:
        """Vínculos de proveedor principal de los productos, el más antiguo primero."""
        product_ids = as_ids(product_ids, "product_id")
        if not product_ids:
            return []
        rows = (
            self.db.query(
                ProductSupplier.id.label("link_id"),
                ProductSupplier.product_id,
                Supplier.id.label("supplier_id"),
                Supplier.name,
                Supplier.contact_email,
                Supplier.phone,
            )
            .join(Supplier, Supplier.id == ProductSupplier.supplier_id)
            .filter(
                ProductSupplier.product_id.in_(product_ids),
                ProductSupplier.is_primary == True,  # noqa: E712
            )
            .order_by(ProductSupplier.product_id, ProductSupplier.id)
            .all()
        )
        return [
            {
                "link_id": r.link_id,
                "product_id": r.product_id,
                "supplier_id": r.supplier_id,
                "name": r.name,
                "contact_email": r.contact_email,
                "phone": r.phone,
            }
            for r in rows
        ]
