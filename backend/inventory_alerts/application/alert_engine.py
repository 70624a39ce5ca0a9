"""
Motor de alertas de stock bajo
==============================

Etapas puras del pipeline de alertas. Nada aquí hace I/O; cada función
trabaja sobre filas ya leídas por los repositorios y devuelve valores
nuevos. Los mapas de búsqueda usan tuplas (product_id, warehouse_id) como
clave y viven solo lo que dura la petición que los construyó.

Etapas:
- aggregate_recent_activity: filtro de 30 días, solo estos pares pueden alertar
- estimate_velocity: venta diaria promedio en la ventana de 7 días
- join_inventory_snapshot: filas de inventario de los pares filtrados
- resolve_suppliers: proveedor principal por producto
- build_alerts: comparación con el umbral y días hasta quiebre
- rank_alerts / apply_limit: orden por urgencia
- summarize_alerts: conteos por almacén y por categoría
"""
import math
from datetime import datetime, timedelta
from fractions import Fraction
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .dtos import AlertOut, SupplierOut, AlertSummaryOut, WarehouseAlertCount, CategoryAlertCount
from .thresholds import ThresholdResolver

PairKey = Tuple[int, int]

NO_SUPPLIER = {
    "id": None,
    "name": "No supplier assigned",
    "contact_email": "N/A",
    "contact_phone": "N/A",
}

CRITICAL_RATIO = Fraction(1, 5)


def window_start(now: datetime, days: int) -> datetime:
    return now - timedelta(days=days)


def aggregate_recent_activity(rows: Iterable[Mapping[str, Any]]) -> Dict[PairKey, Dict[str, Any]]:
    """
    Actividad reciente por (producto, almacén).

    Las filas normalmente llegan agrupadas desde la BD; las claves repetidas
    se combinan (suma de cantidad, fecha de venta más reciente). Los pares
    sin cantidad vendida se descartan, así nunca generan alerta.
    """
    activity: Dict[PairKey, Dict[str, Any]] = {}
    for row in rows:
        key = (row["product_id"], row["warehouse_id"])
        sold = int(row.get("total_quantity_sold") or 0)
        last_sale = row.get("last_sale_date")
        if key in activity:
            entry = activity[key]
            entry["total_quantity_sold"] += sold
            if last_sale is not None and (entry["last_sale_date"] is None or last_sale > entry["last_sale_date"]):
                entry["last_sale_date"] = last_sale
        else:
            activity[key] = {"total_quantity_sold": sold, "last_sale_date": last_sale}
    return {key: entry for key, entry in activity.items() if entry["total_quantity_sold"] > 0}


def estimate_velocity(rows: Iterable[Mapping[str, Any]]) -> Dict[PairKey, Fraction]:
    """
    Venta diaria promedio por par: cantidad vendida en la ventana dividida
    entre el número de días distintos con venta (no entre el largo de la
    ventana). Los pares sin ventas en la ventana no aparecen, es decir tasa 0.
    """
    totals: Dict[PairKey, List[int]] = {}
    for row in rows:
        key = (row["product_id"], row["warehouse_id"])
        sold = int(row.get("total_quantity_sold") or 0)
        days = int(row.get("days_with_sales") or 0)
        acc = totals.setdefault(key, [0, 0])
        acc[0] += sold
        acc[1] += days
    return {
        key: Fraction(sold, days)
        for key, (sold, days) in totals.items()
        if sold > 0 and days > 0
    }


def join_inventory_snapshot(
    inventory_rows: Iterable[Mapping[str, Any]],
    eligible_pairs: Iterable[PairKey],
    include_inactive: bool = False
) -> List[Dict[str, Any]]:
    """
    Filas de inventario cuyo par pasó el filtro de actividad reciente.

    Los productos inactivos se omiten salvo include_inactive; los bundles
    se omiten siempre. Gana la primera fila de cada par.
    """
    eligible = set(eligible_pairs)
    seen = set()
    snapshot = []
    for row in inventory_rows:
        key = (row["product_id"], row["warehouse_id"])
        if key not in eligible:
            continue
        if not include_inactive and not row.get("is_active", True):
            continue
        if row.get("is_bundle"):
            continue
        if key in seen:
            continue
        seen.add(key)
        snapshot.append(dict(row))
    return snapshot


def resolve_suppliers(
    product_ids: Iterable[int],
    primary_links: Iterable[Mapping[str, Any]]
) -> Dict[int, Dict[str, Any]]:
    """
    Contacto de proveedor por producto. Los vínculos deben llegar del más
    antiguo al más nuevo; si un producto tiene varios principales se queda
    el primero.
    """
    by_product: Dict[int, Dict[str, Any]] = {}
    for link in primary_links:
        product_id = link["product_id"]
        if product_id in by_product:
            continue
        by_product[product_id] = {
            "id": link.get("supplier_id"),
            "name": link.get("name") or NO_SUPPLIER["name"],
            "contact_email": link.get("contact_email") or "N/A",
            "contact_phone": link.get("phone") or "N/A",
        }
    return {pid: by_product.get(pid, dict(NO_SUPPLIER)) for pid in product_ids}


def available_stock(row: Mapping[str, Any]) -> int:
    """quantity - reserved_quantity, se conservan valores negativos."""
    return int(row.get("quantity") or 0) - int(row.get("reserved_quantity") or 0)


def days_until_stockout(available: int, rate: Optional[Fraction]) -> Optional[int]:
    if not rate or rate <= 0:
        return None
    return math.ceil(Fraction(available) / rate)


def build_alerts(
    snapshot: Iterable[Mapping[str, Any]],
    resolver: ThresholdResolver,
    velocity: Mapping[PairKey, Fraction],
    suppliers: Mapping[int, Mapping[str, Any]],
    recent_activity: Optional[Mapping[PairKey, Mapping[str, Any]]] = None
) -> List[AlertOut]:
    """Una alerta por fila cuyo stock disponible está en o bajo su umbral."""
    recent_activity = recent_activity or {}
    alerts = []
    for row in snapshot:
        key = (row["product_id"], row["warehouse_id"])
        threshold = resolver.resolve(row.get("category"))
        available = available_stock(row)
        if available > threshold:
            continue

        rate = velocity.get(key)
        activity = recent_activity.get(key, {})
        supplier = suppliers.get(row["product_id"], NO_SUPPLIER)
        alerts.append(AlertOut(
            product_id=row["product_id"],
            product_name=row.get("product_name") or "",
            sku=row.get("sku") or "",
            category=row.get("category"),
            warehouse_id=row["warehouse_id"],
            warehouse_name=row.get("warehouse_name") or "",
            warehouse_location=row.get("warehouse_location"),
            warehouse_address=row.get("warehouse_address"),
            current_stock=available,
            total_quantity=int(row.get("quantity") or 0),
            reserved_quantity=int(row.get("reserved_quantity") or 0),
            threshold=threshold,
            average_daily_sales=float(rate) if rate else 0.0,
            days_until_stockout=days_until_stockout(available, rate),
            recent_quantity_sold=int(activity.get("total_quantity_sold") or 0),
            last_sale_date=activity.get("last_sale_date"),
            supplier=SupplierOut(**supplier),
            last_updated=row.get("updated_at"),
        ))
    return alerts


def stock_ratio(alert: AlertOut) -> Fraction:
    """disponible / umbral; con umbral cero se usa el stock disponible tal cual."""
    if alert.threshold == 0:
        return Fraction(alert.current_stock)
    return Fraction(alert.current_stock, alert.threshold)


def urgency_key(alert: AlertOut):
    # Primero horizonte conocido, menos días primero, luego menor ratio de stock
    days = alert.days_until_stockout
    return (days is None, days if days is not None else 0, stock_ratio(alert))


def rank_alerts(alerts: Iterable[AlertOut]) -> List[AlertOut]:
    """Orden estable por urgencia; los empates completos conservan el orden de entrada."""
    return sorted(alerts, key=urgency_key)


def apply_limit(alerts: List[AlertOut], limit: int) -> List[AlertOut]:
    return alerts[:limit]


def is_critical(available: int, threshold: int) -> bool:
    return available == 0 or available <= math.ceil(threshold * CRITICAL_RATIO)


def _category_label(category: Optional[str]) -> str:
    return (category or "").strip().lower() or "uncategorized"


def summarize_alerts(
    snapshot: Iterable[Mapping[str, Any]],
    resolver: ThresholdResolver,
    total_warehouses: int,
    total_products_monitored: int
) -> AlertSummaryOut:
    """
    Cuenta pares con stock bajo y críticos, por nombre de almacén y por
    categoría en minúsculas. Las listas se ordenan por conteo descendente;
    los dicts conservan el orden de inserción, así los empates quedan en
    el orden en que aparecieron.
    """
    low_stock = 0
    critical = 0
    by_warehouse: Dict[str, int] = {}
    by_category: Dict[str, int] = {}

    for row in snapshot:
        threshold = resolver.resolve(row.get("category"))
        available = available_stock(row)
        if available > threshold:
            continue
        low_stock += 1
        if is_critical(available, threshold):
            critical += 1
        warehouse_name = row.get("warehouse_name") or ""
        by_warehouse[warehouse_name] = by_warehouse.get(warehouse_name, 0) + 1
        category = _category_label(row.get("category"))
        by_category[category] = by_category.get(category, 0) + 1

    return AlertSummaryOut(
        total_warehouses=total_warehouses,
        total_products_monitored=total_products_monitored,
        low_stock_alerts=low_stock,
        critical_alerts=critical,
        by_warehouse=[
            WarehouseAlertCount(warehouse_name=name, alert_count=count)
            for name, count in sorted(by_warehouse.items(), key=lambda item: -item[1])
        ],
        by_category=[
            CategoryAlertCount(category=name, alert_count=count)
            for name, count in sorted(by_category.items(), key=lambda item: -item[1])
        ],
    )
