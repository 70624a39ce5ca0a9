from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Union
from datetime import datetime

class AlertFilters(BaseModel):
    company_id: int = Field(..., gt=0, description="ID de empresa")
    limit: int = Field(100, description="Máximo de alertas devueltas")
    include_inactive: bool = False
    threshold_override: Optional[int] = None  # reemplaza todos los umbrales resueltos

class SupplierOut(BaseModel):
    id: Optional[int] = None
    name: str
    contact_email: str
    contact_phone: str

class AlertOut(BaseModel):
    product_id: int
    product_name: str
    sku: str
    category: Optional[str] = None
    warehouse_id: int
    warehouse_name: str
    warehouse_location: Optional[str] = None
    warehouse_address: Optional[str] = None
    current_stock: int  # disponible = quantity - reserved, puede ser negativo
    total_quantity: int
    reserved_quantity: int
    threshold: int
    average_daily_sales: float = 0.0
    days_until_stockout: Optional[int] = None  # None = sin ventas en la ventana de velocidad
    recent_quantity_sold: int = 0
    last_sale_date: Optional[datetime] = None
    supplier: SupplierOut
    last_updated: Optional[datetime] = None

class FiltersAppliedOut(BaseModel):
    company_id: int
    limit: int
    include_inactive: bool
    threshold_override: Union[int, str] = "none"

class LowStockAlertsOut(BaseModel):
    alerts: List[AlertOut]
    total_alerts: int
    limited_alerts: int
    company_name: str
    thresholds_used: Dict[str, int]
    filters_applied: FiltersAppliedOut
    generated_at: datetime
    message: Optional[str] = None

class WarehouseAlertCount(BaseModel):
    warehouse_name: str
    alert_count: int

class CategoryAlertCount(BaseModel):
    category: str
    alert_count: int

class AlertSummaryOut(BaseModel):
    total_warehouses: int = 0
    total_products_monitored: int = 0
    low_stock_alerts: int = 0
    critical_alerts: int = 0
    by_warehouse: List[WarehouseAlertCount] = []
    by_category: List[CategoryAlertCount] = []

class LowStockSummaryOut(BaseModel):
    summary: AlertSummaryOut
    generated_at: datetime
    message: Optional[str] = None
