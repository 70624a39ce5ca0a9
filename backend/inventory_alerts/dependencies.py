from typing import Generator
from sqlalchemy.orm import Session

from .db import SessionLocal
from .application.services_alerts import LowStockAlertService


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_alert_service() -> LowStockAlertService:
    """Un servicio nuevo por petición; cada lectura abre su propia sesión."""
    return LowStockAlertService()
