from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import logging

from ...config import settings
from ...dependencies import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

@router.get("/ready")
def ready():
    return {"status": "ok"}

@router.get("")
def health(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError as e:
        logger.warning("Falló la verificación de base de datos: %s", e)
        database = "disconnected"
    return {
        "status": "ok" if database == "connected" else "degraded",
        "service": "inventory-alerts",
        "version": "0.1.0",
        "environment": settings.environment,
        "database": database,
    }
