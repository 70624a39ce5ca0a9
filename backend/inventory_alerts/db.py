import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import settings


def build_engine(database_url: str):
    """Las conexiones SQLite se abren desde hilos de trabajo, no deben quedar atadas a un hilo."""
    if database_url.startswith("sqlite"):
        if database_url.startswith("sqlite:///./"):
            os.makedirs("./data", exist_ok=True)
        return create_engine(
            database_url, echo=False, future=True,
            connect_args={"check_same_thread": False},
        )
    return create_engine(database_url, echo=False, future=True, pool_pre_ping=True)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def _import_all_models():
    """Importa todos los modelos para que Base.metadata los registre."""
    from .domain import models  # noqa: F401 - Company, Warehouse, Product, Inventory, Supplier, ProductSupplier, SalesActivity


def init_db(bind=None):
    """Crear tablas si no existen (arranque normal)."""
    _import_all_models()
    Base.metadata.create_all(bind=bind or engine)
