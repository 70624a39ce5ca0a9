import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .db import init_db
from .api.routers import health, alerts
from .api.errors import internal_error_detail
from .infrastructure.logging_config import setup_logging
from .config import settings as app_settings

# Configurar logging al iniciar la aplicación
setup_logging()
logger = logging.getLogger(__name__)

# Inicializar BD (no fallar si aún no hay conexión configurada)
try:
    init_db()
except Exception as e:
    logger.warning("No se pudo inicializar la base de datos: %s", e)

app = FastAPI(
    title="Inventory Alerts",
    version="0.1.0",
    description="Alertas de stock bajo calculadas a partir de inventario, ventas recientes y proveedores",
    docs_url=None if app_settings.is_production else "/docs",
    redoc_url=None if app_settings.is_production else "/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With"],
)

@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    # HSTS solo en producción detrás de HTTPS
    if app_settings.is_production:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    return response

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Error no controlado en %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": internal_error_detail(exc)})

@app.get("/", tags=["root"])
def root():
    return {
        "status": "ok",
        "service": "inventory-alerts",
        "version": "0.1.0",
        "endpoints": {
            "health": "/health",
            "low_stock_alerts": "/api/companies/{company_id}/alerts/low-stock",
            "low_stock_summary": "/api/companies/{company_id}/alerts/low-stock/summary",
        },
    }

app.include_router(health.router)
app.include_router(alerts.router)
