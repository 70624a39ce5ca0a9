"""
Configuración de logging para la aplicación
Crea un archivo de log por día en el directorio configurado
"""
import logging
from logging.handlers import RotatingFileHandler
from datetime import datetime

from ..config import settings


def setup_logging():
    """Configura el sistema de logging con archivos diarios y consola"""

    level = getattr(logging, settings.log_level, logging.INFO)
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Eliminar handlers existentes para evitar duplicados al recargar
    root_logger.handlers.clear()

    log_file = None
    if settings.log_to_file:
        log_dir = settings.log_path
        log_dir.mkdir(parents=True, exist_ok=True)
        today = datetime.now().strftime("%Y-%m-%d")
        log_file = log_dir / f"inventory_alerts_{today}.log"

        # maxBytes=10MB, backupCount=5
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(log_format, date_format))
        root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format, date_format))
    root_logger.addHandler(console_handler)

    logging.getLogger("inventory_alerts").setLevel(level)

    # Logger de SQLAlchemy, solo warnings y errores
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)

    logging.getLogger("uvicorn").setLevel(logging.INFO)

    if log_file:
        logging.info(f"Logging configurado. Archivo: {log_file}")
    else:
        logging.info("Logging configurado. Solo consola")
