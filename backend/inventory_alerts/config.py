from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field, model_validator, field_validator

BASE_DIR = Path(__file__).resolve().parent.parent  # backend/

class Settings(BaseSettings):
    # ===== ENTORNO =====
    environment: str = Field(default="development", env="ENVIRONMENT")
    debug: bool = Field(default=False, env="DEBUG")

    # ===== BASE DE DATOS =====
    database_url: str = Field(default="sqlite:///./data/inventory_alerts.db", env="DATABASE_URL")

    # ===== CORS =====
    allowed_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        env="ALLOWED_ORIGINS"
    )

    # ===== VENTANAS DE ALERTA =====
    recent_activity_days: int = Field(default=30, env="RECENT_ACTIVITY_DAYS")
    velocity_window_days: int = Field(default=7, env="VELOCITY_WINDOW_DAYS")

    # ===== LÍMITES =====
    default_alert_limit: int = Field(default=100, env="DEFAULT_ALERT_LIMIT")
    max_alert_limit: int = Field(default=1000, env="MAX_ALERT_LIMIT")

    # ===== CONCURRENCIA DE CONSULTAS =====
    query_timeout_seconds: float = Field(default=10.0, env="QUERY_TIMEOUT_SECONDS")
    max_concurrent_queries: int = Field(default=4, env="MAX_CONCURRENT_QUERIES")

    # ===== LOGGING =====
    log_dir: str = Field(default="logs", env="LOG_DIR")
    log_to_file: bool = Field(default=True, env="LOG_TO_FILE")
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    class Config:
        env_file = ".env"
        case_sensitive = False

    @field_validator(
        "recent_activity_days",
        "velocity_window_days",
        "default_alert_limit",
        "max_alert_limit",
        "max_concurrent_queries",
        mode="after",
    )
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("log_level", mode="after")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.strip().upper() or "INFO"

    @model_validator(mode="after")
    def validate_windows(self):
        if self.velocity_window_days > self.recent_activity_days:
            raise ValueError("VELOCITY_WINDOW_DAYS cannot exceed RECENT_ACTIVITY_DAYS.")
        if self.default_alert_limit > self.max_alert_limit:
            raise ValueError("DEFAULT_ALERT_LIMIT cannot exceed MAX_ALERT_LIMIT.")
        if self.query_timeout_seconds <= 0:
            raise ValueError("QUERY_TIMEOUT_SECONDS must be greater than zero.")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def log_path(self) -> Path:
        """Los directorios de log relativos se resuelven contra backend/."""
        path = Path(self.log_dir)
        return path if path.is_absolute() else BASE_DIR / path


settings = Settings()
