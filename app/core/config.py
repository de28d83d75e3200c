"""
Configuración del ERP Jurídico.

Un único objeto `Settings` (pydantic-settings) leído de variables de entorno
o de `.env` en la raíz del proyecto. Además de la infraestructura (base de
datos, JWT, logs) guarda las constantes de negocio de facturación y cartera,
para que un despliegue pueda ajustarlas sin tocar código.
"""
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[2]

JWT_SECRET_POR_DEFECTO = "change_this_secret_key_in_production"

_PREFIJOS_BD = ("sqlite:///", "postgresql://", "postgresql+psycopg2://")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_assignment=True,
        extra="ignore",
    )

    # =========================================================
    # APLICACIÓN
    # =========================================================

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    app_name: str = "ERP Jurídico"
    app_version: str = "1.0.0"
    cors_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        description="Orígenes CORS separados por coma",
    )
    init_db_on_startup: bool = Field(
        default=True, description="Crear tablas y sembrar permisos, roles y admin al arrancar"
    )

    # =========================================================
    # BASE DE DATOS
    # =========================================================

    database_url: str = "sqlite:///./runtime/db/erp_juridico.db"
    db_pool_size: int = Field(default=10, ge=1, le=100)
    db_max_overflow: int = Field(default=20, ge=0, le=100)
    db_pool_timeout: int = Field(default=30, ge=1, description="Segundos")

    # =========================================================
    # AUTENTICACIÓN
    # =========================================================

    jwt_secret_key: str = JWT_SECRET_POR_DEFECTO
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = Field(default=480, ge=5, le=1440)

    rate_limit_enabled: bool = True
    rate_limit_per_minute: int = Field(default=60, ge=1, le=1000)
    login_rate_limit: str = Field(default="10/minute", description="Intentos de login por IP")

    rol_administrador: str = Field(
        default="Administrador", description="Rol que recibe todos los permisos"
    )
    admin_email: str = "admin@erp-juridico.co"
    admin_password: str = "Admin12345"

    # =========================================================
    # FACTURACIÓN Y CARTERA
    # =========================================================

    iva_tasa: Decimal = Field(default=Decimal("0.19"), ge=0, le=1)
    dias_vencimiento_factura: int = Field(default=30, ge=1, le=365)
    tolerancia_distribucion: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        le=1,
        description="Diferencia aceptada entre un pago y su distribución manual",
    )
    min_cuotas: int = Field(default=2, ge=1)
    max_cuotas: int = Field(default=60, ge=1, le=360)
    dias_proximo_vencimiento: int = Field(
        default=7, ge=1, description="Ventana en días de cuotas próximas a vencer"
    )

    # =========================================================
    # LOGS
    # =========================================================

    logs_dir: Path = Path("runtime/logs")
    log_file_name: Optional[str] = Field(
        default="erp_juridico.log", description="Vacío para escribir solo en consola"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # =========================================================
    # VALIDACIONES
    # =========================================================

    @field_validator("database_url")
    @classmethod
    def _database_url_soportada(cls, v: str) -> str:
        if not v.startswith(_PREFIJOS_BD):
            raise ValueError(f"database_url debe empezar con {', '.join(_PREFIJOS_BD)}")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _log_level_mayusculas(cls, v):
        return v.upper() if isinstance(v, str) else v

    @model_validator(mode="after")
    def _coherencia(self) -> "Settings":
        if self.environment == "production":
            if self.jwt_secret_key == JWT_SECRET_POR_DEFECTO:
                raise ValueError("JWT_SECRET_KEY debe cambiarse en producción")
            if self.debug:
                raise ValueError("DEBUG debe estar deshabilitado en producción")
        if self.max_cuotas < self.min_cuotas:
            raise ValueError("MAX_CUOTAS debe ser mayor o igual que MIN_CUOTAS")
        return self

    # =========================================================
    # DERIVADOS
    # =========================================================

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def uses_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def cors_origins_list(self) -> list[str]:
        return [origen.strip() for origen in self.cors_origins.split(",") if origen.strip()]

    @property
    def log_file(self) -> Optional[Path]:
        if not self.log_file_name:
            return None
        return self.logs_dir / self.log_file_name


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
