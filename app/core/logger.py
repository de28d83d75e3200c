"""
Logging estructurado del ERP Jurídico.

Cada línea es un objeto JSON autocontenido. Los servicios de facturación y
cartera registran con él las operaciones que mueven dinero, de modo que el
archivo de log sirva como rastro de auditoría consultable con `jq`.
"""
import json
import logging
import sys
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from app.core.config import settings

DEFAULT_LOGGER_NAME = "erp.juridico"


def _a_json(valor: Any) -> Any:
    """Convierte los tipos del dominio a algo que `json` sepa escribir."""
    if isinstance(valor, Decimal):
        return str(valor)
    if isinstance(valor, Enum):
        return valor.value
    if isinstance(valor, (datetime, date)):
        return valor.isoformat()
    return str(valor)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        registro = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        registro.update(getattr(record, "campos", {}))

        if record.exc_info:
            registro["exception"] = self.formatException(record.exc_info)

        return json.dumps(registro, ensure_ascii=False, default=_a_json)


def _configurar_handlers(base: logging.Logger, log_file: Optional[Path]) -> None:
    formatter = JsonFormatter()
    base.handlers.clear()

    consola = logging.StreamHandler(sys.stdout)
    consola.setFormatter(formatter)
    base.addHandler(consola)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        archivo = logging.FileHandler(log_file, encoding="utf-8")
        archivo.setFormatter(formatter)
        base.addHandler(archivo)


class StructuredLogger:
    """
    Envoltura sobre `logging.Logger` que emite campos estructurados.

    Los campos conocidos son `entity_id` (id de factura, caso, lead...) y
    `action` (operación de servicio). Cualquier otro kwarg se añade tal cual
    al objeto JSON; los valores None se omiten.

    `bind()` devuelve un logger hijo que comparte los handlers y agrega
    contexto fijo a cada línea, por ejemplo el servicio que la emite.
    """

    def __init__(
        self,
        name: str,
        log_file: Optional[Path] = None,
        level: str = "INFO",
        _contexto: Optional[dict[str, Any]] = None,
    ):
        self.logger = logging.getLogger(name)
        self.contexto: dict[str, Any] = dict(_contexto or {})

        if _contexto is None:
            self.logger.setLevel(logging.getLevelName(level.upper()))
            self.logger.propagate = False
            _configurar_handlers(self.logger, log_file)

    def bind(self, **contexto: Any) -> "StructuredLogger":
        return StructuredLogger(self.logger.name, _contexto={**self.contexto, **contexto})

    def debug(self, message: str, entity_id: Optional[str] = None, action: Optional[str] = None, **extra):
        self._emitir(logging.DEBUG, message, entity_id, action, extra)

    def info(self, message: str, entity_id: Optional[str] = None, action: Optional[str] = None, **extra):
        self._emitir(logging.INFO, message, entity_id, action, extra)

    def warning(self, message: str, entity_id: Optional[str] = None, action: Optional[str] = None, **extra):
        self._emitir(logging.WARNING, message, entity_id, action, extra)

    def error(
        self,
        message: str,
        entity_id: Optional[str] = None,
        action: Optional[str] = None,
        error: Optional[Exception] = None,
        **extra,
    ):
        if error is not None:
            extra.setdefault("error_type", type(error).__name__)
            extra.setdefault("error_message", str(error))
        self._emitir(logging.ERROR, message, entity_id, action, extra)

    def _emitir(
        self,
        level: int,
        message: str,
        entity_id: Optional[str],
        action: Optional[str],
        extra: dict[str, Any],
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return
        campos = {**self.contexto, "entity_id": entity_id, "action": action, **extra}
        campos = {clave: valor for clave, valor in campos.items() if valor is not None}
        self.logger.log(level, message, extra={"campos": campos})


_loggers: dict[str, StructuredLogger] = {}


def get_logger(name: str = DEFAULT_LOGGER_NAME, log_file: Optional[Path] = None) -> StructuredLogger:
    """
    Devuelve el logger estructurado de `name`, creándolo la primera vez.

    Sin `log_file` explícito se usa el archivo y el nivel de la configuración.
    """
    if name not in _loggers:
        _loggers[name] = StructuredLogger(
            name,
            log_file if log_file is not None else settings.log_file,
            level=settings.log_level,
        )
    return _loggers[name]
