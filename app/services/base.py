"""
Servicio base del ERP.

Todos los servicios de dominio reciben la sesión SQLAlchemy de la petición
y comparten aquí el registro estructurado y la frontera transaccional: una
operación confirma todo o no deja rastro.
"""
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import DatabaseException, ErpException, wrap_exception
from app.core.logger import StructuredLogger, get_logger


class BaseService:
    def __init__(self, db: Session, logger: Optional[StructuredLogger] = None):
        self.db = db
        self.logger = (logger or get_logger()).bind(servicio=type(self).__name__)

    # =========================================================
    # LOGGING
    # =========================================================

    def _log_info(self, message: str, **campos):
        self.logger.info(message, **campos)

    def _log_warning(self, message: str, **campos):
        self.logger.warning(message, **campos)

    def _log_error(self, message: str, error: Optional[Exception] = None, **campos):
        self.logger.error(message, error=error, **campos)

    # =========================================================
    # TRANSACCIONES
    # =========================================================

    @contextmanager
    def _transaccion(self, operacion: str, entity_id: Optional[str] = None) -> Iterator[None]:
        """
        Ejecuta el bloque y deshace la sesión si algo falla.

        El error sale convertido por `_handle_exception`. No confirma: el
        llamador decide cuándo hacer `_commit`.
        """
        try:
            yield
        except Exception as e:
            self.db.rollback()
            raise self._handle_exception(e, operacion, entity_id=entity_id)

    def _commit(self, operacion: str, entity_id: Optional[str] = None) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._handle_exception(e, operacion, entity_id=entity_id)

    def _handle_exception(
        self, error: Exception, operacion: str, entity_id: Optional[str] = None
    ) -> ErpException:
        """
        Normaliza un error de servicio a `ErpException`.

        Las excepciones de dominio pasan intactas con un WARNING; cualquier
        otra se registra como ERROR y se envuelve en `DatabaseException`.
        """
        if isinstance(error, ErpException):
            self._log_warning(
                f"Operación rechazada: {operacion}",
                entity_id=entity_id,
                action=operacion,
                error_code=error.code,
                error_message=error.message,
            )
            return error

        self._log_error(
            f"Error inesperado en {operacion}",
            error=error,
            entity_id=entity_id,
            action=operacion,
        )
        return wrap_exception(
            error,
            DatabaseException,
            message=f"Error interno en {operacion}",
            details={"context": operacion},
        )
