"""
Errores de dominio del ERP Jurídico.

Cada clase fija su `code`, su `status_code` HTTP y su severidad como
atributos de clase; el manejador global de la API solo tiene que leerlos.
La respuesta JSON tiene siempre la forma `{"error", "error_code", "details"}`.

    400  validación, duplicados y conflictos de estado
    401  autenticación
    403  permisos
    404  entidad inexistente
    500  errores de infraestructura (base de datos)
"""
from enum import Enum
from typing import Any, Dict, Optional, Type


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErpException(Exception):
    code: str = "ERP_ERROR"
    status_code: int = 500
    severity: ErrorSeverity = ErrorSeverity.MEDIUM

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        *,
        code: Optional[str] = None,
        severity: Optional[ErrorSeverity] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})
        self.original_error = original_error
        if code is not None:
            self.code = code
        if severity is not None:
            self.severity = severity

    def to_response(self) -> Dict[str, Any]:
        """Cuerpo JSON que devuelve la API."""
        return {"error": self.message, "error_code": self.code, "details": self.details}

    def to_dict(self) -> Dict[str, Any]:
        """Representación completa, para logs."""
        data = {
            "error_code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "details": self.details,
        }
        if self.original_error is not None:
            data["original_error"] = {
                "type": type(self.original_error).__name__,
                "message": str(self.original_error),
            }
        return data

    def __str__(self) -> str:
        if self.details:
            return f"[{self.code}] {self.message} | {self.details}"
        return f"[{self.code}] {self.message}"


def _con_campo(details: Optional[Dict[str, Any]], field: Optional[str]) -> Dict[str, Any]:
    details = dict(details or {})
    if field:
        details["field"] = field
    return details


# =========================================================
# INFRAESTRUCTURA
# =========================================================


class DatabaseException(ErpException):
    code = "DATABASE_ERROR"
    severity = ErrorSeverity.HIGH


# =========================================================
# ENTIDADES
# =========================================================


class EntityNotFoundException(ErpException):
    code = "NOT_FOUND"
    status_code = 404
    severity = ErrorSeverity.LOW

    def __init__(self, entity: str, entity_id: Any, **kwargs):
        super().__init__(
            f"{entity} no encontrado(a)",
            {"entity": entity, "entity_id": str(entity_id)},
            **kwargs,
        )


class DuplicateEntityException(ErpException):
    """Un valor único (email, documento, nombre de rol...) ya existe."""

    code = "DUPLICATE_ENTITY"
    status_code = 400
    severity = ErrorSeverity.LOW

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, _con_campo(kwargs.pop("details", None), field), **kwargs)


class ValidationException(ErpException):
    code = "VALIDATION_ERROR"
    status_code = 400
    severity = ErrorSeverity.LOW

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, _con_campo(kwargs.pop("details", None), field), **kwargs)


# =========================================================
# AUTENTICACIÓN Y PERMISOS
# =========================================================


class AuthenticationException(ErpException):
    code = "AUTH_ERROR"
    status_code = 401

    def __init__(self, message: str = "No autorizado", **kwargs):
        super().__init__(message, **kwargs)


class InvalidTokenException(AuthenticationException):
    code = "INVALID_TOKEN"

    def __init__(self, reason: str = "Token inválido", **kwargs):
        super().__init__(f"Token inválido: {reason}", details={"reason": reason}, **kwargs)


class TokenExpiredException(AuthenticationException):
    code = "TOKEN_EXPIRED"

    def __init__(self, **kwargs):
        super().__init__("Token expirado", **kwargs)


class InsufficientPermissionsException(ErpException):
    code = "INSUFFICIENT_PERMISSIONS"
    status_code = 403

    def __init__(self, required_permission: str, **kwargs):
        super().__init__(
            f"Permisos insuficientes. Se requiere: {required_permission}",
            {"required_permission": required_permission},
            **kwargs,
        )


# =========================================================
# REGLAS DE NEGOCIO
# =========================================================


class StateConflictException(ErpException):
    """La operación no es compatible con el estado actual de la entidad."""

    code = "STATE_CONFLICT"
    status_code = 400
    severity = ErrorSeverity.LOW


class InvalidTransitionException(StateConflictException):
    code = "INVALID_TRANSITION"

    def __init__(self, entidad: str, desde: str, hacia: str, **kwargs):
        super().__init__(
            f"No se puede cambiar el estado de {entidad} de {desde} a {hacia}",
            {"entidad": entidad, "desde": desde, "hacia": hacia},
            **kwargs,
        )


class OverAllocationException(StateConflictException):
    """Se aplica a una cuota más que su saldo."""

    code = "OVER_ALLOCATION"

    def __init__(self, numero_cuota: int, valor: Any, saldo: Any, **kwargs):
        super().__init__(
            f"El valor aplicado a la cuota {numero_cuota} ({valor}) "
            f"es mayor al saldo disponible ({saldo})",
            {"numero_cuota": numero_cuota, "valor": str(valor), "saldo": str(saldo)},
            **kwargs,
        )


class DistributionMismatchException(StateConflictException):
    """La distribución manual no suma el valor del pago."""

    code = "DISTRIBUTION_MISMATCH"

    def __init__(self, suma: Any, valor_pago: Any, **kwargs):
        super().__init__(
            f"La suma de la distribución ({suma}) "
            f"no coincide con el valor del pago ({valor_pago})",
            {"suma": str(suma), "valor_pago": str(valor_pago)},
            **kwargs,
        )


class ImmutableInstallmentsException(StateConflictException):
    code = "INSTALLMENTS_IMMUTABLE"

    def __init__(self, factura_id: str, **kwargs):
        super().__init__(
            "La factura ya tiene cuotas generadas y su número no puede modificarse",
            {"factura_id": factura_id},
            **kwargs,
        )


def wrap_exception(
    original_error: Exception,
    erp_exception_class: Type[ErpException] = DatabaseException,
    **kwargs,
) -> ErpException:
    """
    Envuelve un error ajeno al dominio en `erp_exception_class`.

    Si ya es una `ErpException` se devuelve sin tocar.
    """
    if isinstance(original_error, ErpException):
        return original_error
    kwargs.setdefault("message", str(original_error))
    return erp_exception_class(original_error=original_error, **kwargs)
