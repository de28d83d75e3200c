"""
Máquinas de estado de facturas y cuotas.

Las transiciones se validan contra una tabla de adyacencia fija antes
de cada actualización. Una transición inválida se rechaza, nunca se
reintenta.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, FrozenSet, Optional

from app.core.exceptions import InvalidTransitionException
from app.models.enums import EstadoCuota, EstadoFactura


# =========================================================
# TABLAS DE ADYACENCIA
# =========================================================

TRANSICIONES_FACTURA: Dict[EstadoFactura, FrozenSet[EstadoFactura]] = {
    EstadoFactura.GENERADA: frozenset({EstadoFactura.ENVIADA, EstadoFactura.ANULADA}),
    EstadoFactura.ENVIADA: frozenset(
        {EstadoFactura.PAGADA, EstadoFactura.VENCIDA, EstadoFactura.ANULADA}
    ),
    EstadoFactura.VENCIDA: frozenset({EstadoFactura.PAGADA, EstadoFactura.ANULADA}),
    EstadoFactura.PAGADA: frozenset(),
    EstadoFactura.ANULADA: frozenset(),
}

# Las cuotas admiten permanecer en el mismo estado (p. ej. PARCIAL -> PARCIAL
# tras un segundo abono que no la completa).
TRANSICIONES_CUOTA: Dict[EstadoCuota, FrozenSet[EstadoCuota]] = {
    EstadoCuota.PENDIENTE: frozenset(
        {EstadoCuota.PENDIENTE, EstadoCuota.PARCIAL, EstadoCuota.PAGADA, EstadoCuota.VENCIDA}
    ),
    EstadoCuota.VENCIDA: frozenset(
        {EstadoCuota.VENCIDA, EstadoCuota.PARCIAL, EstadoCuota.PAGADA}
    ),
    EstadoCuota.PARCIAL: frozenset({EstadoCuota.PARCIAL, EstadoCuota.PAGADA}),
    EstadoCuota.PAGADA: frozenset({EstadoCuota.PAGADA}),
}

ESTADOS_FACTURA_TERMINALES = frozenset(
    estado for estado, destinos in TRANSICIONES_FACTURA.items() if not destinos
)


# =========================================================
# FACTURAS
# =========================================================

def puede_transicionar_factura(desde: str, hacia: str) -> bool:
    return EstadoFactura(hacia) in TRANSICIONES_FACTURA[EstadoFactura(desde)]


def validar_transicion_factura(desde: str, hacia: str) -> EstadoFactura:
    """
    Valida el cambio de estado de una factura.

    Raises:
        InvalidTransitionException: si la tabla no permite el cambio
    """
    if not puede_transicionar_factura(desde, hacia):
        raise InvalidTransitionException(
            "la factura", desde=EstadoFactura(desde).value, hacia=EstadoFactura(hacia).value
        )
    return EstadoFactura(hacia)


# =========================================================
# CUOTAS
# =========================================================

def puede_transicionar_cuota(desde: str, hacia: str) -> bool:
    return EstadoCuota(hacia) in TRANSICIONES_CUOTA[EstadoCuota(desde)]


def validar_transicion_cuota(desde: str, hacia: str) -> EstadoCuota:
    if not puede_transicionar_cuota(desde, hacia):
        raise InvalidTransitionException(
            "la cuota", desde=EstadoCuota(desde).value, hacia=EstadoCuota(hacia).value
        )
    return EstadoCuota(hacia)


def derivar_estado_cuota(
    valor: Decimal,
    valor_pagado: Decimal,
    fecha_vencimiento: datetime,
    hoy: Optional[datetime] = None,
) -> EstadoCuota:
    """
    Estado de una cuota a partir de lo pagado y su vencimiento.

    PAGADA si cubre el valor, PARCIAL si tiene abonos, VENCIDA si pasó
    la fecha sin abonos, PENDIENTE en otro caso.
    """
    hoy = hoy or datetime.utcnow()
    if valor_pagado >= valor:
        return EstadoCuota.PAGADA
    if valor_pagado > 0:
        return EstadoCuota.PARCIAL
    if fecha_vencimiento.date() < hoy.date():
        return EstadoCuota.VENCIDA
    return EstadoCuota.PENDIENTE


def dias_vencido(fecha_vencimiento: datetime, hoy: Optional[datetime] = None) -> int:
    """Días transcurridos desde el vencimiento (0 si aún no vence)."""
    hoy = hoy or datetime.utcnow()
    dias = (hoy.date() - fecha_vencimiento.date()).days
    return dias if dias > 0 else 0
