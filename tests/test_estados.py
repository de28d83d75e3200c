"""
Tests de las máquinas de estado de facturas y cuotas.
"""
from datetime import datetime
from decimal import Decimal

import pytest

from app.core.exceptions import InvalidTransitionException
from app.models.enums import EstadoCuota, EstadoFactura
from app.services.estados import (
    ESTADOS_FACTURA_TERMINALES,
    derivar_estado_cuota,
    dias_vencido,
    puede_transicionar_cuota,
    puede_transicionar_factura,
    validar_transicion_cuota,
    validar_transicion_factura,
)

HOY = datetime(2024, 6, 15, 10, 30)


@pytest.mark.parametrize(
    "desde, hacia",
    [
        ("GENERADA", "ENVIADA"),
        ("GENERADA", "ANULADA"),
        ("ENVIADA", "PAGADA"),
        ("ENVIADA", "VENCIDA"),
        ("VENCIDA", "PAGADA"),
        ("VENCIDA", "ANULADA"),
    ],
)
def test_transiciones_factura_permitidas(desde, hacia):
    assert puede_transicionar_factura(desde, hacia)
    assert validar_transicion_factura(desde, hacia) == EstadoFactura(hacia)


@pytest.mark.parametrize(
    "desde, hacia",
    [
        ("GENERADA", "PAGADA"),
        ("GENERADA", "VENCIDA"),
        ("PAGADA", "ENVIADA"),
        ("PAGADA", "GENERADA"),
        ("PAGADA", "ANULADA"),
        ("ANULADA", "GENERADA"),
        ("ANULADA", "ENVIADA"),
        ("ANULADA", "PAGADA"),
        ("ANULADA", "VENCIDA"),
        ("ANULADA", "ANULADA"),
        ("VENCIDA", "ENVIADA"),
    ],
)
def test_transiciones_factura_rechazadas(desde, hacia):
    """Test: Un cambio fuera de la tabla lanza INVALID_TRANSITION."""
    with pytest.raises(InvalidTransitionException) as exc:
        validar_transicion_factura(desde, hacia)

    assert exc.value.code == "INVALID_TRANSITION"
    assert exc.value.details == {"entidad": "la factura", "desde": desde, "hacia": hacia}


def test_estados_terminales():
    assert ESTADOS_FACTURA_TERMINALES == {EstadoFactura.PAGADA, EstadoFactura.ANULADA}


def test_transiciones_cuota():
    assert puede_transicionar_cuota("PARCIAL", "PARCIAL")
    assert puede_transicionar_cuota("VENCIDA", "PAGADA")
    assert not puede_transicionar_cuota("PAGADA", "PARCIAL")
    with pytest.raises(InvalidTransitionException):
        validar_transicion_cuota("PARCIAL", "PENDIENTE")


@pytest.mark.parametrize(
    "valor, pagado, vence, esperado",
    [
        ("100", "100", datetime(2024, 6, 1), EstadoCuota.PAGADA),
        ("100", "40", datetime(2024, 6, 1), EstadoCuota.PARCIAL),
        ("100", "0", datetime(2024, 6, 14), EstadoCuota.VENCIDA),
        ("100", "0", datetime(2024, 6, 15), EstadoCuota.PENDIENTE),
        ("100", "0", datetime(2024, 7, 15), EstadoCuota.PENDIENTE),
    ],
)
def test_derivar_estado_cuota(valor, pagado, vence, esperado):
    assert derivar_estado_cuota(Decimal(valor), Decimal(pagado), vence, HOY) == esperado


def test_dias_vencido():
    assert dias_vencido(datetime(2024, 6, 5), HOY) == 10
    assert dias_vencido(datetime(2024, 6, 15, 23, 0), HOY) == 0
    assert dias_vencido(datetime(2024, 7, 1), HOY) == 0
