"""
Distribución de un pago entre las cuotas de una factura.

Funciones puras sobre instantáneas de saldo (SaldoCuota): no tocan la
base de datos. El servicio de cartera construye las instantáneas,
elige la estrategia y confirma el resultado en una sola transacción.

Estrategias:
- Automática: vencidas primero, luego por fecha de vencimiento
  ascendente; a cada cuota se le aplica min(restante, saldo).
- Manual: el usuario indica (cuota, valor); se valida todo o nada.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from app.core.exceptions import (
    DistributionMismatchException,
    OverAllocationException,
    ValidationException,
)
from app.services.amortizacion import Numero, a_decimal, redondear

CERO = Decimal("0")
TOLERANCIA_DEFECTO = Decimal("0.01")


def en_centavos(valor: Numero, field: str) -> Decimal:
    """Devuelve el valor como Decimal; rechaza fracciones de centavo."""
    valor = a_decimal(valor)
    if valor != redondear(valor):
        raise ValidationException(
            f"El valor {valor} tiene más de dos decimales", field=field
        )
    return valor


@dataclass(frozen=True)
class SaldoCuota:
    """Instantánea de una cuota con lo que lleva pagado."""

    cuota_id: str
    numero_cuota: int
    valor: Decimal
    valor_pagado: Decimal
    fecha_vencimiento: datetime

    @property
    def saldo(self) -> Decimal:
        saldo = a_decimal(self.valor) - a_decimal(self.valor_pagado)
        return saldo if saldo > 0 else CERO

    def esta_vencida(self, hoy: datetime) -> bool:
        return self.saldo > 0 and self.fecha_vencimiento.date() < hoy.date()


@dataclass(frozen=True)
class Aplicacion:
    """Valor de un pago asignado a una cuota."""

    cuota_id: str
    numero_cuota: int
    valor_aplicado: Decimal


@dataclass
class ResultadoDistribucion:
    aplicaciones: List[Aplicacion] = field(default_factory=list)
    excedente: Decimal = CERO

    @property
    def total_aplicado(self) -> Decimal:
        return sum((a.valor_aplicado for a in self.aplicaciones), CERO)


def ordenar_para_aplicacion(cuotas: Iterable[SaldoCuota], hoy: datetime) -> List[SaldoCuota]:
    """Cuotas con saldo, vencidas primero y luego por fecha de vencimiento."""
    pendientes = [c for c in cuotas if c.saldo > 0]
    return sorted(
        pendientes,
        key=lambda c: (not c.esta_vencida(hoy), c.fecha_vencimiento, c.numero_cuota),
    )


def distribuir_automaticamente(
    monto: Numero,
    cuotas: Sequence[SaldoCuota],
    hoy: Optional[datetime] = None,
) -> ResultadoDistribucion:
    """
    Reparte el monto de forma cronológica priorizando cuotas vencidas.

    Nunca aplica a una cuota más que su saldo. Si el monto supera el
    saldo total, lo que sobra queda en `excedente` sin asignar.

    Args:
        monto: Valor del pago
        cuotas: Instantáneas de las cuotas de la factura
        hoy: Fecha de referencia para determinar vencimiento

    Returns:
        ResultadoDistribucion con las aplicaciones en orden de aplicación
    """
    restante = en_centavos(monto, "valor")
    if restante <= 0:
        raise ValidationException("El valor del pago debe ser mayor a 0", field="valor")

    hoy = hoy or datetime.utcnow()
    resultado = ResultadoDistribucion()

    for cuota in ordenar_para_aplicacion(cuotas, hoy):
        if restante <= 0:
            break
        aplicar = min(restante, cuota.saldo)
        resultado.aplicaciones.append(
            Aplicacion(
                cuota_id=cuota.cuota_id,
                numero_cuota=cuota.numero_cuota,
                valor_aplicado=aplicar,
            )
        )
        restante -= aplicar

    resultado.excedente = restante
    return resultado


def validar_distribucion_manual(
    monto: Numero,
    cuotas: Sequence[SaldoCuota],
    propuesta: Sequence[Tuple[str, Numero]],
    tolerancia: Numero = TOLERANCIA_DEFECTO,
) -> ResultadoDistribucion:
    """
    Valida una distribución manual (cuota_id, valor) y la devuelve normalizada.

    Reglas (cualquier violación rechaza la distribución completa):
    - |Σ valores − monto| <= tolerancia
    - cada cuota existe en la factura y aparece una sola vez
    - cada valor es positivo, en centavos, y no supera el saldo de la cuota

    Lo aplicado nunca supera el pago: un sobrante dentro de la tolerancia se
    descuenta de la última línea y un faltante queda como excedente.

    Raises:
        ValidationException: propuesta vacía, cuota inexistente o repetida, valor no positivo
        DistributionMismatchException: la suma no cuadra con el pago
        OverAllocationException: un valor supera el saldo de su cuota
    """
    monto = en_centavos(monto, "valor")
    tolerancia = a_decimal(tolerancia)

    if monto <= 0:
        raise ValidationException("El valor del pago debe ser mayor a 0", field="valor")
    if not propuesta:
        raise ValidationException(
            "Debe especificar la distribución de cuotas o activar aplicación automática",
            field="distribucion_cuotas",
        )

    valores = [(cuota_id, en_centavos(valor, "valor_aplicado")) for cuota_id, valor in propuesta]

    suma = sum((valor for _, valor in valores), CERO)
    if abs(suma - monto) > tolerancia:
        raise DistributionMismatchException(suma=suma, valor_pago=monto)

    por_id = {c.cuota_id: c for c in cuotas}
    vistas = set()
    resultado = ResultadoDistribucion()

    for cuota_id, valor in valores:
        cuota = por_id.get(cuota_id)
        if cuota is None:
            raise ValidationException(f"Cuota {cuota_id} no encontrada", field="cuota_id")
        if cuota_id in vistas:
            raise ValidationException(
                f"La cuota {cuota.numero_cuota} aparece más de una vez en la distribución",
                field="cuota_id",
            )
        vistas.add(cuota_id)

        if valor <= 0:
            raise ValidationException(
                f"El valor aplicado a la cuota {cuota.numero_cuota} debe ser mayor a 0",
                field="valor_aplicado",
            )
        if valor > cuota.saldo:
            raise OverAllocationException(
                numero_cuota=cuota.numero_cuota, valor=valor, saldo=cuota.saldo
            )

        resultado.aplicaciones.append(
            Aplicacion(cuota_id=cuota_id, numero_cuota=cuota.numero_cuota, valor_aplicado=valor)
        )

    while resultado.total_aplicado > monto:
        sobrante = resultado.total_aplicado - monto
        ultima = resultado.aplicaciones.pop()
        if ultima.valor_aplicado > sobrante:
            resultado.aplicaciones.append(
                Aplicacion(
                    cuota_id=ultima.cuota_id,
                    numero_cuota=ultima.numero_cuota,
                    valor_aplicado=ultima.valor_aplicado - sobrante,
                )
            )

    resultado.excedente = max(monto - resultado.total_aplicado, CERO)
    return resultado
