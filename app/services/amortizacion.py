"""
Amortización por sistema francés (cuota fija).

Cálculo puro: no toca base de datos ni estado.

    cuota = P · r · (1+r)^n / ((1+r)^n − 1)      si r > 0
    cuota = P / n                                 si r = 0

La tasa r se expresa como fracción mensual (0.02 = 2% mensual).
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Union

from dateutil.relativedelta import relativedelta

from app.core.exceptions import ValidationException

Numero = Union[Decimal, int, float, str]

CENTAVO = Decimal("0.01")


def a_decimal(valor: Numero) -> Decimal:
    """Convierte a Decimal sin arrastrar el error binario de los float."""
    if isinstance(valor, Decimal):
        return valor
    return Decimal(str(valor))


def redondear(valor: Numero) -> Decimal:
    """Redondea a centavos (half-up)."""
    return a_decimal(valor).quantize(CENTAVO, rounding=ROUND_HALF_UP)


def calcular_valor_cuota(monto: Numero, numero_cuotas: int, tasa: Numero) -> Decimal:
    """
    Valor constante de la cuota (sin redondear).

    Args:
        monto: Capital a financiar
        numero_cuotas: Número de cuotas (n >= 1)
        tasa: Tasa de interés mensual como fracción (r >= 0)

    Returns:
        Valor de la cuota

    Raises:
        ValidationException: Si algún parámetro es inválido
    """
    monto = a_decimal(monto)
    tasa = a_decimal(tasa)

    if monto <= 0:
        raise ValidationException("El monto a financiar debe ser mayor a cero", field="monto")
    if numero_cuotas < 1:
        raise ValidationException(
            "El número de cuotas debe ser al menos 1", field="numero_cuotas"
        )
    if tasa < 0:
        raise ValidationException("La tasa de interés no puede ser negativa", field="tasa")

    if tasa == 0:
        return monto / numero_cuotas

    factor = (1 + tasa) ** numero_cuotas
    return monto * tasa * factor / (factor - 1)


def sumar_meses(fecha: datetime, meses: int) -> datetime:
    """Suma meses de calendario; el día se ajusta al último del mes si no existe."""
    return fecha + relativedelta(months=meses)


@dataclass
class FilaAmortizacion:
    """Una fila de la tabla de amortización."""

    numero_cuota: int
    fecha_vencimiento: datetime
    valor_cuota: Decimal
    capital: Decimal
    interes: Decimal
    saldo: Decimal

    def to_dict(self) -> dict:
        return {
            "numero_cuota": self.numero_cuota,
            "fecha_vencimiento": self.fecha_vencimiento.isoformat(),
            "valor_cuota": float(self.valor_cuota),
            "capital": float(self.capital),
            "interes": float(self.interes),
            "saldo": float(self.saldo),
        }


def generar_tabla_amortizacion(
    monto: Numero,
    numero_cuotas: int,
    tasa: Numero,
    fecha_inicio: datetime,
) -> List[FilaAmortizacion]:
    """
    Genera la tabla de amortización francesa en centavos.

    Para la cuota i: interés = saldo · r, capital = cuota − interés,
    vencimiento = fecha_inicio + i meses. La última cuota absorbe el
    redondeo: su capital es el saldo restante, de modo que la suma de
    capitales es exactamente el monto y el saldo final es cero.

    Args:
        monto: Capital a financiar
        numero_cuotas: Número de cuotas
        tasa: Tasa mensual como fracción
        fecha_inicio: Fecha desde la que se cuentan los meses

    Returns:
        Lista de filas ordenadas por número de cuota
    """
    monto = redondear(monto)
    tasa = a_decimal(tasa)
    cuota = redondear(calcular_valor_cuota(monto, numero_cuotas, tasa))

    filas: List[FilaAmortizacion] = []
    saldo = monto

    for i in range(1, numero_cuotas + 1):
        interes = redondear(saldo * tasa)

        if i == numero_cuotas:
            capital = saldo
            valor = capital + interes
        else:
            capital = min(cuota - interes, saldo)
            valor = cuota

        saldo = saldo - capital

        filas.append(
            FilaAmortizacion(
                numero_cuota=i,
                fecha_vencimiento=sumar_meses(fecha_inicio, i),
                valor_cuota=valor,
                capital=capital,
                interes=interes,
                saldo=saldo,
            )
        )

    return filas
