"""
Tests del motor de amortización francesa.
"""
from datetime import datetime
from decimal import Decimal

import pytest

from app.core.exceptions import ValidationException
from app.services.amortizacion import (
    calcular_valor_cuota,
    generar_tabla_amortizacion,
    redondear,
    sumar_meses,
)


def test_cuota_sin_interes_reparte_en_partes_iguales():
    """Test: Con tasa 0 la cuota es monto / n."""
    assert calcular_valor_cuota(Decimal("1200"), 12, 0) == Decimal("100")


def test_cuota_con_interes_formula_francesa():
    """Test: 1.000.000 a 12 meses al 2% mensual."""
    cuota = calcular_valor_cuota(Decimal("1000000"), 12, Decimal("0.02"))

    assert redondear(cuota) == Decimal("94559.60")


@pytest.mark.parametrize(
    "monto, n, tasa",
    [
        (Decimal("0"), 12, Decimal("0.02")),
        (Decimal("-100"), 12, Decimal("0.02")),
        (Decimal("1000"), 0, Decimal("0.02")),
        (Decimal("1000"), 12, Decimal("-0.01")),
    ],
)
def test_parametros_invalidos(monto, n, tasa):
    """Test: Monto no positivo, n < 1 o tasa negativa se rechazan."""
    with pytest.raises(ValidationException):
        calcular_valor_cuota(monto, n, tasa)


@pytest.mark.parametrize(
    "monto, n, tasa",
    [
        (Decimal("1000000"), 12, Decimal("0.02")),
        (Decimal("1000000"), 3, Decimal("0.02")),
        (Decimal("2500000"), 36, Decimal("0.015")),
        (Decimal("750000.50"), 24, Decimal("0.0325")),
        (Decimal("100"), 1, Decimal("0.05")),
        (Decimal("85000000"), 60, Decimal("0.009")),
    ],
)
def test_cuota_descontada_recupera_el_capital(monto, n, tasa):
    """Test: cuota · ((1+r)^n − 1) / (r · (1+r)^n) = monto."""
    factor = (1 + tasa) ** n
    anualidad = (factor - 1) / (tasa * factor)

    cuota = calcular_valor_cuota(monto, n, tasa)
    assert abs(cuota * anualidad - monto) < Decimal("0.000001")

    # Al centavo, el error acumulado no pasa de medio centavo por cuota
    assert abs(redondear(cuota) * anualidad - monto) <= Decimal("0.005") * n


@pytest.mark.parametrize(
    "monto, n, esperado",
    [
        (Decimal("1200"), 12, Decimal("100")),
        (Decimal("1000"), 4, Decimal("250")),
        (Decimal("999.99"), 3, Decimal("333.33")),
        (Decimal("1000000"), 8, Decimal("125000")),
    ],
)
def test_cuota_sin_interes_es_exacta(monto, n, esperado):
    assert calcular_valor_cuota(monto, n, 0) == esperado
    assert calcular_valor_cuota(monto, n, 0) * n == monto


def test_tabla_capital_suma_el_monto_y_saldo_final_cero():
    """Test: La última fila absorbe el redondeo."""
    filas = generar_tabla_amortizacion(
        Decimal("1000000"), 12, Decimal("0.02"), datetime(2024, 1, 15)
    )

    assert len(filas) == 12
    assert sum(f.capital for f in filas) == Decimal("1000000.00")
    assert filas[-1].saldo == Decimal("0")
    assert [f.numero_cuota for f in filas] == list(range(1, 13))


def test_tabla_primera_fila_interes_sobre_monto():
    """Test: Interés de la cuota 1 = monto · tasa."""
    filas = generar_tabla_amortizacion(
        Decimal("1000000"), 12, Decimal("0.02"), datetime(2024, 1, 15)
    )

    primera = filas[0]
    assert primera.interes == Decimal("20000.00")
    assert primera.valor_cuota == Decimal("94559.60")
    assert primera.capital == Decimal("74559.60")
    assert primera.saldo == Decimal("925440.40")


def test_tabla_sin_interes_redondeo_en_ultima_cuota():
    """Test: 1.000.000 en 3 cuotas sin interés."""
    filas = generar_tabla_amortizacion(Decimal("1000000"), 3, 0, datetime(2024, 1, 1))

    assert [f.valor_cuota for f in filas] == [
        Decimal("333333.33"),
        Decimal("333333.33"),
        Decimal("333333.34"),
    ]
    assert all(f.interes == Decimal("0.00") for f in filas)
    assert filas[-1].saldo == Decimal("0")


def test_vencimientos_mensuales():
    """Test: Cuota i vence i meses después de la fecha de inicio."""
    filas = generar_tabla_amortizacion(Decimal("600"), 3, 0, datetime(2024, 3, 10))

    assert [f.fecha_vencimiento for f in filas] == [
        datetime(2024, 4, 10),
        datetime(2024, 5, 10),
        datetime(2024, 6, 10),
    ]


def test_sumar_meses_ajusta_fin_de_mes():
    """Test: 31 de enero + 1 mes = último día de febrero."""
    assert sumar_meses(datetime(2024, 1, 31), 1) == datetime(2024, 2, 29)
    assert sumar_meses(datetime(2023, 1, 31), 1) == datetime(2023, 2, 28)


def test_redondear_half_up():
    """Test: Redondeo a centavos half-up."""
    assert redondear("0.005") == Decimal("0.01")
    assert redondear(2.675) == Decimal("2.68")
