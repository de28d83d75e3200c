"""
Tests del servicio de cartera contra SQLite en memoria.

Cubre financiación, aplicación de pagos (automática y manual),
seguimiento de cuotas y actualización de vencimientos.
"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import (
    DistributionMismatchException,
    EntityNotFoundException,
    ImmutableInstallmentsException,
    OverAllocationException,
    StateConflictException,
    ValidationException,
)
from app.models.cartera_summary import AplicarPagoRequest, DistribucionCuotaInput
from app.models.enums import (
    EstadoCuota,
    EstadoFactura,
    EstadoHonorario,
    FiltroCartera,
    MetodoPago,
)
from app.models.factura import Pago, PagoCuota
from app.services.cartera_service import CarteraService


def _pago_auto(factura_id, valor):
    return AplicarPagoRequest(
        factura_id=factura_id,
        valor=Decimal(valor),
        metodo_pago=MetodoPago.TRANSFERENCIA,
        aplicacion_automatica=True,
    )


def _pago_manual(factura_id, valor, distribucion):
    return AplicarPagoRequest(
        factura_id=factura_id,
        valor=Decimal(valor),
        metodo_pago=MetodoPago.EFECTIVO,
        distribucion_cuotas=[
            DistribucionCuotaInput(cuota_id=cuota_id, valor_aplicado=Decimal(v))
            for cuota_id, v in distribucion
        ],
    )


# =========================================================
# FINANCIACIÓN
# =========================================================


def test_financiar_factura_crea_cuotas(db_session, factura):
    """Test: 1.000.000 en 3 cuotas sin interés."""
    service = CarteraService(db_session)

    financiada = service.financiar_factura(factura.id, 3, Decimal("0"))

    assert financiada.modalidad_pago == "FINANCIADO"
    assert financiada.numero_cuotas == 3
    assert [c.numero_cuota for c in financiada.cuotas] == [1, 2, 3]
    assert sum(Decimal(c.valor) for c in financiada.cuotas) == Decimal("1000000.00")
    assert all(c.estado == EstadoCuota.PENDIENTE.value for c in financiada.cuotas)


def test_financiar_dos_veces_es_inmutable(db_session, factura):
    """Test: Las cuotas se crean una sola vez."""
    service = CarteraService(db_session)
    service.financiar_factura(factura.id, 3, Decimal("0"))

    with pytest.raises(ImmutableInstallmentsException) as exc:
        service.financiar_factura(factura.id, 6, Decimal("0"))

    assert exc.value.code == "INSTALLMENTS_IMMUTABLE"
    db_session.refresh(factura)
    assert len(factura.cuotas) == 3


@pytest.mark.parametrize("numero_cuotas", [1, 61])
def test_financiar_fuera_de_rango(db_session, factura, numero_cuotas):
    with pytest.raises(ValidationException):
        CarteraService(db_session).financiar_factura(factura.id, numero_cuotas, Decimal("0"))


def test_financiar_factura_anulada(db_session, factura):
    factura.estado = EstadoFactura.ANULADA.value
    db_session.commit()

    with pytest.raises(StateConflictException):
        CarteraService(db_session).financiar_factura(factura.id, 3, Decimal("0"))


def test_simular_no_persiste(db_session):
    tabla = CarteraService(db_session).simular_amortizacion(
        Decimal("1000000"), 12, Decimal("2"), datetime(2024, 1, 15)
    )

    assert tabla.valor_cuota == pytest.approx(94559.60)
    assert len(tabla.filas) == 12
    assert tabla.filas[-1].saldo == 0
    assert db_session.query(Pago).count() == 0


# =========================================================
# APLICACIÓN DE PAGOS
# =========================================================


def test_pago_automatico_prioriza_vencidas(db_session, factura_con_cuotas):
    """Test: 500k sobre 300k/300k vencidas y 400k futura."""
    factura = factura_con_cuotas(["300000", "300000", "400000"], [-40, -10, 20])

    respuesta = CarteraService(db_session).aplicar_pago(_pago_auto(factura.id, "500000"))

    assert [(a.numero_cuota, a.valor_aplicado) for a in respuesta.aplicaciones] == [
        (1, 300000.0),
        (2, 200000.0),
    ]
    assert respuesta.excedente == 0
    c1, c2, c3 = factura.cuotas
    assert c1.estado == EstadoCuota.PAGADA.value and c1.fecha_pago is not None
    assert c2.estado == EstadoCuota.PARCIAL.value
    assert Decimal(c2.saldo_cuota) == Decimal("100000")
    assert c3.estado == EstadoCuota.PENDIENTE.value


def test_pago_manual_valido(db_session, factura_con_cuotas):
    factura = factura_con_cuotas(["500000", "500000"], [10, 40])
    c1, c2 = factura.cuotas

    respuesta = CarteraService(db_session).aplicar_pago(
        _pago_manual(factura.id, "300000", [(c2.id, "300000")])
    )

    assert respuesta.aplicaciones[0].numero_cuota == 2
    assert c1.estado == EstadoCuota.PENDIENTE.value
    assert c2.estado == EstadoCuota.PARCIAL.value
    aplicacion = db_session.query(PagoCuota).one()
    assert aplicacion.observaciones == "Aplicación manual"


def test_pago_manual_sobre_saldo_no_deja_rastro(db_session, factura_con_cuotas):
    """Test: Todo o nada. Un rechazo no crea Pago ni PagoCuota."""
    factura = factura_con_cuotas(["300000", "300000"], [-10, 20])
    c1, _ = factura.cuotas

    with pytest.raises(OverAllocationException):
        CarteraService(db_session).aplicar_pago(
            _pago_manual(factura.id, "400000", [(c1.id, "400000")])
        )

    assert db_session.query(Pago).count() == 0
    assert db_session.query(PagoCuota).count() == 0
    db_session.refresh(c1)
    assert Decimal(c1.valor_pagado) == Decimal("0")


def test_pago_manual_suma_incorrecta(db_session, factura_con_cuotas):
    factura = factura_con_cuotas(["300000", "300000"], [-10, 20])
    c1, c2 = factura.cuotas

    with pytest.raises(DistributionMismatchException):
        CarteraService(db_session).aplicar_pago(
            _pago_manual(factura.id, "500000", [(c1.id, "100000"), (c2.id, "100000")])
        )

    assert db_session.query(Pago).count() == 0


def test_pago_sin_distribucion_ni_automatico(db_session, factura_con_cuotas):
    factura = factura_con_cuotas(["300000"], [10])

    with pytest.raises(ValidationException):
        CarteraService(db_session).aplicar_pago(_pago_manual(factura.id, "100", []))


def test_pago_factura_sin_cuotas(db_session, factura):
    with pytest.raises(ValidationException):
        CarteraService(db_session).aplicar_pago(_pago_auto(factura.id, "1000"))


def test_pago_factura_inexistente(db_session):
    with pytest.raises(EntityNotFoundException):
        CarteraService(db_session).aplicar_pago(_pago_auto("no-existe", "1000"))


def test_pago_completo_cierra_factura_enviada(db_session, factura_con_cuotas):
    """Test: Con todas las cuotas pagadas la factura ENVIADA pasa a PAGADA."""
    factura = factura_con_cuotas(["400000", "600000"], [-5, 25])
    factura.estado = EstadoFactura.ENVIADA.value
    db_session.commit()

    respuesta = CarteraService(db_session).aplicar_pago(_pago_auto(factura.id, "1000000"))

    assert respuesta.estado_factura == EstadoFactura.PAGADA
    assert factura.estado == EstadoFactura.PAGADA.value
    assert factura.honorario.estado == EstadoHonorario.PAGADO.value
    assert factura.saldo_pendiente == Decimal("0")


def test_pago_completo_factura_generada_no_salta_a_pagada(db_session, factura_con_cuotas):
    """Test: GENERADA → PAGADA no está en la tabla; cuotas y honorario quedan pagados igual."""
    factura = factura_con_cuotas(["400000", "600000"], [-5, 25])

    respuesta = CarteraService(db_session).aplicar_pago(_pago_auto(factura.id, "1000000"))

    assert respuesta.estado_factura == EstadoFactura.GENERADA
    assert all(c.estado == EstadoCuota.PAGADA.value for c in factura.cuotas)
    assert factura.honorario.estado == EstadoHonorario.PAGADO.value
    assert factura.honorario.fecha_pago is not None


def test_pago_con_excedente(db_session, factura_con_cuotas):
    """Test: El pago se registra completo; el excedente no se asigna."""
    factura = factura_con_cuotas(["300000"], [10])

    respuesta = CarteraService(db_session).aplicar_pago(_pago_auto(factura.id, "350000"))

    assert respuesta.excedente == pytest.approx(50000.0)
    assert respuesta.pago.valor == pytest.approx(350000.0)
    assert Decimal(factura.cuotas[0].valor_pagado) == Decimal("300000")


def test_pago_factura_pagada_rechazado(db_session, factura_con_cuotas):
    factura = factura_con_cuotas(["300000"], [10])
    factura.estado = EstadoFactura.PAGADA.value
    db_session.commit()

    with pytest.raises(StateConflictException):
        CarteraService(db_session).aplicar_pago(_pago_auto(factura.id, "1000"))


def test_saldos_se_recalculan_desde_aplicaciones(db_session, factura_con_cuotas):
    """Test: El valor_pagado cacheado no se usa para distribuir."""
    factura = factura_con_cuotas(["300000", "300000"], [-10, 20])
    c1, _ = factura.cuotas
    c1.valor_pagado = Decimal("300000")
    db_session.commit()

    respuesta = CarteraService(db_session).aplicar_pago(_pago_auto(factura.id, "100000"))

    assert respuesta.aplicaciones[0].numero_cuota == 1
    assert Decimal(c1.valor_pagado) == Decimal("100000")


# =========================================================
# SEGUIMIENTO Y LISTADOS
# =========================================================


def test_seguimiento_resumen_e_historial(db_session, factura_con_cuotas):
    factura = factura_con_cuotas(["300000", "300000", "400000"], [-40, -10, 20])
    service = CarteraService(db_session)
    service.aplicar_pago(_pago_auto(factura.id, "350000"))

    seguimiento = service.obtener_seguimiento(factura.id)

    assert seguimiento.factura.numero == factura.numero
    assert [c.estado for c in seguimiento.cuotas] == [
        EstadoCuota.PAGADA,
        EstadoCuota.PARCIAL,
        EstadoCuota.PENDIENTE,
    ]
    assert seguimiento.resumen.total_pagado == pytest.approx(350000.0)
    assert seguimiento.resumen.saldo_pendiente == pytest.approx(650000.0)
    assert seguimiento.resumen.progreso_pago == pytest.approx(35.0)
    assert len(seguimiento.historial_pagos) == 1
    assert [d.cuota_numero for d in seguimiento.historial_pagos[0].distribucion] == [1, 2]
    assert seguimiento.cuotas[0].pagos_aplicados[0].valor_aplicado == pytest.approx(300000.0)


def test_seguimiento_deriva_vencida_sin_barrido(db_session, factura_con_cuotas):
    """Test: Una cuota sin abonos y con fecha pasada se muestra VENCIDA."""
    factura = factura_con_cuotas(["300000", "300000"], [-10, 20])

    seguimiento = CarteraService(db_session).obtener_seguimiento(factura.id)

    assert seguimiento.cuotas[0].estado == EstadoCuota.VENCIDA
    assert seguimiento.cuotas[0].dias_vencido >= 9
    assert seguimiento.resumen.cuotas_vencidas == 1


def test_listar_cartera_filtros(db_session, factura_con_cuotas):
    factura = factura_con_cuotas(["500000", "500000"], [10, 40])
    service = CarteraService(db_session)

    todas = service.listar_cartera()
    pagadas = service.listar_cartera(estado=FiltroCartera.PAGADAS)
    por_cliente = service.listar_cartera(search="Gómez")

    assert [f.id for f in todas.facturas] == [factura.id]
    assert pagadas.facturas == []
    assert len(por_cliente.facturas) == 1
    assert todas.facturas[0].numero_cuotas == 2


def test_cartera_vencida(db_session, factura):
    factura.fecha_vencimiento = datetime.utcnow() - timedelta(days=15)
    db_session.commit()

    vencidas = CarteraService(db_session).cartera_vencida()

    assert len(vencidas) == 1
    assert vencidas[0].dias_vencimiento >= 14
    assert vencidas[0].saldo_pendiente == pytest.approx(1000000.0)


# =========================================================
# VENCIMIENTOS
# =========================================================


def test_actualizar_vencimientos(db_session, factura_con_cuotas):
    factura = factura_con_cuotas(["300000", "300000"], [-10, 20])
    factura.estado = EstadoFactura.ENVIADA.value
    factura.fecha_vencimiento = datetime.utcnow() - timedelta(days=3)
    db_session.commit()

    resultado = CarteraService(db_session).actualizar_vencimientos()

    assert resultado.cuotas_vencidas == 1
    assert resultado.facturas_vencidas == 1
    assert factura.estado == EstadoFactura.VENCIDA.value
    assert [c.estado for c in factura.cuotas] == ["VENCIDA", "PENDIENTE"]


def test_actualizar_vencimientos_no_toca_generadas(db_session, factura):
    factura.fecha_vencimiento = datetime.utcnow() - timedelta(days=3)
    db_session.commit()

    resultado = CarteraService(db_session).actualizar_vencimientos()

    assert resultado.facturas_vencidas == 0
    assert factura.estado == EstadoFactura.GENERADA.value


def test_pago_sobre_cuota_vencida_la_marca_pagada(db_session, factura_con_cuotas):
    """Test: VENCIDA → PAGADA es una transición válida de cuota."""
    factura = factura_con_cuotas(["300000", "300000"], [-10, 20])
    service = CarteraService(db_session)
    service.actualizar_vencimientos()

    service.aplicar_pago(_pago_auto(factura.id, "300000"))

    assert factura.cuotas[0].estado == EstadoCuota.PAGADA.value


# =========================================================
# SALDOS CON INTERESES Y CENTAVOS
# =========================================================


def test_saldo_financiado_incluye_intereses(db_session, factura):
    """Test: Pagar el capital de una factura financiada al 2% deja los intereses pendientes."""
    service = CarteraService(db_session)
    financiada = service.financiar_factura(factura.id, 3, Decimal("2"))
    assert [Decimal(c.valor) for c in financiada.cuotas] == [
        Decimal("346754.67"),
        Decimal("346754.67"),
        Decimal("346754.68"),
    ]

    service.aplicar_pago(_pago_auto(factura.id, "1000000"))

    assert factura.saldo_pendiente == Decimal("40264.02")
    assert factura.total_aplicado == Decimal("1000000")

    seguimiento = service.obtener_seguimiento(factura.id)
    assert seguimiento.resumen.total_a_pagar == pytest.approx(1040264.02)
    assert seguimiento.resumen.total_pagado == pytest.approx(1000000.0)
    assert seguimiento.resumen.saldo_pendiente == pytest.approx(40264.02)
    assert seguimiento.resumen.progreso_pago < 100

    mas_adelante = datetime.utcnow() + timedelta(days=400)
    vencidas = service.cartera_vencida(hoy=mas_adelante)
    assert [v.factura_id for v in vencidas] == [factura.id]
    assert vencidas[0].saldo_pendiente == pytest.approx(40264.02)

    cartera = service.listar_cartera(estado=FiltroCartera.VENCIDAS, hoy=mas_adelante)
    assert [f.id for f in cartera.facturas] == [factura.id]
    assert cartera.facturas[0].saldo_pendiente == pytest.approx(40264.02)


def test_pago_fraccion_de_centavo_rechazado_sin_rastro(db_session, factura_con_cuotas):
    """Test: Un pago de 0.004 no llega a la base de datos."""
    factura = factura_con_cuotas(["300000"], [10])
    request = AplicarPagoRequest.model_construct(
        factura_id=factura.id,
        valor=Decimal("0.004"),
        metodo_pago=MetodoPago.TRANSFERENCIA,
        referencia=None,
        observaciones=None,
        aplicacion_automatica=True,
        distribucion_cuotas=[],
    )

    with pytest.raises(ValidationException):
        CarteraService(db_session).aplicar_pago(request)

    assert db_session.query(Pago).count() == 0
    assert db_session.query(PagoCuota).count() == 0


def test_request_rechaza_mas_de_dos_decimales():
    with pytest.raises(PydanticValidationError):
        _pago_auto("f-1", "0.004")
    with pytest.raises(PydanticValidationError):
        DistribucionCuotaInput(cuota_id="c-1", valor_aplicado=Decimal("50.005"))


def test_pago_manual_aplicaciones_no_superan_el_pago(db_session, factura_con_cuotas):
    """Test: Σ aplicaciones <= Pago.valor aunque la propuesta sobrepase un centavo."""
    factura = factura_con_cuotas(["100", "100"], [10, 20])
    c1, c2 = factura.cuotas

    respuesta = CarteraService(db_session).aplicar_pago(
        _pago_manual(factura.id, "100.00", [(c1.id, "50.01"), (c2.id, "50.00")])
    )

    pago = db_session.get(Pago, respuesta.pago.id)
    aplicado = sum(Decimal(a.valor_aplicado) for a in pago.aplicaciones)
    assert aplicado == Decimal("100.00")
    assert aplicado <= Decimal(pago.valor)
    assert Decimal(c2.valor_pagado) == Decimal("49.99")


def test_pago_manual_fraccion_de_centavo_rechazado(db_session, factura_con_cuotas):
    """Test: 50.005 / 49.995 no se redondea a 100.01 aplicado."""
    factura = factura_con_cuotas(["100", "100"], [10, 20])
    c1, c2 = factura.cuotas
    request = AplicarPagoRequest.model_construct(
        factura_id=factura.id,
        valor=Decimal("100.00"),
        metodo_pago=MetodoPago.EFECTIVO,
        referencia=None,
        observaciones=None,
        aplicacion_automatica=False,
        distribucion_cuotas=[
            DistribucionCuotaInput.model_construct(cuota_id=c1.id, valor_aplicado=Decimal("50.005")),
            DistribucionCuotaInput.model_construct(cuota_id=c2.id, valor_aplicado=Decimal("49.995")),
        ],
    )

    with pytest.raises(ValidationException):
        CarteraService(db_session).aplicar_pago(request)

    assert db_session.query(PagoCuota).count() == 0
