"""
Tests del servicio de facturación.
"""
from datetime import datetime
from decimal import Decimal

import pytest

from app.core.exceptions import (
    ImmutableInstallmentsException,
    InvalidTransitionException,
    StateConflictException,
    ValidationException,
)
from app.models.caso_summary import CreateHonorarioRequest
from app.models.enums import EstadoFactura, EstadoHonorario, ModalidadPago, TipoHonorario
from app.models.factura import Factura, Pago
from app.models.factura_summary import (
    CreateFacturaRequest,
    ItemFacturaInput,
    UpdateFacturaRequest,
)
from app.services.casos_service import CasosService
from app.services.facturacion_service import FacturacionService, calcular_totales


def _item(valor, cantidad=1):
    return ItemFacturaInput(descripcion="Servicio", cantidad=cantidad, valor_unitario=Decimal(valor))


def test_calcular_totales_con_iva():
    """Test: IVA 19% sobre el subtotal."""
    subtotal, impuestos, total = calcular_totales([_item("500000", 2)], True, 0.19)

    assert subtotal == Decimal("1000000.00")
    assert impuestos == Decimal("190000.00")
    assert total == Decimal("1190000.00")


def test_calcular_totales_sin_iva():
    subtotal, impuestos, total = calcular_totales([_item("1000")], False, 0.19)

    assert impuestos == Decimal("0")
    assert total == subtotal == Decimal("1000.00")


def test_crear_factura_numeracion(db_session, factura, caso):
    """Test: FAC-AAAA-NNNN consecutivo por año."""
    anio = datetime.utcnow().year
    assert factura.numero == f"FAC-{anio}-0001"
    assert factura.estado == EstadoFactura.GENERADA.value
    assert factura.modalidad_pago == ModalidadPago.CONTADO.value

    otro = CasosService(db_session).crear_honorario(
        caso.id, CreateHonorarioRequest(tipo=TipoHonorario.ASESORIA, valor=Decimal("200000"))
    )
    segunda = FacturacionService(db_session).crear_factura(
        CreateFacturaRequest(honorario_id=otro.id, items=[_item("200000")])
    )
    assert segunda.numero == f"FAC-{anio}-0002"
    assert Decimal(segunda.total) == Decimal("238000.00")


def test_honorario_solo_se_factura_una_vez(db_session, factura, honorario):
    with pytest.raises(StateConflictException):
        FacturacionService(db_session).crear_factura(
            CreateFacturaRequest(honorario_id=honorario.id, items=[_item("1")])
        )


def test_honorarios_disponibles(db_session, factura, caso):
    libre = CasosService(db_session).crear_honorario(
        caso.id, CreateHonorarioRequest(tipo=TipoHonorario.ASESORIA, valor=Decimal("150000"))
    )

    disponibles = FacturacionService(db_session).honorarios_disponibles()

    assert [h.id for h in disponibles] == [libre.id]


def test_transicion_valida_enviada(db_session, factura):
    actualizada = FacturacionService(db_session).actualizar_factura(
        factura.id, UpdateFacturaRequest(estado=EstadoFactura.ENVIADA)
    )

    assert actualizada.estado == EstadoFactura.ENVIADA.value


def test_transicion_invalida(db_session, factura):
    """Test: GENERADA → PAGADA no está permitida."""
    with pytest.raises(InvalidTransitionException):
        FacturacionService(db_session).actualizar_factura(
            factura.id, UpdateFacturaRequest(estado=EstadoFactura.PAGADA)
        )

    db_session.refresh(factura)
    assert factura.estado == EstadoFactura.GENERADA.value


def test_marcar_pagada_marca_honorario(db_session, factura):
    service = FacturacionService(db_session)
    service.actualizar_factura(factura.id, UpdateFacturaRequest(estado=EstadoFactura.ENVIADA))

    service.actualizar_factura(factura.id, UpdateFacturaRequest(estado=EstadoFactura.PAGADA))

    assert factura.honorario.estado == EstadoHonorario.PAGADO.value
    assert factura.honorario.fecha_pago is not None


def test_editar_items_recalcula_totales(db_session, factura):
    actualizada = FacturacionService(db_session).actualizar_factura(
        factura.id,
        UpdateFacturaRequest(items=[_item("400000"), _item("100000")], iva_activado=True),
    )

    assert Decimal(actualizada.subtotal) == Decimal("500000.00")
    assert Decimal(actualizada.impuestos) == Decimal("95000.00")
    assert len(actualizada.items) == 2


def test_editar_items_fuera_de_generada(db_session, factura):
    service = FacturacionService(db_session)
    service.actualizar_factura(factura.id, UpdateFacturaRequest(estado=EstadoFactura.ENVIADA))

    with pytest.raises(StateConflictException):
        service.actualizar_factura(factura.id, UpdateFacturaRequest(items=[_item("1")]))


def test_financiar_desde_actualizacion(db_session, factura):
    """Test: modalidad FINANCIADO genera la tabla de cuotas."""
    actualizada = FacturacionService(db_session).actualizar_factura(
        factura.id,
        UpdateFacturaRequest(
            modalidad_pago=ModalidadPago.FINANCIADO,
            numero_cuotas=4,
            tasa_interes=Decimal("1.5"),
        ),
    )

    assert actualizada.modalidad_pago == ModalidadPago.FINANCIADO.value
    assert len(actualizada.cuotas) == 4
    assert Decimal(actualizada.tasa_interes) == Decimal("1.5")


def test_financiar_sin_numero_de_cuotas(db_session, factura):
    with pytest.raises(ValidationException):
        FacturacionService(db_session).actualizar_factura(
            factura.id, UpdateFacturaRequest(modalidad_pago=ModalidadPago.FINANCIADO)
        )


def test_numero_de_cuotas_inmutable(db_session, factura):
    service = FacturacionService(db_session)
    service.actualizar_factura(
        factura.id,
        UpdateFacturaRequest(modalidad_pago=ModalidadPago.FINANCIADO, numero_cuotas=3),
    )

    with pytest.raises(ImmutableInstallmentsException):
        service.actualizar_factura(
            factura.id,
            UpdateFacturaRequest(modalidad_pago=ModalidadPago.FINANCIADO, numero_cuotas=6),
        )
    with pytest.raises(StateConflictException):
        service.actualizar_factura(
            factura.id, UpdateFacturaRequest(modalidad_pago=ModalidadPago.CONTADO)
        )


def test_eliminar_factura_generada(db_session, factura):
    FacturacionService(db_session).eliminar_factura(factura.id)

    assert db_session.query(Factura).count() == 0


def test_eliminar_factura_enviada_rechazado(db_session, factura):
    service = FacturacionService(db_session)
    service.actualizar_factura(factura.id, UpdateFacturaRequest(estado=EstadoFactura.ENVIADA))

    with pytest.raises(StateConflictException):
        service.eliminar_factura(factura.id)


def test_eliminar_factura_con_pagos_rechazado(db_session, factura):
    factura.pagos.append(
        Pago(valor=Decimal("1000"), metodo_pago="EFECTIVO", fecha=datetime.utcnow())
    )
    db_session.commit()

    with pytest.raises(StateConflictException):
        FacturacionService(db_session).eliminar_factura(factura.id)


def test_reporte_facturacion(db_session, factura):
    service = FacturacionService(db_session)
    service.actualizar_factura(factura.id, UpdateFacturaRequest(estado=EstadoFactura.ENVIADA))
    service.actualizar_factura(factura.id, UpdateFacturaRequest(estado=EstadoFactura.PAGADA))

    reporte = service.reporte_facturacion()

    assert reporte.cantidad_facturas == 1
    assert reporte.total_facturado == pytest.approx(1000000.0)
    assert reporte.total_pagado == pytest.approx(1000000.0)
    assert reporte.porcentaje_pagado == pytest.approx(100.0)
    assert reporte.facturas_por_estado["PAGADA"] == 1


def test_listar_facturas_paginado(db_session, factura):
    facturas, total = FacturacionService(db_session).listar_facturas(
        search=factura.numero, page=1, limit=10
    )

    assert total == 1
    assert facturas[0].id == factura.id
