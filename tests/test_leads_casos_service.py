"""
Tests de reglas de negocio de leads y casos.
"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app.core.exceptions import (
    DuplicateEntityException,
    StateConflictException,
    ValidationException,
)
from app.models.caso_summary import CreateCasoRequest, UpdateCasoRequest
from app.models.enums import (
    EstadoCaso,
    EstadoLead,
    Prioridad,
    TipoInsolvencia,
    TipoPersona,
    TipoSeguimiento,
)
from app.models.lead_summary import (
    CreateLeadRequest,
    CreateSeguimientoRequest,
    UpdateLeadRequest,
)
from app.services.casos_service import (
    CasosService,
    calcular_prioridad,
    validar_valor_deuda,
)
from app.services.leads_service import (
    LeadsService,
    validar_documento_colombia,
    validar_telefono_colombia,
)

HOY = datetime(2024, 6, 15)


# =========================================================
# CASOS - REGLAS PURAS
# =========================================================


@pytest.mark.parametrize(
    "valor, dias, tipo, esperada",
    [
        ("1500000000", 0, TipoInsolvencia.REORGANIZACION, Prioridad.CRITICA),
        ("600000000", 0, TipoInsolvencia.REORGANIZACION, Prioridad.ALTA),
        ("10000000", 120, TipoInsolvencia.INSOLVENCIA_PERSONA_NATURAL, Prioridad.ALTA),
        ("200000000", 0, TipoInsolvencia.LIQUIDACION_JUDICIAL, Prioridad.ALTA),
        ("10000000", 45, TipoInsolvencia.INSOLVENCIA_PERSONA_NATURAL, Prioridad.MEDIA),
        ("10000000", 5, TipoInsolvencia.INSOLVENCIA_PERSONA_NATURAL, Prioridad.BAJA),
    ],
)
def test_calcular_prioridad(valor, dias, tipo, esperada):
    inicio = HOY - timedelta(days=dias)
    assert calcular_prioridad(Decimal(valor), inicio, tipo, HOY) == esperada


def test_validar_valor_deuda():
    assert validar_valor_deuda(Decimal("5000000000"), TipoInsolvencia.INSOLVENCIA_PERSONA_NATURAL)
    assert not validar_valor_deuda(
        Decimal("5000000001"), TipoInsolvencia.INSOLVENCIA_PERSONA_NATURAL
    )
    assert not validar_valor_deuda(Decimal("99999999"), TipoInsolvencia.REORGANIZACION)
    assert validar_valor_deuda(Decimal("100000000"), TipoInsolvencia.LIQUIDACION_JUDICIAL)
    assert validar_valor_deuda(Decimal("1"), TipoInsolvencia.ACUERDO_REORGANIZACION)


# =========================================================
# CASOS - SERVICIO
# =========================================================


def test_crear_caso_numerado_y_prioridad_calculada(caso, admin):
    assert caso.numero_caso == f"CASO-{datetime.utcnow().year}-0001"
    assert caso.prioridad == Prioridad.BAJA.value
    assert caso.estado == EstadoCaso.ACTIVO.value
    assert caso.responsable_id == admin.id


def test_crear_caso_deuda_fuera_de_rango(db_session, cliente):
    with pytest.raises(ValidationException):
        CasosService(db_session).crear_caso(
            CreateCasoRequest(
                tipo_insolvencia=TipoInsolvencia.REORGANIZACION,
                valor_deuda=Decimal("1000000"),
                cliente_id=cliente.id,
            )
        )


def test_cerrar_y_reactivar_caso(db_session, caso):
    service = CasosService(db_session)

    cerrado = service.actualizar_caso(caso.id, UpdateCasoRequest(estado=EstadoCaso.CERRADO))
    assert cerrado.fecha_cierre is not None

    activo = service.actualizar_caso(caso.id, UpdateCasoRequest(estado=EstadoCaso.ACTIVO))
    assert activo.fecha_cierre is None


def test_eliminar_caso_con_honorarios(db_session, honorario):
    with pytest.raises(StateConflictException):
        CasosService(db_session).eliminar_caso(honorario.caso_id)


# =========================================================
# LEADS
# =========================================================


@pytest.mark.parametrize(
    "documento, tipo, valido",
    [
        ("1020304050", TipoPersona.NATURAL, True),
        ("123456", TipoPersona.NATURAL, False),
        ("900123456", TipoPersona.JURIDICA, True),
        ("12345678", TipoPersona.JURIDICA, False),
        (None, TipoPersona.JURIDICA, True),
    ],
)
def test_validar_documento_colombia(documento, tipo, valido):
    assert validar_documento_colombia(documento, tipo) is valido


def test_validar_telefono_colombia():
    assert validar_telefono_colombia("3001234567")
    assert validar_telefono_colombia("6012345")
    assert not validar_telefono_colombia("2001234567")
    assert not validar_telefono_colombia("12345")


def _lead_request(**kwargs):
    datos = dict(
        nombre="Carlos Pérez",
        email="carlos@example.com",
        telefono="3109876543",
        documento="80123456",
    )
    datos.update(kwargs)
    return CreateLeadRequest(**datos)


def test_crear_lead_asigna_responsable(db_session, admin):
    lead = LeadsService(db_session).crear_lead(_lead_request(), usuario_id=admin.id)

    assert lead.estado == EstadoLead.NUEVO.value
    assert lead.responsable_id == admin.id


def test_crear_lead_email_duplicado(db_session, admin):
    service = LeadsService(db_session)
    service.crear_lead(_lead_request(), usuario_id=admin.id)

    with pytest.raises(DuplicateEntityException):
        service.crear_lead(_lead_request(documento="80999999"), usuario_id=admin.id)


def test_crear_lead_nit_invalido(db_session):
    with pytest.raises(ValidationException):
        LeadsService(db_session).crear_lead(
            _lead_request(tipo_persona=TipoPersona.JURIDICA, documento="12345678")
        )


def test_contactado_programa_seguimiento(db_session, admin):
    """Test: Pasar a CONTACTADO fija el seguimiento a tres días."""
    service = LeadsService(db_session)
    lead = service.crear_lead(_lead_request(), usuario_id=admin.id)
    ahora = datetime(2024, 6, 15, 9, 0)

    actualizado = service.actualizar_lead(
        lead.id, UpdateLeadRequest(estado=EstadoLead.CONTACTADO), ahora=ahora
    )

    assert actualizado.fecha_seguimiento == datetime(2024, 6, 18, 9, 0)


def test_registrar_seguimiento(db_session, admin):
    service = LeadsService(db_session)
    lead = service.crear_lead(_lead_request(), usuario_id=admin.id)

    seguimiento = service.crear_seguimiento(
        lead.id,
        CreateSeguimientoRequest(tipo=TipoSeguimiento.LLAMADA, descripcion="Primer contacto"),
        usuario_id=admin.id,
    )

    assert seguimiento.lead_id == lead.id
    assert [s.id for s in service.listar_seguimientos(lead.id)] == [seguimiento.id]
    assert lead.fecha_seguimiento is not None
