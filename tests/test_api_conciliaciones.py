"""
Tests de integración: lead → asesoría → conciliación → caso + factura.
"""
from datetime import datetime

import pytest

from app.models.caso import Caso, Cliente
from app.models.factura import Factura


@pytest.fixture
def conciliacion(client, auth_headers, admin):
    """Conciliación SOLICITADA sobre una asesoría de un lead nuevo."""
    lead = client.post(
        "/leads",
        headers=auth_headers,
        json={
            "nombre": "Andrés Rojas",
            "email": "andres.rojas@example.com",
            "telefono": "3157654321",
            "documento": "79123456",
        },
    ).json()

    asesoria = client.post(
        "/asesorias",
        headers=auth_headers,
        json={
            "tipo": "INICIAL",
            "fecha": "2024-06-20T10:00:00",
            "tema": "Insolvencia de persona natural",
            "lead_id": lead["id"],
            "asesor_id": admin.id,
        },
    ).json()

    response = client.post(
        "/conciliaciones",
        headers=auth_headers,
        json={
            "asesoria_id": asesoria["id"],
            "demandante": "Andrés Rojas",
            "demandado": "Banco Ejemplo S.A.",
            "valor": 250000000,
        },
    )
    assert response.status_code == 201
    return response.json()


@pytest.mark.integration
def test_conciliacion_numerada(conciliacion):
    assert conciliacion["numero"] == f"CONC-{datetime.utcnow().year}-0001"
    assert conciliacion["estado"] == "SOLICITADA"


@pytest.mark.integration
def test_realizada_con_crear_caso_genera_cascada(client, auth_headers, db_session, conciliacion):
    """Test: REALIZADA + crear_caso crea cliente, caso, honorario y factura."""
    response = client.patch(
        f"/conciliaciones/{conciliacion['id']}",
        headers=auth_headers,
        json={
            "estado": "REALIZADA",
            "resultado": "ACUERDO_TOTAL",
            "crear_caso": True,
            "valor_honorario": 2000000,
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["conciliacion"]["estado"] == "REALIZADA"

    creado = data["caso_creado"]
    assert creado["numero_caso"] == f"CASO-{datetime.utcnow().year}-0001"
    assert creado["factura_numero"] == f"FAC-{datetime.utcnow().year}-0001"

    caso = db_session.get(Caso, creado["id"])
    assert caso.tipo_insolvencia == "LIQUIDACION_JUDICIAL"
    assert db_session.get(Cliente, creado["cliente_id"]).email == "andres.rojas@example.com"

    factura = db_session.get(Factura, creado["factura_id"])
    assert factura.estado == "GENERADA"
    assert factura.honorario.tipo == "REPRESENTACION"


def test_cascada_solo_la_primera_vez(client, auth_headers, db_session, conciliacion):
    url = f"/conciliaciones/{conciliacion['id']}"
    cuerpo = {"estado": "REALIZADA", "crear_caso": True}

    primera = client.patch(url, headers=auth_headers, json=cuerpo)
    segunda = client.patch(url, headers=auth_headers, json=cuerpo)

    assert primera.json()["caso_creado"] is not None
    assert segunda.json()["caso_creado"] is None
    assert db_session.query(Caso).count() == 1


def test_realizada_sin_crear_caso(client, auth_headers, db_session, conciliacion):
    response = client.patch(
        f"/conciliaciones/{conciliacion['id']}",
        headers=auth_headers,
        json={"estado": "REALIZADA", "resultado": "SIN_ACUERDO"},
    )

    assert response.status_code == 200
    assert response.json()["caso_creado"] is None
    assert db_session.query(Caso).count() == 0


def test_conciliacion_inexistente_404(client, auth_headers):
    response = client.get("/conciliaciones/no-existe", headers=auth_headers)

    assert response.status_code == 404
