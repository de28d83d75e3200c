"""
Tests de integración de /leads, /asesorias y /casos.
"""
import pytest


def _crear_lead(client, headers, **kwargs):
    datos = {
        "nombre": "Laura Martínez",
        "email": "laura@example.com",
        "telefono": "3204567890",
        "documento": "52123456",
        "origen": "web",
    }
    datos.update(kwargs)
    return client.post("/leads", headers=headers, json=datos)


@pytest.mark.integration
def test_crear_listar_y_filtrar_leads(client, auth_headers, admin):
    creado = _crear_lead(client, auth_headers)
    assert creado.status_code == 201
    assert creado.json()["estado"] == "NUEVO"
    assert creado.json()["responsable"]["id"] == admin.id

    listado = client.get("/leads", headers=auth_headers, params={"search": "laura"})
    assert listado.status_code == 200
    data = listado.json()
    assert data["total"] == 1
    assert data["total_pages"] == 1


def test_lead_email_duplicado_400(client, auth_headers):
    _crear_lead(client, auth_headers)

    response = _crear_lead(client, auth_headers, documento="52999999")

    assert response.status_code == 400
    assert response.json()["error_code"] == "DUPLICATE_ENTITY"


def test_lead_telefono_invalido_400(client, auth_headers):
    response = _crear_lead(client, auth_headers, telefono="1234567890")

    assert response.status_code == 400


def test_seguimientos_de_lead(client, auth_headers):
    lead = _crear_lead(client, auth_headers).json()

    creado = client.post(
        f"/leads/{lead['id']}/seguimientos",
        headers=auth_headers,
        json={"tipo": "LLAMADA", "descripcion": "Primer contacto", "duracion": 15},
    )
    listado = client.get(f"/leads/{lead['id']}/seguimientos", headers=auth_headers)

    assert creado.status_code == 201
    assert [s["id"] for s in listado.json()] == [creado.json()["id"]]


def test_eliminar_lead_con_asesorias_400(client, auth_headers, admin):
    lead = _crear_lead(client, auth_headers).json()
    client.post(
        "/asesorias",
        headers=auth_headers,
        json={
            "tipo": "INICIAL",
            "fecha": "2024-06-20T10:00:00",
            "tema": "Primera asesoría",
            "lead_id": lead["id"],
            "asesor_id": admin.id,
        },
    )

    response = client.delete(f"/leads/{lead['id']}", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["error_code"] == "STATE_CONFLICT"
    convertido = client.get(f"/leads/{lead['id']}", headers=auth_headers).json()
    assert convertido["estado"] == "CONVERTIDO"
    assert convertido["asesorias_count"] == 1


def test_lead_inexistente_404(client, auth_headers):
    response = client.get("/leads/no-existe", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["error"] == "Lead no encontrado(a)"


@pytest.mark.integration
def test_crear_caso_y_honorario(client, auth_headers, cliente):
    caso = client.post(
        "/casos",
        headers=auth_headers,
        json={
            "tipo_insolvencia": "REORGANIZACION",
            "valor_deuda": 700000000,
            "cliente_id": cliente.id,
        },
    )
    assert caso.status_code == 201
    assert caso.json()["prioridad"] == "ALTA"

    honorario = client.post(
        f"/casos/{caso.json()['id']}/honorarios",
        headers=auth_headers,
        json={"tipo": "REPRESENTACION", "valor": 3000000},
    )
    assert honorario.status_code == 201
    assert honorario.json()["estado"] == "PENDIENTE"


def test_caso_deuda_invalida_400(client, auth_headers, cliente):
    response = client.post(
        "/casos",
        headers=auth_headers,
        json={
            "tipo_insolvencia": "LIQUIDACION_JUDICIAL",
            "valor_deuda": 5000000,
            "cliente_id": cliente.id,
        },
    )

    assert response.status_code == 400
    assert response.json()["details"]["field"] == "valor_deuda"
