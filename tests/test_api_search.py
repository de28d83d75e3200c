"""
Tests de /search/global y del servicio de búsqueda.
"""
import pytest

from app.services.search_service import SearchService, formato_moneda, nombre_completo


def _crear_lead(client, headers, i):
    return client.post(
        "/leads",
        headers=headers,
        json={
            "nombre": f"Prospecto {i}",
            "email": f"prospecto{i}@example.com",
            "telefono": f"300000000{i}",
            "documento": f"5200000{i}",
        },
    )


def test_busqueda_corta_devuelve_listas_vacias(client, auth_headers):
    response = client.get("/search/global", headers=auth_headers, params={"q": " a "})

    assert response.status_code == 200
    data = response.json()
    assert data["total_results"] == 0
    assert data["query"] == "a"
    assert all(hits == [] for hits in data["results"].values())
    assert set(data["results"]) == {"leads", "clientes", "casos", "facturas", "conciliaciones"}


def test_busqueda_sin_parametro(client, auth_headers):
    response = client.get("/search/global", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["total_results"] == 0


@pytest.mark.integration
def test_busqueda_por_documento_del_cliente(client, auth_headers, factura, cliente):
    response = client.get("/search/global", headers=auth_headers, params={"q": "1020304050"})

    assert response.status_code == 200
    data = response.json()
    results = data["results"]
    assert [h["id"] for h in results["clientes"]] == [cliente.id]
    assert results["clientes"][0]["titulo"] == "María Gómez"
    assert results["clientes"][0]["url"] == f"/casos?cliente={cliente.id}"
    assert len(results["casos"]) == 1
    assert results["casos"][0]["subtitulo"] == "María Gómez"
    assert [h["id"] for h in results["facturas"]] == [factura.id]
    assert results["facturas"][0]["url"] == f"/facturacion/{factura.id}"
    assert results["leads"] == []
    assert data["total_results"] == 3


def test_busqueda_por_numero_de_factura(client, auth_headers, factura):
    response = client.get("/search/global", headers=auth_headers, params={"q": factura.numero})

    hits = response.json()["results"]["facturas"]
    assert [h["titulo"] for h in hits] == [factura.numero]
    assert hits[0]["estado"] == "GENERADA"


def test_busqueda_limita_cinco_por_categoria(client, auth_headers):
    for i in range(7):
        assert _crear_lead(client, auth_headers, i).status_code == 201

    response = client.get("/search/global", headers=auth_headers, params={"q": "prospecto"})

    leads = response.json()["results"]["leads"]
    assert len(leads) == 5
    assert all(h["tipo"] == "lead" for h in leads)
    assert leads[0]["detalles"] == "0 asesorías • 0 seguimientos"


def test_busqueda_conciliaciones_por_demandado(client, auth_headers, admin):
    lead = _crear_lead(client, auth_headers, 1).json()
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
    client.post(
        "/conciliaciones",
        headers=auth_headers,
        json={
            "asesoria_id": asesoria["id"],
            "demandante": "Prospecto 1",
            "demandado": "Banco Ejemplo S.A.",
            "valor": 250000000,
        },
    )

    response = client.get("/search/global", headers=auth_headers, params={"q": "banco ejemplo"})

    hits = response.json()["results"]["conciliaciones"]
    assert len(hits) == 1
    assert hits[0]["subtitulo"] == "Prospecto 1 vs Banco Ejemplo S.A."
    assert hits[0]["detalles"] == "$250,000,000"


def test_busqueda_exige_autenticacion(client):
    response = client.get("/search/global", params={"q": "algo"})

    assert response.status_code == 401


def test_servicio_busqueda_directa(db_session, cliente):
    resultado = SearchService(db_session).buscar("maría")

    assert resultado.query == "maría"
    assert [h.id for h in resultado.results.clientes] == [cliente.id]
    assert resultado.total_results == 1


def test_formatos_auxiliares():
    assert nombre_completo("Ana", None) == "Ana"
    assert nombre_completo("Ana", "Torres") == "Ana Torres"
    assert formato_moneda(None) == "$0"
