"""
Tests de integración de /usuarios, /roles y /permisos.
"""
import pytest

from app.core.config import settings
from app.models.user import Role


def _rol_id(db_session, nombre):
    return db_session.query(Role).filter(Role.nombre == nombre).one().id


@pytest.mark.integration
def test_crear_usuario_y_login(client, auth_headers, db_session):
    creado = client.post(
        "/usuarios",
        headers=auth_headers,
        json={
            "email": "abogada@example.com",
            "password": "clave-segura-1",
            "nombre": "Ana",
            "apellido": "Torres",
            "role_id": _rol_id(db_session, "Abogado"),
        },
    )
    assert creado.status_code == 201
    assert creado.json()["role"]["nombre"] == "Abogado"
    assert "casos.view" in creado.json()["permisos"]

    login = client.post(
        "/auth/login", json={"email": "abogada@example.com", "password": "clave-segura-1"}
    )
    assert login.status_code == 200


def test_usuario_email_duplicado(client, auth_headers, db_session):
    response = client.post(
        "/usuarios",
        headers=auth_headers,
        json={
            "email": settings.admin_email,
            "password": "clave-segura-1",
            "nombre": "Otro",
            "apellido": "Admin",
            "role_id": _rol_id(db_session, "Auditor"),
        },
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "DUPLICATE_ENTITY"


def test_eliminar_usuario_es_baja_logica(client, auth_headers, crear_usuario):
    usuario = crear_usuario("baja@example.com")

    response = client.delete(f"/usuarios/{usuario.id}", headers=auth_headers)

    assert response.status_code == 204
    detalle = client.get(f"/usuarios/{usuario.id}", headers=auth_headers)
    assert detalle.json()["activo"] is False


def test_no_puede_desactivarse_a_si_mismo(client, auth_headers, admin):
    response = client.delete(f"/usuarios/{admin.id}", headers=auth_headers)

    assert response.status_code == 400


def test_crear_rol_con_permisos(client, auth_headers):
    response = client.post(
        "/roles",
        headers=auth_headers,
        json={"nombre": "Cartera", "permisos": ["cartera.view", "cartera.manage"]},
    )

    assert response.status_code == 201
    assert sorted(response.json()["permisos"]) == ["cartera.manage", "cartera.view"]
    assert response.json()["es_sistema"] is False


def test_crear_rol_con_permiso_inexistente(client, auth_headers):
    response = client.post(
        "/roles", headers=auth_headers, json={"nombre": "Raro", "permisos": ["nada.hacer"]}
    )

    assert response.status_code == 400


def test_rol_del_sistema_no_se_elimina(client, auth_headers, db_session):
    response = client.delete(f"/roles/{_rol_id(db_session, 'Auditor')}", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["error_code"] == "STATE_CONFLICT"


def test_listar_permisos(client, auth_headers):
    response = client.get("/permisos", headers=auth_headers)

    assert response.status_code == 200
    nombres = {p["nombre"] for p in response.json()}
    assert {"cartera.manage", "facturacion.view", "leads.create"} <= nombres


def test_listar_asesores_activos_ordenados(client, auth_headers, crear_usuario, db_session):
    beatriz = crear_usuario("beatriz@example.com", rol="Asesor")
    beatriz.nombre = "Beatriz"
    andres = crear_usuario("andres@example.com", rol="Asesor")
    andres.nombre = "Andrés"
    inactivo = crear_usuario("inactivo@example.com", rol="Asesor")
    inactivo.activo = False
    crear_usuario("auditor@example.com", rol="Auditor")
    db_session.commit()

    response = client.get("/usuarios/asesores", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert [a["email"] for a in data["asesores"]] == ["andres@example.com", "beatriz@example.com"]
    assert all(a["role"]["nombre"] == "Asesor" for a in data["asesores"])


def test_listar_asesores_exige_permiso(client, crear_usuario, headers_de, db_session):
    sin_permiso = crear_usuario("cartera@example.com", rol="Auditor")
    sin_permiso.role.permissions = [
        p for p in sin_permiso.role.permissions if p.nombre != "asesorias.view"
    ]
    db_session.commit()

    response = client.get("/usuarios/asesores", headers=headers_de(sin_permiso))

    assert response.status_code == 403
