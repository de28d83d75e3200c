"""
Tests de autenticación y control de acceso por permisos.
"""
import pytest

from app.core.config import settings


@pytest.mark.smoke
def test_login_correcto(client):
    """Test: Login con el administrador sembrado devuelve un token Bearer."""
    response = client.post(
        "/auth/login",
        json={"email": settings.admin_email, "password": settings.admin_password},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert data["expires_in"] == settings.jwt_access_token_expire_minutes * 60


def test_login_password_incorrecto(client):
    response = client.post(
        "/auth/login",
        json={"email": settings.admin_email, "password": "otra-clave"},
    )

    assert response.status_code == 401
    assert response.json()["error_code"] == "AUTH_ERROR"


def test_login_usuario_inactivo(client, db_session, crear_usuario):
    usuario = crear_usuario("inactivo@example.com")
    usuario.activo = False
    db_session.commit()

    response = client.post(
        "/auth/login",
        json={"email": "inactivo@example.com", "password": "clave-segura-1"},
    )

    assert response.status_code == 401


def test_me_devuelve_usuario_y_permisos(client, auth_headers):
    response = client.get("/auth/me", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["email"] == settings.admin_email
    assert data["role"]["nombre"] == settings.rol_administrador


def test_sin_token_401(client):
    response = client.get("/leads")

    assert response.status_code == 401


def test_token_invalido_401(client):
    response = client.get("/leads", headers={"Authorization": "Bearer no-es-un-jwt"})

    assert response.status_code == 401
    assert response.json()["error_code"] == "INVALID_TOKEN"


def test_auditor_puede_leer_pero_no_escribir(client, crear_usuario, headers_de):
    """Test: El rol Auditor solo tiene permisos *.view."""
    headers = headers_de(crear_usuario("auditor@example.com", rol="Auditor"))

    lectura = client.get("/leads", headers=headers)
    escritura = client.post(
        "/leads",
        headers=headers,
        json={"nombre": "Lead", "email": "lead@example.com", "telefono": "3001112233"},
    )

    assert lectura.status_code == 200
    assert escritura.status_code == 403
    assert escritura.json()["error_code"] == "INSUFFICIENT_PERMISSIONS"


def test_asesor_no_accede_a_cartera(client, crear_usuario, headers_de):
    headers = headers_de(crear_usuario("asesor@example.com", rol="Asesor"))

    response = client.get("/cartera", headers=headers)

    assert response.status_code == 403
