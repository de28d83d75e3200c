"""Fixtures pytest: BD SQLite en memoria, cliente HTTP autenticado y datos base."""
import os

# Antes de importar la app: la configuración se lee al importar app.core.config
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["INIT_DB_ON_STARTUP"] = "false"
os.environ["LOG_FILE_NAME"] = ""
os.environ["ENVIRONMENT"] = "development"

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.database import Base, enable_sqlite_foreign_keys, get_db
from app.core.init_db import seed
from app.core.security import create_access_token, hash_password
from app.main import app
from app.models.caso_summary import (
    CreateCasoRequest,
    CreateClienteRequest,
    CreateHonorarioRequest,
)
from app.models.enums import (
    EstadoCuota,
    ModalidadPago,
    TipoHonorario,
    TipoInsolvencia,
)
from app.models.factura import CuotaFactura
from app.models.factura_summary import CreateFacturaRequest, ItemFacturaInput
from app.models.user import Role, User
from app.services.casos_service import CasosService
from app.services.facturacion_service import FacturacionService


# =========================================================
# BASE DE DATOS Y CLIENTE
# =========================================================


@pytest.fixture(scope="function")
def db_session():
    """Sesión DB en memoria con permisos, roles y administrador cargados."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)

    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = Session()
    seed(session)
    session.commit()

    yield session

    session.close()
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def client(db_session):
    """TestClient que comparte la sesión del test."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin(db_session) -> User:
    return db_session.query(User).filter(User.email == settings.admin_email).one()


def _headers(user: User) -> dict:
    token = create_access_token(user.id, user.role.nombre)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(admin):
    return _headers(admin)


@pytest.fixture
def crear_usuario(db_session):
    """Crea un usuario activo con el rol indicado."""

    def _crear(email: str, rol: str = "Auditor", password: str = "clave-segura-1") -> User:
        role = db_session.query(Role).filter(Role.nombre == rol).one()
        user = User(
            email=email,
            hashed_password=hash_password(password),
            nombre="Usuario",
            apellido="Prueba",
            activo=True,
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _crear


@pytest.fixture
def headers_de():
    return _headers


# =========================================================
# DATOS DE NEGOCIO
# =========================================================


@pytest.fixture
def cliente(db_session):
    return CasosService(db_session).crear_cliente(
        CreateClienteRequest(
            nombre="María",
            apellido="Gómez",
            email="maria.gomez@example.com",
            telefono="3001234567",
            documento="1020304050",
        )
    )


@pytest.fixture
def caso(db_session, cliente, admin):
    return CasosService(db_session).crear_caso(
        CreateCasoRequest(
            tipo_insolvencia=TipoInsolvencia.INSOLVENCIA_PERSONA_NATURAL,
            valor_deuda=Decimal("80000000"),
            cliente_id=cliente.id,
        ),
        usuario_id=admin.id,
    )


@pytest.fixture
def honorario(db_session, caso):
    return CasosService(db_session).crear_honorario(
        caso.id,
        CreateHonorarioRequest(tipo=TipoHonorario.REPRESENTACION, valor=Decimal("1000000")),
    )


@pytest.fixture
def factura(db_session, honorario, admin):
    """Factura GENERADA de 1.000.000 sin IVA."""
    return FacturacionService(db_session).crear_factura(
        CreateFacturaRequest(
            honorario_id=honorario.id,
            items=[
                ItemFacturaInput(
                    descripcion="Honorarios de representación",
                    cantidad=1,
                    valor_unitario=Decimal("1000000"),
                )
            ],
            iva_activado=False,
        ),
        usuario_id=admin.id,
    )


@pytest.fixture
def factura_con_cuotas(db_session, factura):
    """
    Convierte la factura en financiada con las cuotas indicadas.

    Args (del callable):
        valores: valor de cada cuota
        dias: días de vencimiento relativos a hoy (negativo = vencida)
    """

    def _crear(valores, dias):
        hoy = datetime.utcnow()
        for i, (valor, d) in enumerate(zip(valores, dias), start=1):
            factura.cuotas.append(
                CuotaFactura(
                    numero_cuota=i,
                    valor=Decimal(valor),
                    capital=Decimal(valor),
                    interes=Decimal("0"),
                    saldo=Decimal("0"),
                    fecha_vencimiento=hoy + timedelta(days=d),
                    valor_pagado=Decimal("0"),
                    saldo_cuota=Decimal(valor),
                    estado=EstadoCuota.PENDIENTE.value,
                )
            )
        factura.modalidad_pago = ModalidadPago.FINANCIADO.value
        factura.numero_cuotas = len(valores)
        factura.tasa_interes = Decimal("0")
        factura.valor_cuota = Decimal(valores[0])
        db_session.commit()
        return factura

    return _crear
