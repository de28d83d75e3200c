"""
Catálogo de permisos y roles base del ERP Jurídico.

Los permisos se nombran "<modulo>.<accion>". El rol administrador
(settings.rol_administrador) tiene acceso completo sin necesidad de
tenerlos asignados.
"""
from enum import Enum
from typing import Callable


class Permission(str, Enum):
    """Permisos del sistema."""

    DASHBOARD_VIEW = "dashboard.view"

    # Leads y seguimientos
    LEADS_VIEW = "leads.view"
    LEADS_CREATE = "leads.create"
    LEADS_EDIT = "leads.edit"
    LEADS_DELETE = "leads.delete"
    SEGUIMIENTOS_VIEW = "seguimientos.view"
    SEGUIMIENTOS_CREATE = "seguimientos.create"

    # Asesorías y conciliaciones
    ASESORIAS_VIEW = "asesorias.view"
    ASESORIAS_CREATE = "asesorias.create"
    ASESORIAS_EDIT = "asesorias.edit"
    ASESORIAS_DELETE = "asesorias.delete"
    CONCILIACIONES_VIEW = "conciliaciones.view"
    CONCILIACIONES_CREATE = "conciliaciones.create"
    CONCILIACIONES_EDIT = "conciliaciones.edit"
    CONCILIACIONES_DELETE = "conciliaciones.delete"

    # Casos y honorarios
    CASOS_VIEW = "casos.view"
    CASOS_CREATE = "casos.create"
    CASOS_EDIT = "casos.edit"
    CASOS_DELETE = "casos.delete"
    HONORARIOS_VIEW = "honorarios.view"
    HONORARIOS_CREATE = "honorarios.create"
    HONORARIOS_EDIT = "honorarios.edit"

    # Facturación y cartera
    FACTURACION_VIEW = "facturacion.view"
    FACTURACION_CREATE = "facturacion.create"
    FACTURACION_EDIT = "facturacion.edit"
    FACTURACION_DELETE = "facturacion.delete"
    CARTERA_VIEW = "cartera.view"
    CARTERA_MANAGE = "cartera.manage"

    # Administración
    USUARIOS_VIEW = "usuarios.view"
    USUARIOS_CREATE = "usuarios.create"
    USUARIOS_EDIT = "usuarios.edit"
    USUARIOS_DELETE = "usuarios.delete"
    ROLES_MANAGE = "roles.manage"

    @property
    def modulo(self) -> str:
        return self.value.split(".", 1)[0]


PERMISSION_DESCRIPTIONS: dict[Permission, str] = {
    p: f"{p.value.split('.')[1].capitalize()} en {p.modulo}" for p in Permission
}


# Roles base además del administrador: nombre -> (descripción, filtro de permisos)
DEFAULT_ROLES: dict[str, tuple[str, Callable[[str], bool]]] = {
    "Abogado": (
        "Manejo de casos y procesos jurídicos",
        lambda p: p.split(".")[0] in {"casos", "honorarios", "conciliaciones", "seguimientos"}
        or p in {"dashboard.view", "asesorias.view", "leads.view", "facturacion.view"},
    ),
    "Asesor": (
        "Gestión de leads y asesorías",
        lambda p: p.split(".")[0] in {"leads", "asesorias", "seguimientos"}
        or p in {"dashboard.view", "casos.view"},
    ),
    "Auditor": ("Solo lectura de información", lambda p: p.endswith(".view")),
}

ADMIN_ROLE_DESCRIPTION = "Acceso completo al sistema"
