"""
ENDPOINTS DE USUARIOS, ROLES Y PERMISOS.

Administración del control de acceso. Los roles del sistema no se
pueden renombrar ni eliminar y los usuarios se dan de baja lógicamente.
"""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.permissions import Permission as PermissionName
from app.core.security import require_permission
from app.models.user import Permission, Role, User
from app.models.user_summary import (
    AsesoresResponse,
    AsesorSummary,
    CreatePermissionRequest,
    CreateRoleRequest,
    CreateUserRequest,
    PermissionSummary,
    RoleRef,
    RoleSummary,
    UpdateRoleRequest,
    UpdateUserRequest,
    UserSummary,
)
from app.services.usuarios_service import UsuariosService, es_rol_sistema

router = APIRouter(
    prefix="/usuarios",
    tags=["usuarios"],
)

roles_router = APIRouter(
    prefix="/roles",
    tags=["roles"],
)

permisos_router = APIRouter(
    prefix="/permisos",
    tags=["roles"],
)


def _build_user_summary(user: User) -> UserSummary:
    return UserSummary(
        id=user.id,
        email=user.email,
        nombre=user.nombre,
        apellido=user.apellido,
        telefono=user.telefono,
        documento=user.documento,
        activo=user.activo,
        role=RoleRef(id=user.role.id, nombre=user.role.nombre),
        permisos=user.role.permission_names,
        last_login=user.last_login,
        created_at=user.created_at,
    )


def _build_role_summary(role: Role) -> RoleSummary:
    return RoleSummary(
        id=role.id,
        nombre=role.nombre,
        descripcion=role.descripcion,
        permisos=role.permission_names,
        usuarios_count=len(role.users),
        es_sistema=es_rol_sistema(role.nombre),
    )


def _build_permission_summary(permiso: Permission) -> PermissionSummary:
    return PermissionSummary(
        id=permiso.id,
        nombre=permiso.nombre,
        modulo=permiso.modulo,
        descripcion=permiso.descripcion,
    )


# =========================================================
# USUARIOS
# =========================================================


@router.get(
    "",
    response_model=List[UserSummary],
    summary="Listar usuarios",
    dependencies=[Depends(require_permission(PermissionName.USUARIOS_VIEW))],
)
def list_usuarios(
    activo: Optional[bool] = Query(None),
    role_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
) -> List[UserSummary]:
    usuarios = UsuariosService(db).listar_usuarios(activo=activo, role_id=role_id)
    return [_build_user_summary(u) for u in usuarios]


@router.post(
    "",
    response_model=UserSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Crear usuario",
    dependencies=[Depends(require_permission(PermissionName.USUARIOS_CREATE))],
)
def create_usuario(
    request: CreateUserRequest,
    db: Session = Depends(get_db),
) -> UserSummary:
    return _build_user_summary(UsuariosService(db).crear_usuario(request))


@router.get(
    "/asesores",
    response_model=AsesoresResponse,
    summary="Listar asesores activos",
    dependencies=[Depends(require_permission(PermissionName.ASESORIAS_VIEW))],
)
def list_asesores(db: Session = Depends(get_db)) -> AsesoresResponse:
    asesores = [
        AsesorSummary(
            id=u.id,
            nombre=u.nombre,
            apellido=u.apellido,
            email=u.email,
            role=RoleRef(id=u.role.id, nombre=u.role.nombre),
        )
        for u in UsuariosService(db).listar_asesores()
    ]
    return AsesoresResponse(asesores=asesores, total=len(asesores))


@router.get(
    "/{usuario_id}",
    response_model=UserSummary,
    summary="Consultar un usuario",
    dependencies=[Depends(require_permission(PermissionName.USUARIOS_VIEW))],
)
def get_usuario(usuario_id: str, db: Session = Depends(get_db)) -> UserSummary:
    return _build_user_summary(UsuariosService(db).obtener_usuario(usuario_id))


@router.patch(
    "/{usuario_id}",
    response_model=UserSummary,
    summary="Actualizar usuario",
    description="Si llega password se vuelve a hashear; el resto de campos se copian tal cual.",
    dependencies=[Depends(require_permission(PermissionName.USUARIOS_EDIT))],
)
def update_usuario(
    usuario_id: str,
    request: UpdateUserRequest,
    db: Session = Depends(get_db),
) -> UserSummary:
    return _build_user_summary(UsuariosService(db).actualizar_usuario(usuario_id, request))


@router.delete(
    "/{usuario_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Desactivar usuario",
    description="Baja lógica. Un usuario no puede desactivarse a sí mismo.",
)
def delete_usuario(
    usuario_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(PermissionName.USUARIOS_DELETE)),
) -> None:
    UsuariosService(db).eliminar_usuario(usuario_id, solicitante_id=current_user.id)


# =========================================================
# ROLES
# =========================================================


@roles_router.get(
    "",
    response_model=List[RoleSummary],
    summary="Listar roles",
    dependencies=[Depends(require_permission(PermissionName.USUARIOS_VIEW))],
)
def list_roles(db: Session = Depends(get_db)) -> List[RoleSummary]:
    return [_build_role_summary(r) for r in UsuariosService(db).listar_roles()]


@roles_router.post(
    "",
    response_model=RoleSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Crear rol",
    dependencies=[Depends(require_permission(PermissionName.ROLES_MANAGE))],
)
def create_role(request: CreateRoleRequest, db: Session = Depends(get_db)) -> RoleSummary:
    return _build_role_summary(UsuariosService(db).crear_rol(request))


@roles_router.get(
    "/{role_id}",
    response_model=RoleSummary,
    summary="Consultar un rol",
    dependencies=[Depends(require_permission(PermissionName.USUARIOS_VIEW))],
)
def get_role(role_id: str, db: Session = Depends(get_db)) -> RoleSummary:
    return _build_role_summary(UsuariosService(db).obtener_rol(role_id))


@roles_router.patch(
    "/{role_id}",
    response_model=RoleSummary,
    summary="Actualizar rol",
    description="La lista de permisos, si llega, reemplaza a la actual.",
    dependencies=[Depends(require_permission(PermissionName.ROLES_MANAGE))],
)
def update_role(
    role_id: str,
    request: UpdateRoleRequest,
    db: Session = Depends(get_db),
) -> RoleSummary:
    return _build_role_summary(UsuariosService(db).actualizar_rol(role_id, request))


@roles_router.delete(
    "/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Eliminar rol",
    dependencies=[Depends(require_permission(PermissionName.ROLES_MANAGE))],
)
def delete_role(role_id: str, db: Session = Depends(get_db)) -> None:
    UsuariosService(db).eliminar_rol(role_id)


# =========================================================
# PERMISOS
# =========================================================


@permisos_router.get(
    "",
    response_model=List[PermissionSummary],
    summary="Catálogo de permisos",
    dependencies=[Depends(require_permission(PermissionName.USUARIOS_VIEW))],
)
def list_permisos(db: Session = Depends(get_db)) -> List[PermissionSummary]:
    return [_build_permission_summary(p) for p in UsuariosService(db).listar_permisos()]


@permisos_router.post(
    "",
    response_model=PermissionSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Crear permiso",
    dependencies=[Depends(require_permission(PermissionName.ROLES_MANAGE))],
)
def create_permiso(
    request: CreatePermissionRequest,
    db: Session = Depends(get_db),
) -> PermissionSummary:
    return _build_permission_summary(UsuariosService(db).crear_permiso(request))
