"""
Servicio de usuarios, roles y permisos.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    AuthenticationException,
    DuplicateEntityException,
    EntityNotFoundException,
    StateConflictException,
    ValidationException,
)
from app.core.logger import StructuredLogger
from app.core.permissions import DEFAULT_ROLES
from app.core.security import hash_password, verify_password
from app.models.user import Permission, Role, User
from app.models.user_summary import (
    CreatePermissionRequest,
    CreateRoleRequest,
    CreateUserRequest,
    UpdateRoleRequest,
    UpdateUserRequest,
)
from app.services.base import BaseService


ROL_ASESOR = "Asesor"


def es_rol_sistema(nombre: str) -> bool:
    return nombre == settings.rol_administrador or nombre in DEFAULT_ROLES


class UsuariosService(BaseService):
    """Administración de usuarios y control de acceso."""

    def __init__(self, db: Session, logger: Optional[StructuredLogger] = None):
        super().__init__(db, logger)

    # =========================================================
    # AUTENTICACIÓN
    # =========================================================

    def autenticar(self, email: str, password: str) -> User:
        """
        Valida credenciales y registra el último acceso.

        Raises:
            AuthenticationException: credenciales inválidas o usuario inactivo
        """
        user = self.db.query(User).filter(User.email == email).first()
        if user is None or not verify_password(password, user.hashed_password):
            self._log_warning("Login fallido", action="login_failed", email=email)
            raise AuthenticationException("Credenciales inválidas")
        if not user.activo:
            self._log_warning("Login de usuario inactivo", entity_id=user.id, action="login_failed")
            raise AuthenticationException("Usuario inactivo")

        user.last_login = datetime.utcnow()
        self._commit("login", entity_id=user.id)
        self._log_info("Login correcto", entity_id=user.id, action="login")
        return user

    # =========================================================
    # USUARIOS
    # =========================================================

    def obtener_usuario(self, usuario_id: str) -> User:
        user = self.db.get(User, usuario_id)
        if user is None:
            raise EntityNotFoundException("Usuario", usuario_id)
        return user

    def listar_usuarios(
        self, activo: Optional[bool] = None, role_id: Optional[str] = None
    ) -> List[User]:
        query = self.db.query(User)
        if activo is not None:
            query = query.filter(User.activo == activo)
        if role_id:
            query = query.filter(User.role_id == role_id)
        return query.order_by(User.created_at.desc()).all()

    def listar_asesores(self) -> List[User]:
        """Usuarios activos con rol asesor, por nombre y apellido."""
        return (
            self.db.query(User)
            .join(Role, User.role_id == Role.id)
            .filter(User.activo.is_(True), Role.nombre == ROL_ASESOR)
            .order_by(User.nombre, User.apellido)
            .all()
        )

    def _validar_unicos(
        self, email: Optional[str], documento: Optional[str], excluir_id: Optional[str] = None
    ):
        if email:
            query = self.db.query(User.id).filter(User.email == email)
            if excluir_id:
                query = query.filter(User.id != excluir_id)
            if query.first():
                raise DuplicateEntityException(
                    "Ya existe un usuario con este email", field="email"
                )
        if documento:
            query = self.db.query(User.id).filter(User.documento == documento)
            if excluir_id:
                query = query.filter(User.id != excluir_id)
            if query.first():
                raise DuplicateEntityException(
                    "Ya existe un usuario con este documento", field="documento"
                )

    def crear_usuario(self, request: CreateUserRequest) -> User:
        self._validar_unicos(request.email, request.documento)
        role = self.obtener_rol(request.role_id)

        user = User(
            email=request.email,
            hashed_password=hash_password(request.password),
            nombre=request.nombre,
            apellido=request.apellido,
            telefono=request.telefono,
            documento=request.documento,
            activo=request.activo,
            role=role,
        )
        self.db.add(user)
        self._commit("crear_usuario")
        self.db.refresh(user)

        self._log_info(
            "Usuario creado", entity_id=user.id, action="crear_usuario", role=role.nombre
        )
        return user

    def actualizar_usuario(self, usuario_id: str, request: UpdateUserRequest) -> User:
        user = self.obtener_usuario(usuario_id)
        cambios = request.model_dump(exclude_unset=True)

        self._validar_unicos(request.email, request.documento, excluir_id=user.id)
        if request.role_id:
            user.role = self.obtener_rol(request.role_id)

        for campo, valor in cambios.items():
            if campo == "password":
                if valor:
                    user.hashed_password = hash_password(valor)
            elif campo != "role_id":
                setattr(user, campo, valor)

        self._commit("actualizar_usuario", entity_id=user.id)
        self.db.refresh(user)

        self._log_info(
            "Usuario actualizado",
            entity_id=user.id,
            action="actualizar_usuario",
            campos=sorted(c for c in cambios if c != "password"),
        )
        return user

    def eliminar_usuario(self, usuario_id: str, solicitante_id: Optional[str] = None) -> None:
        """Baja lógica: el usuario queda inactivo y conserva su historial."""
        user = self.obtener_usuario(usuario_id)
        if solicitante_id == user.id:
            raise ValidationException("No puede desactivar su propio usuario")

        user.activo = False
        self._commit("eliminar_usuario", entity_id=user.id)
        self._log_info("Usuario desactivado", entity_id=user.id, action="eliminar_usuario")

    # =========================================================
    # ROLES
    # =========================================================

    def obtener_rol(self, role_id: str) -> Role:
        role = self.db.get(Role, role_id)
        if role is None:
            raise EntityNotFoundException("Rol", role_id)
        return role

    def listar_roles(self) -> List[Role]:
        return self.db.query(Role).order_by(Role.nombre).all()

    def _resolver_permisos(self, nombres: List[str]) -> List[Permission]:
        nombres = sorted(set(nombres))
        if not nombres:
            return []
        permisos = self.db.query(Permission).filter(Permission.nombre.in_(nombres)).all()
        faltantes = set(nombres) - {p.nombre for p in permisos}
        if faltantes:
            raise ValidationException(
                f"Permisos inexistentes: {', '.join(sorted(faltantes))}", field="permisos"
            )
        return permisos

    def _validar_nombre_rol(self, nombre: str, excluir_id: Optional[str] = None):
        query = self.db.query(Role.id).filter(Role.nombre == nombre)
        if excluir_id:
            query = query.filter(Role.id != excluir_id)
        if query.first():
            raise DuplicateEntityException("Ya existe un rol con este nombre", field="nombre")

    def crear_rol(self, request: CreateRoleRequest) -> Role:
        self._validar_nombre_rol(request.nombre)

        role = Role(
            nombre=request.nombre,
            descripcion=request.descripcion,
            permissions=self._resolver_permisos(request.permisos),
        )
        self.db.add(role)
        self._commit("crear_rol")
        self.db.refresh(role)

        self._log_info(
            "Rol creado",
            entity_id=role.id,
            action="crear_rol",
            permisos=role.permission_names,
        )
        return role

    def actualizar_rol(self, role_id: str, request: UpdateRoleRequest) -> Role:
        """Los roles del sistema conservan su nombre."""
        role = self.obtener_rol(role_id)

        if request.nombre is not None and request.nombre != role.nombre:
            if es_rol_sistema(role.nombre):
                raise StateConflictException("No se puede renombrar un rol del sistema")
            self._validar_nombre_rol(request.nombre, excluir_id=role.id)
            role.nombre = request.nombre
        if request.descripcion is not None:
            role.descripcion = request.descripcion
        if request.permisos is not None:
            role.permissions = self._resolver_permisos(request.permisos)

        self._commit("actualizar_rol", entity_id=role.id)
        self.db.refresh(role)

        self._log_info(
            "Rol actualizado",
            entity_id=role.id,
            action="actualizar_rol",
            permisos=role.permission_names,
        )
        return role

    def eliminar_rol(self, role_id: str) -> None:
        role = self.obtener_rol(role_id)
        if es_rol_sistema(role.nombre):
            raise StateConflictException("No se puede eliminar un rol del sistema")
        if role.users:
            raise StateConflictException(
                "No se puede eliminar un rol que tiene usuarios asignados"
            )

        self.db.delete(role)
        self._commit("eliminar_rol", entity_id=role_id)
        self._log_info("Rol eliminado", entity_id=role_id, action="eliminar_rol")

    # =========================================================
    # PERMISOS
    # =========================================================

    def listar_permisos(self) -> List[Permission]:
        return self.db.query(Permission).order_by(Permission.modulo, Permission.nombre).all()

    def crear_permiso(self, request: CreatePermissionRequest) -> Permission:
        if self.db.query(Permission.id).filter(Permission.nombre == request.nombre).first():
            raise DuplicateEntityException(
                "Ya existe un permiso con este nombre", field="nombre"
            )

        permiso = Permission(
            nombre=request.nombre,
            modulo=request.nombre.split(".", 1)[0],
            descripcion=request.descripcion,
        )
        self.db.add(permiso)
        self._commit("crear_permiso")
        self.db.refresh(permiso)

        self._log_info("Permiso creado", entity_id=permiso.id, action="crear_permiso")
        return permiso
