"""
USER SUMMARY - Contratos de autenticación, usuarios, roles y permisos.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


# =========================================================
# AUTENTICACIÓN
# =========================================================


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    model_config = {"extra": "forbid"}


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Segundos de validez del token")


# =========================================================
# PERMISOS Y ROLES
# =========================================================


class PermissionSummary(BaseModel):
    id: str
    nombre: str
    modulo: str
    descripcion: Optional[str] = None


class CreatePermissionRequest(BaseModel):
    nombre: str = Field(..., pattern=r"^[a-z_]+\.[a-z_]+$", description="modulo.accion")
    descripcion: Optional[str] = None

    model_config = {"extra": "forbid"}


class RoleRef(BaseModel):
    id: str
    nombre: str


class RoleSummary(BaseModel):
    id: str
    nombre: str
    descripcion: Optional[str] = None
    permisos: List[str] = Field(default_factory=list)
    usuarios_count: int = 0
    es_sistema: bool = False


class CreateRoleRequest(BaseModel):
    nombre: str = Field(..., min_length=2, max_length=100)
    descripcion: Optional[str] = None
    permisos: List[str] = Field(default_factory=list, description="Nombres de permisos")

    model_config = {"extra": "forbid"}


class UpdateRoleRequest(BaseModel):
    nombre: Optional[str] = Field(None, min_length=2, max_length=100)
    descripcion: Optional[str] = None
    permisos: Optional[List[str]] = None

    model_config = {"extra": "forbid"}


# =========================================================
# USUARIOS
# =========================================================


class CreateUserRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    nombre: str = Field(..., min_length=1, max_length=100)
    apellido: str = Field(..., min_length=1, max_length=100)
    telefono: Optional[str] = Field(None, max_length=20)
    documento: Optional[str] = Field(None, max_length=20)
    role_id: str = Field(..., min_length=1)
    activo: bool = True

    model_config = {"extra": "forbid"}


class UpdateUserRequest(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8)
    nombre: Optional[str] = Field(None, min_length=1, max_length=100)
    apellido: Optional[str] = Field(None, min_length=1, max_length=100)
    telefono: Optional[str] = Field(None, max_length=20)
    documento: Optional[str] = Field(None, max_length=20)
    role_id: Optional[str] = None
    activo: Optional[bool] = None

    model_config = {"extra": "forbid"}


class UserSummary(BaseModel):
    id: str
    email: str
    nombre: str
    apellido: str
    telefono: Optional[str] = None
    documento: Optional[str] = None
    activo: bool
    role: RoleRef
    permisos: List[str] = Field(default_factory=list)
    last_login: Optional[datetime] = None
    created_at: datetime


class AsesorSummary(BaseModel):
    id: str
    nombre: str
    apellido: str
    email: str
    role: RoleRef


class AsesoresResponse(BaseModel):
    asesores: List[AsesorSummary]
    total: int
