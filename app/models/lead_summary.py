"""
LEAD SUMMARY - Contratos de la API de leads y seguimientos.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from app.models.enums import EstadoLead, TipoPersona, TipoSeguimiento


# =========================================================
# REFERENCIAS
# =========================================================


class UserRef(BaseModel):
    id: str
    nombre: str
    apellido: str
    email: str


# =========================================================
# LEADS
# =========================================================


class CreateLeadRequest(BaseModel):
    """
    Alta de un lead.

    El documento se valida según el tipo de persona (cédula o NIT) y el
    teléfono contra los formatos colombianos de celular y fijo.
    Sin responsable explícito, el lead queda asignado a quien lo crea.
    """

    nombre: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    telefono: str = Field(..., min_length=7, max_length=15, pattern=r"^\d+$")
    empresa: Optional[str] = Field(None, max_length=200)
    tipo_persona: TipoPersona = TipoPersona.NATURAL
    documento: Optional[str] = Field(None, min_length=7, max_length=15, pattern=r"^\d+$")
    origen: Optional[str] = Field(None, max_length=100)
    observaciones: Optional[str] = Field(None, max_length=1000)
    responsable_id: Optional[str] = None

    model_config = {"extra": "forbid"}


class UpdateLeadRequest(BaseModel):
    nombre: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    telefono: Optional[str] = Field(None, min_length=7, max_length=15, pattern=r"^\d+$")
    empresa: Optional[str] = Field(None, max_length=200)
    tipo_persona: Optional[TipoPersona] = None
    documento: Optional[str] = Field(None, min_length=7, max_length=15, pattern=r"^\d+$")
    estado: Optional[EstadoLead] = None
    origen: Optional[str] = Field(None, max_length=100)
    observaciones: Optional[str] = Field(None, max_length=1000)
    responsable_id: Optional[str] = None
    fecha_seguimiento: Optional[datetime] = None

    model_config = {"extra": "forbid"}


class LeadSummary(BaseModel):
    id: str
    nombre: str
    email: str
    telefono: str
    empresa: Optional[str] = None
    tipo_persona: TipoPersona
    documento: Optional[str] = None
    estado: EstadoLead
    origen: Optional[str] = None
    observaciones: Optional[str] = None
    fecha_seguimiento: Optional[datetime] = None
    responsable: Optional[UserRef] = None
    asesorias_count: int = 0
    seguimientos_count: int = 0
    created_at: datetime
    updated_at: datetime


class LeadListResponse(BaseModel):
    leads: List[LeadSummary]
    total: int
    page: int
    limit: int
    total_pages: int


# =========================================================
# SEGUIMIENTOS
# =========================================================


class CreateSeguimientoRequest(BaseModel):
    tipo: TipoSeguimiento
    descripcion: str = Field(..., min_length=1)
    duracion: Optional[int] = Field(None, ge=0, description="Minutos")
    resultado: Optional[str] = None
    proximo_seguimiento: Optional[datetime] = None

    model_config = {"extra": "forbid"}


class SeguimientoSummary(BaseModel):
    id: str
    lead_id: str
    tipo: TipoSeguimiento
    descripcion: str
    duracion: Optional[int] = None
    resultado: Optional[str] = None
    proximo_seguimiento: Optional[datetime] = None
    usuario: Optional[UserRef] = None
    created_at: datetime
