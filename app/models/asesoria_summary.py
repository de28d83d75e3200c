"""
ASESORIA SUMMARY - Contratos de la API de asesorías y conciliaciones.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.enums import (
    EstadoAsesoria,
    EstadoConciliacion,
    ModalidadAsesoria,
    ResultadoConciliacion,
    TipoAsesoria,
)
from app.models.lead_summary import UserRef


class LeadRef(BaseModel):
    id: str
    nombre: str
    email: str
    telefono: str


# =========================================================
# ASESORÍAS
# =========================================================


class CreateAsesoriaRequest(BaseModel):
    tipo: TipoAsesoria
    fecha: datetime
    tema: str = Field(..., min_length=1, max_length=255)
    lead_id: str = Field(..., min_length=1)
    asesor_id: str = Field(..., min_length=1)
    estado: EstadoAsesoria = EstadoAsesoria.PROGRAMADA
    modalidad: ModalidadAsesoria = ModalidadAsesoria.PRESENCIAL
    duracion: Optional[int] = Field(None, ge=0, description="Minutos")
    descripcion: Optional[str] = None
    valor: Optional[Decimal] = Field(None, ge=0)
    notas: Optional[str] = None

    model_config = {"extra": "forbid"}


class UpdateAsesoriaRequest(BaseModel):
    tipo: Optional[TipoAsesoria] = None
    estado: Optional[EstadoAsesoria] = None
    modalidad: Optional[ModalidadAsesoria] = None
    fecha: Optional[datetime] = None
    duracion: Optional[int] = Field(None, ge=0)
    tema: Optional[str] = Field(None, min_length=1, max_length=255)
    descripcion: Optional[str] = None
    valor: Optional[Decimal] = Field(None, ge=0)
    notas: Optional[str] = None
    asesor_id: Optional[str] = None

    model_config = {"extra": "forbid"}


class AsesoriaSummary(BaseModel):
    id: str
    tipo: TipoAsesoria
    estado: EstadoAsesoria
    modalidad: ModalidadAsesoria
    fecha: datetime
    duracion: Optional[int] = None
    tema: str
    descripcion: Optional[str] = None
    valor: Optional[float] = None
    notas: Optional[str] = None
    lead: LeadRef
    asesor: UserRef
    conciliaciones_count: int = 0
    created_at: datetime


class AsesoriaListResponse(BaseModel):
    asesorias: List[AsesoriaSummary]
    total: int
    page: int
    limit: int
    total_pages: int


# =========================================================
# CONCILIACIONES
# =========================================================


class CreateConciliacionRequest(BaseModel):
    asesoria_id: str = Field(..., min_length=1)
    demandante: str = Field(..., min_length=1, max_length=200)
    demandado: str = Field(..., min_length=1, max_length=200)
    valor: Optional[Decimal] = Field(None, ge=0)
    fecha_solicitud: Optional[datetime] = None
    fecha_audiencia: Optional[datetime] = None
    observaciones: Optional[str] = None

    model_config = {"extra": "forbid"}


class UpdateConciliacionRequest(BaseModel):
    """
    Cambios sobre una conciliación.

    Con estado=REALIZADA y crear_caso=True (solo la primera vez que se
    realiza) se crea el cliente si no existe y el caso; si además llega
    valor_honorario se crea el honorario con su factura.
    """

    estado: Optional[EstadoConciliacion] = None
    resultado: Optional[ResultadoConciliacion] = None
    demandante: Optional[str] = Field(None, min_length=1, max_length=200)
    demandado: Optional[str] = Field(None, min_length=1, max_length=200)
    valor: Optional[Decimal] = Field(None, ge=0)
    fecha_solicitud: Optional[datetime] = None
    fecha_audiencia: Optional[datetime] = None
    observaciones: Optional[str] = None

    crear_caso: bool = False
    valor_honorario: Optional[Decimal] = Field(None, gt=0)

    model_config = {"extra": "forbid"}


class CasoCreadoRef(BaseModel):
    id: str
    numero_caso: str
    cliente_id: str
    honorario_id: Optional[str] = None
    factura_id: Optional[str] = None
    factura_numero: Optional[str] = None


class ConciliacionSummary(BaseModel):
    id: str
    numero: str
    demandante: str
    demandado: str
    valor: Optional[float] = None
    estado: EstadoConciliacion
    resultado: Optional[ResultadoConciliacion] = None
    fecha_solicitud: datetime
    fecha_audiencia: Optional[datetime] = None
    observaciones: Optional[str] = None
    asesoria_id: str
    caso_id: Optional[str] = None
    lead: LeadRef
    asesor: UserRef
    created_at: datetime


class ConciliacionListResponse(BaseModel):
    conciliaciones: List[ConciliacionSummary]
    total: int
    page: int
    limit: int
    total_pages: int


class UpdateConciliacionResponse(BaseModel):
    conciliacion: ConciliacionSummary
    caso_creado: Optional[CasoCreadoRef] = None
