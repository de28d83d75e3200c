"""
CASO SUMMARY - Contratos de la API de clientes, casos y honorarios.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from app.models.enums import (
    EstadoCaso,
    EstadoHonorario,
    ModalidadPago,
    Prioridad,
    TipoHonorario,
    TipoInsolvencia,
    TipoPersona,
)
from app.models.factura_summary import ClienteRef
from app.models.lead_summary import UserRef


# =========================================================
# CLIENTES
# =========================================================


class CreateClienteRequest(BaseModel):
    nombre: str = Field(..., min_length=2, max_length=200)
    apellido: Optional[str] = Field(None, max_length=200)
    email: EmailStr
    telefono: Optional[str] = Field(None, max_length=20)
    documento: Optional[str] = Field(None, min_length=7, max_length=15, pattern=r"^\d+$")
    tipo_persona: TipoPersona = TipoPersona.NATURAL
    empresa: Optional[str] = Field(None, max_length=200)

    model_config = {"extra": "forbid"}


class ClienteSummary(BaseModel):
    id: str
    nombre: str
    apellido: Optional[str] = None
    email: str
    telefono: Optional[str] = None
    documento: Optional[str] = None
    tipo_persona: TipoPersona
    empresa: Optional[str] = None
    casos_count: int = 0
    created_at: datetime


# =========================================================
# CASOS
# =========================================================


class CreateCasoRequest(BaseModel):
    """
    Alta de un caso de insolvencia.

    Sin prioridad explícita se calcula a partir del valor de la deuda,
    la antigüedad y el tipo de insolvencia.
    """

    tipo_insolvencia: TipoInsolvencia
    valor_deuda: Decimal = Field(..., gt=0, le=Decimal("999999999999"))
    cliente_id: str = Field(..., min_length=1)
    prioridad: Optional[Prioridad] = None
    responsable_id: Optional[str] = None
    fecha_inicio: Optional[datetime] = None
    observaciones: Optional[str] = Field(None, max_length=2000)

    model_config = {"extra": "forbid"}


class UpdateCasoRequest(BaseModel):
    estado: Optional[EstadoCaso] = None
    tipo_insolvencia: Optional[TipoInsolvencia] = None
    valor_deuda: Optional[Decimal] = Field(None, gt=0, le=Decimal("999999999999"))
    prioridad: Optional[Prioridad] = None
    fecha_cierre: Optional[datetime] = None
    observaciones: Optional[str] = Field(None, max_length=2000)
    cliente_id: Optional[str] = None
    responsable_id: Optional[str] = None

    model_config = {"extra": "forbid"}


class CasoSummary(BaseModel):
    id: str
    numero_caso: str
    tipo_insolvencia: TipoInsolvencia
    estado: EstadoCaso
    prioridad: Prioridad
    valor_deuda: Optional[float] = None
    fecha_inicio: datetime
    fecha_cierre: Optional[datetime] = None
    observaciones: Optional[str] = None
    cliente: ClienteRef
    responsable: Optional[UserRef] = None
    honorarios_count: int = 0
    created_at: datetime


class CasoListResponse(BaseModel):
    casos: List[CasoSummary]
    total: int
    page: int
    limit: int
    total_pages: int


# =========================================================
# HONORARIOS
# =========================================================


class CreateHonorarioRequest(BaseModel):
    tipo: TipoHonorario
    valor: Decimal = Field(..., gt=0)
    modalidad_pago: ModalidadPago = ModalidadPago.CONTADO
    observaciones: Optional[str] = None

    model_config = {"extra": "forbid"}


class UpdateHonorarioRequest(BaseModel):
    tipo: Optional[TipoHonorario] = None
    valor: Optional[Decimal] = Field(None, gt=0)
    modalidad_pago: Optional[ModalidadPago] = None
    estado: Optional[EstadoHonorario] = None
    observaciones: Optional[str] = None

    model_config = {"extra": "forbid"}


class HonorarioSummary(BaseModel):
    id: str
    caso_id: str
    tipo: TipoHonorario
    modalidad_pago: ModalidadPago
    valor: float
    estado: EstadoHonorario
    fecha_pago: Optional[datetime] = None
    observaciones: Optional[str] = None
    facturas_count: int = 0
    created_at: datetime
