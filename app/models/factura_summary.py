"""
FACTURA SUMMARY - Contratos de entrada/salida de la API de facturación.

Los importes se reciben como Decimal y se exponen como float.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.models.enums import EstadoFactura, ModalidadPago


# =========================================================
# REQUESTS
# =========================================================


class ItemFacturaInput(BaseModel):
    descripcion: str = Field(..., min_length=1, max_length=500)
    cantidad: int = Field(default=1, ge=1)
    valor_unitario: Decimal = Field(..., ge=0, description="Valor unitario sin IVA")

    model_config = {"extra": "forbid"}


class CreateFacturaRequest(BaseModel):
    """Factura nueva sobre un honorario pendiente sin facturas."""

    honorario_id: str = Field(..., min_length=1)
    items: List[ItemFacturaInput] = Field(..., min_length=1)
    fecha_vencimiento: Optional[datetime] = Field(
        None, description="Por defecto: hoy + días de vencimiento configurados"
    )
    iva_activado: bool = True
    observaciones: Optional[str] = None

    model_config = {"extra": "forbid"}


class UpdateFacturaRequest(BaseModel):
    """
    Cambios sobre una factura existente.

    - estado: validado contra la tabla de transiciones
    - items / iva_activado: solo en estado GENERADA y sin cuotas
    - modalidad_pago FINANCIADO: genera la tabla de cuotas (una sola vez)
    """

    estado: Optional[EstadoFactura] = None
    observaciones: Optional[str] = None
    fecha_vencimiento: Optional[datetime] = None
    iva_activado: Optional[bool] = None
    items: Optional[List[ItemFacturaInput]] = Field(None, min_length=1)

    modalidad_pago: Optional[ModalidadPago] = None
    numero_cuotas: Optional[int] = Field(None, ge=1)
    tasa_interes: Optional[Decimal] = Field(
        None, ge=0, le=100, description="Tasa de interés mensual en porcentaje"
    )
    fecha_inicio_financiacion: Optional[datetime] = None

    model_config = {"extra": "forbid"}


# =========================================================
# RESPONSES
# =========================================================


class ClienteRef(BaseModel):
    id: str
    nombre: str
    apellido: Optional[str] = None
    email: Optional[str] = None


class CasoRef(BaseModel):
    id: str
    numero_caso: str


class ItemFacturaSummary(BaseModel):
    id: str
    descripcion: str
    cantidad: int
    valor_unitario: float
    valor_total: float


class PagoSummary(BaseModel):
    id: str
    valor: float
    fecha: datetime
    metodo_pago: str
    referencia: Optional[str] = None
    observaciones: Optional[str] = None


class FacturaSummary(BaseModel):
    """Vista completa de una factura."""

    id: str
    numero: str
    fecha: datetime
    fecha_vencimiento: datetime
    subtotal: float
    impuestos: float
    total: float
    iva_activado: bool
    estado: EstadoFactura
    modalidad_pago: ModalidadPago
    numero_cuotas: Optional[int] = None
    tasa_interes: Optional[float] = Field(None, description="% mensual")
    valor_cuota: Optional[float] = None
    observaciones: Optional[str] = None
    honorario_id: str
    total_pagado: float = Field(..., ge=0)
    saldo_pendiente: float = Field(..., ge=0)
    cliente: Optional[ClienteRef] = None
    caso: Optional[CasoRef] = None
    items: List[ItemFacturaSummary] = Field(default_factory=list)
    pagos: List[PagoSummary] = Field(default_factory=list)


class FacturaListResponse(BaseModel):
    facturas: List[FacturaSummary]
    total: int
    page: int
    limit: int


class HonorarioDisponible(BaseModel):
    id: str
    tipo: str
    valor: float
    modalidad_pago: str
    caso: CasoRef
    cliente: ClienteRef


class FacturacionReport(BaseModel):
    """Resumen de facturación en un rango de fechas."""

    desde: Optional[datetime] = None
    hasta: Optional[datetime] = None
    total_facturado: float
    total_pagado: float
    total_pendiente: float
    porcentaje_pagado: float
    facturas_por_estado: Dict[str, int]
    cantidad_facturas: int
