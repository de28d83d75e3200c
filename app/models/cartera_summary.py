"""
CARTERA SUMMARY - Contratos de la API de cartera (cuotas y pagos).
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.enums import EstadoCuota, EstadoFactura, MetodoPago, ModalidadPago
from app.models.factura_summary import CasoRef, ClienteRef, PagoSummary


# =========================================================
# APLICAR PAGO
# =========================================================


class DistribucionCuotaInput(BaseModel):
    cuota_id: str = Field(..., min_length=1)
    valor_aplicado: Decimal = Field(..., decimal_places=2, description="Valor a aplicar a la cuota")

    model_config = {"extra": "forbid"}


class AplicarPagoRequest(BaseModel):
    """
    Pago a distribuir entre las cuotas de una factura financiada.

    Con aplicacion_automatica=True se ignora distribucion_cuotas y el
    pago se reparte priorizando cuotas vencidas.
    """

    factura_id: str = Field(..., min_length=1)
    valor: Decimal = Field(..., gt=0, decimal_places=2)
    metodo_pago: MetodoPago
    referencia: Optional[str] = Field(None, max_length=100)
    observaciones: Optional[str] = None
    aplicacion_automatica: bool = False
    distribucion_cuotas: List[DistribucionCuotaInput] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


class AplicacionSummary(BaseModel):
    cuota_id: str
    numero_cuota: int
    valor_aplicado: float


class AplicarPagoResponse(BaseModel):
    success: bool = True
    message: str = "Pago aplicado exitosamente"
    pago: PagoSummary
    aplicaciones: List[AplicacionSummary]
    excedente: float = Field(
        0.0, ge=0, description="Parte del pago que no se asignó a ninguna cuota"
    )
    estado_factura: EstadoFactura


# =========================================================
# SEGUIMIENTO DE CUOTAS
# =========================================================


class PagoAplicadoEnCuota(BaseModel):
    id: str
    valor_aplicado: float
    fecha_aplicacion: datetime
    observaciones: Optional[str] = None
    pago: PagoSummary


class CuotaSeguimiento(BaseModel):
    id: str
    numero_cuota: int
    valor: float
    capital: float
    interes: float
    saldo: float
    fecha_vencimiento: datetime
    fecha_pago: Optional[datetime] = None
    estado: EstadoCuota
    valor_pagado: float
    saldo_cuota: float
    dias_vencido: int = Field(0, ge=0)
    pagos_aplicados: List[PagoAplicadoEnCuota] = Field(default_factory=list)


class ResumenCuotas(BaseModel):
    total_a_pagar: float = Field(..., description="Suma de cuotas, capital más intereses")
    total_pagado: float
    saldo_pendiente: float
    cuotas_pagadas: int
    cuotas_vencidas: int
    cuotas_parciales: int
    cuotas_pendientes: int
    progreso_pago: float = Field(..., ge=0, description="Porcentaje pagado del total")


class DistribucionHistorial(BaseModel):
    cuota_numero: int
    valor_aplicado: float
    fecha_aplicacion: datetime


class HistorialPago(PagoSummary):
    distribucion: List[DistribucionHistorial] = Field(default_factory=list)


class FacturaCarteraRef(BaseModel):
    id: str
    numero: str
    fecha: datetime
    total: float
    estado: EstadoFactura
    modalidad_pago: ModalidadPago
    numero_cuotas: Optional[int] = None
    valor_cuota: Optional[float] = None
    tasa_interes: Optional[float] = None
    cliente: ClienteRef
    caso: CasoRef


class SeguimientoCuotasResponse(BaseModel):
    factura: FacturaCarteraRef
    resumen: ResumenCuotas
    cuotas: List[CuotaSeguimiento]
    historial_pagos: List[HistorialPago]


# =========================================================
# LISTADO DE CARTERA
# =========================================================


class FacturaCartera(BaseModel):
    id: str
    numero: str
    fecha: datetime
    fecha_vencimiento: datetime
    total: float
    saldo_pendiente: float
    dias_vencida: int
    estado: EstadoFactura
    modalidad_pago: ModalidadPago
    numero_cuotas: int
    valor_cuota: float
    cliente: ClienteRef
    caso: CasoRef


class CarteraListResponse(BaseModel):
    facturas: List[FacturaCartera]


class CarteraVencidaItem(BaseModel):
    factura_id: str
    numero: str
    fecha_vencimiento: datetime
    dias_vencimiento: int
    saldo_pendiente: float
    cliente: ClienteRef


# =========================================================
# AMORTIZACIÓN Y MANTENIMIENTO
# =========================================================


class FinanciarFacturaRequest(BaseModel):
    numero_cuotas: int = Field(..., ge=1)
    tasa_interes: Decimal = Field(
        Decimal("0"), ge=0, le=100, description="Tasa de interés mensual en porcentaje"
    )
    fecha_inicio: Optional[datetime] = Field(
        None, description="Base de los vencimientos (por defecto, la fecha de la factura)"
    )

    model_config = {"extra": "forbid"}


class SimularAmortizacionRequest(BaseModel):
    monto: Decimal = Field(..., gt=0)
    numero_cuotas: int = Field(..., ge=1)
    tasa_interes: Decimal = Field(Decimal("0"), ge=0, le=100)
    fecha_inicio: Optional[datetime] = None

    model_config = {"extra": "forbid"}


class FilaAmortizacionSummary(BaseModel):
    numero_cuota: int
    fecha_vencimiento: datetime
    valor_cuota: float
    capital: float
    interes: float
    saldo: float


class TablaAmortizacionResponse(BaseModel):
    monto: float
    numero_cuotas: int
    tasa_interes: float = Field(..., description="% mensual")
    valor_cuota: float
    total_intereses: float
    total_a_pagar: float
    filas: List[FilaAmortizacionSummary]


class ActualizacionVencimientosResponse(BaseModel):
    cuotas_vencidas: int
    facturas_vencidas: int
    ejecutado_en: datetime
