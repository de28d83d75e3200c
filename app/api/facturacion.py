"""
ENDPOINTS DE FACTURACIÓN.

Las facturas se emiten sobre honorarios PENDIENTE sin facturar. Los
cambios de estado pasan por la tabla de transiciones y el paso a
FINANCIADO genera la tabla de cuotas (una sola vez).
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.permissions import Permission
from app.core.security import require_permission
from app.models.caso import Honorario
from app.models.enums import EstadoFactura
from app.models.factura import Factura
from app.models.factura_summary import (
    CreateFacturaRequest,
    FacturacionReport,
    FacturaListResponse,
    FacturaSummary,
    HonorarioDisponible,
    ItemFacturaSummary,
    UpdateFacturaRequest,
)
from app.models.user import User
from app.services.cartera_service import caso_ref, cliente_ref, pago_a_summary
from app.services.facturacion_service import FacturacionService

router = APIRouter(
    prefix="/facturacion",
    tags=["facturacion"],
)


def _build_factura_summary(factura: Factura) -> FacturaSummary:
    """Vista completa: totales, saldo, cliente/caso del honorario, ítems y pagos."""
    caso = factura.honorario.caso if factura.honorario else None
    return FacturaSummary(
        id=factura.id,
        numero=factura.numero,
        fecha=factura.fecha,
        fecha_vencimiento=factura.fecha_vencimiento,
        subtotal=float(factura.subtotal),
        impuestos=float(factura.impuestos),
        total=float(factura.total),
        iva_activado=factura.iva_activado,
        estado=factura.estado,
        modalidad_pago=factura.modalidad_pago,
        numero_cuotas=factura.numero_cuotas,
        tasa_interes=float(factura.tasa_interes) if factura.tasa_interes is not None else None,
        valor_cuota=float(factura.valor_cuota) if factura.valor_cuota is not None else None,
        observaciones=factura.observaciones,
        honorario_id=factura.honorario_id,
        total_pagado=float(factura.total_pagado),
        saldo_pendiente=float(factura.saldo_pendiente),
        cliente=cliente_ref(caso.cliente) if caso else None,
        caso=caso_ref(caso) if caso else None,
        items=[
            ItemFacturaSummary(
                id=item.id,
                descripcion=item.descripcion,
                cantidad=item.cantidad,
                valor_unitario=float(item.valor_unitario),
                valor_total=float(item.valor_total),
            )
            for item in factura.items
        ],
        pagos=[pago_a_summary(p) for p in factura.pagos],
    )


def _build_honorario_disponible(honorario: Honorario) -> HonorarioDisponible:
    return HonorarioDisponible(
        id=honorario.id,
        tipo=honorario.tipo,
        valor=float(honorario.valor),
        modalidad_pago=honorario.modalidad_pago,
        caso=caso_ref(honorario.caso),
        cliente=cliente_ref(honorario.caso.cliente),
    )


@router.get(
    "",
    response_model=FacturaListResponse,
    summary="Listar facturas",
    description="search busca en número de factura, número de caso y nombre del cliente.",
    dependencies=[Depends(require_permission(Permission.FACTURACION_VIEW))],
)
def list_facturas(
    search: Optional[str] = Query(None),
    estado: Optional[EstadoFactura] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=200),
    db: Session = Depends(get_db),
) -> FacturaListResponse:
    facturas, total = FacturacionService(db).listar_facturas(
        search=search, estado=estado, page=page, limit=limit
    )
    return FacturaListResponse(
        facturas=[_build_factura_summary(f) for f in facturas],
        total=total,
        page=page,
        limit=limit,
    )


@router.get(
    "/honorarios-disponibles",
    response_model=List[HonorarioDisponible],
    summary="Honorarios pendientes sin factura",
    dependencies=[Depends(require_permission(Permission.FACTURACION_VIEW))],
)
def list_honorarios_disponibles(db: Session = Depends(get_db)) -> List[HonorarioDisponible]:
    honorarios = FacturacionService(db).honorarios_disponibles()
    return [_build_honorario_disponible(h) for h in honorarios]


@router.get(
    "/reporte",
    response_model=FacturacionReport,
    summary="Reporte de facturación",
    description="Totales facturados, pagados y pendientes por rango de fecha de emisión.",
    dependencies=[Depends(require_permission(Permission.FACTURACION_VIEW))],
)
def get_reporte(
    desde: Optional[datetime] = Query(None),
    hasta: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
) -> FacturacionReport:
    return FacturacionService(db).reporte_facturacion(desde=desde, hasta=hasta)


@router.get(
    "/{factura_id}",
    response_model=FacturaSummary,
    summary="Consultar una factura",
    dependencies=[Depends(require_permission(Permission.FACTURACION_VIEW))],
)
def get_factura(factura_id: str, db: Session = Depends(get_db)) -> FacturaSummary:
    return _build_factura_summary(FacturacionService(db).obtener_factura(factura_id))


@router.post(
    "",
    response_model=FacturaSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Crear factura",
    description=(
        "Emite una factura GENERADA sobre un honorario PENDIENTE sin facturas. "
        "Con IVA activado se aplica la tasa configurada."
    ),
)
def create_factura(
    request: CreateFacturaRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.FACTURACION_CREATE)),
) -> FacturaSummary:
    factura = FacturacionService(db).crear_factura(request, usuario_id=current_user.id)
    return _build_factura_summary(factura)


@router.patch(
    "/{factura_id}",
    response_model=FacturaSummary,
    summary="Actualizar factura",
    description=(
        "Cambios de estado validados contra la tabla de transiciones. "
        "modalidad_pago=FINANCIADO con numero_cuotas genera las cuotas."
    ),
    dependencies=[Depends(require_permission(Permission.FACTURACION_EDIT))],
)
def update_factura(
    factura_id: str,
    request: UpdateFacturaRequest,
    db: Session = Depends(get_db),
) -> FacturaSummary:
    factura = FacturacionService(db).actualizar_factura(factura_id, request)
    return _build_factura_summary(factura)


@router.delete(
    "/{factura_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Eliminar factura",
    description="Solo facturas GENERADA sin pagos.",
    dependencies=[Depends(require_permission(Permission.FACTURACION_DELETE))],
)
def delete_factura(factura_id: str, db: Session = Depends(get_db)) -> None:
    FacturacionService(db).eliminar_factura(factura_id)
