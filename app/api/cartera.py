"""
ENDPOINTS DE CARTERA.

Financiación de facturas, aplicación de pagos a cuotas, seguimiento y
mantenimiento de vencimientos. Toda la lógica transaccional vive en
CarteraService.
"""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.facturacion import _build_factura_summary
from app.core.database import get_db
from app.core.permissions import Permission
from app.core.security import require_permission
from app.models.cartera_summary import (
    ActualizacionVencimientosResponse,
    AplicarPagoRequest,
    AplicarPagoResponse,
    CarteraListResponse,
    CarteraVencidaItem,
    FinanciarFacturaRequest,
    SeguimientoCuotasResponse,
    SimularAmortizacionRequest,
    TablaAmortizacionResponse,
)
from app.models.enums import FiltroCartera
from app.models.factura_summary import FacturaSummary
from app.models.user import User
from app.services.cartera_service import CarteraService

router = APIRouter(
    prefix="/cartera",
    tags=["cartera"],
)


@router.get(
    "",
    response_model=CarteraListResponse,
    summary="Listar cartera",
    description=(
        "Facturas financiadas con saldo pendiente y días de mora. "
        "estado: TODAS, VENCIDAS, PROXIMAS o PAGADAS."
    ),
    dependencies=[Depends(require_permission(Permission.CARTERA_VIEW))],
)
def list_cartera(
    search: Optional[str] = Query(None),
    estado: FiltroCartera = Query(FiltroCartera.TODAS),
    db: Session = Depends(get_db),
) -> CarteraListResponse:
    return CarteraService(db).listar_cartera(search=search, estado=estado)


@router.get(
    "/vencidas",
    response_model=List[CarteraVencidaItem],
    summary="Cartera vencida",
    description="Facturas vencidas con saldo, de mayor a menor antigüedad.",
    dependencies=[Depends(require_permission(Permission.CARTERA_VIEW))],
)
def list_cartera_vencida(db: Session = Depends(get_db)) -> List[CarteraVencidaItem]:
    return CarteraService(db).cartera_vencida()


@router.get(
    "/cuotas/{factura_id}",
    response_model=SeguimientoCuotasResponse,
    summary="Seguimiento de cuotas de una factura",
    description=(
        "Cuotas con estado derivado, días de mora y pagos aplicados; "
        "resumen de la factura e historial de pagos con su distribución."
    ),
    dependencies=[Depends(require_permission(Permission.CARTERA_VIEW))],
)
def get_seguimiento_cuotas(
    factura_id: str,
    db: Session = Depends(get_db),
) -> SeguimientoCuotasResponse:
    return CarteraService(db).obtener_seguimiento(factura_id)


@router.post(
    "/aplicar-pago",
    response_model=AplicarPagoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Aplicar pago",
    description=(
        "Registra un pago y lo distribuye entre las cuotas. Con "
        "aplicacion_automatica=true se cubren primero las cuotas vencidas "
        "(más antiguas primero) y luego las restantes por número. En modo "
        "manual la distribución debe sumar el valor del pago (tolerancia de "
        "un centavo) y no superar el saldo de ninguna cuota. Todo o nada."
    ),
)
def aplicar_pago(
    request: AplicarPagoRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.CARTERA_MANAGE)),
) -> AplicarPagoResponse:
    return CarteraService(db).aplicar_pago(request, usuario_id=current_user.id)


@router.post(
    "/financiar/{factura_id}",
    response_model=FacturaSummary,
    summary="Financiar factura",
    description=(
        "Genera la tabla de cuotas sobre el saldo pendiente. "
        "Las cuotas se crean una sola vez."
    ),
    dependencies=[Depends(require_permission(Permission.CARTERA_MANAGE))],
)
def financiar_factura(
    factura_id: str,
    request: FinanciarFacturaRequest,
    db: Session = Depends(get_db),
) -> FacturaSummary:
    factura = CarteraService(db).financiar_factura(
        factura_id, request.numero_cuotas, request.tasa_interes, request.fecha_inicio
    )
    return _build_factura_summary(factura)


@router.post(
    "/simular",
    response_model=TablaAmortizacionResponse,
    summary="Simular amortización",
    description="Tabla de amortización francesa sin persistir nada.",
    dependencies=[Depends(require_permission(Permission.CARTERA_VIEW))],
)
def simular_amortizacion(
    request: SimularAmortizacionRequest,
    db: Session = Depends(get_db),
) -> TablaAmortizacionResponse:
    return CarteraService(db).simular_amortizacion(
        request.monto, request.numero_cuotas, request.tasa_interes, request.fecha_inicio
    )


@router.post(
    "/actualizar-vencimientos",
    response_model=ActualizacionVencimientosResponse,
    summary="Actualizar vencimientos",
    description="Marca como VENCIDA las cuotas y facturas enviadas que pasaron su fecha.",
    dependencies=[Depends(require_permission(Permission.CARTERA_MANAGE))],
)
def actualizar_vencimientos(db: Session = Depends(get_db)) -> ActualizacionVencimientosResponse:
    return CarteraService(db).actualizar_vencimientos()
