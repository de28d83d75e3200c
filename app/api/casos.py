"""
ENDPOINTS DE CLIENTES, CASOS Y HONORARIOS.

Los casos se numeran CASO-AAAA-NNNN. Un caso con honorarios no se
puede eliminar y un honorario facturado conserva su valor.
"""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.serializers import total_pages, user_ref
from app.core.database import get_db
from app.core.permissions import Permission
from app.core.security import require_permission
from app.models.caso import Caso, Cliente, Honorario
from app.models.caso_summary import (
    CasoListResponse,
    CasoSummary,
    ClienteSummary,
    CreateCasoRequest,
    CreateClienteRequest,
    CreateHonorarioRequest,
    HonorarioSummary,
    UpdateCasoRequest,
    UpdateHonorarioRequest,
)
from app.models.enums import EstadoCaso, Prioridad, TipoInsolvencia
from app.models.user import User
from app.services.cartera_service import cliente_ref
from app.services.casos_service import CasosService

router = APIRouter(
    prefix="/casos",
    tags=["casos"],
)

clientes_router = APIRouter(
    prefix="/clientes",
    tags=["casos"],
)

honorarios_router = APIRouter(
    prefix="/honorarios",
    tags=["casos"],
)


def _build_cliente_summary(cliente: Cliente) -> ClienteSummary:
    return ClienteSummary(
        id=cliente.id,
        nombre=cliente.nombre,
        apellido=cliente.apellido,
        email=cliente.email,
        telefono=cliente.telefono,
        documento=cliente.documento,
        tipo_persona=cliente.tipo_persona,
        empresa=cliente.empresa,
        casos_count=len(cliente.casos),
        created_at=cliente.created_at,
    )


def _build_caso_summary(caso: Caso) -> CasoSummary:
    return CasoSummary(
        id=caso.id,
        numero_caso=caso.numero_caso,
        tipo_insolvencia=caso.tipo_insolvencia,
        estado=caso.estado,
        prioridad=caso.prioridad,
        valor_deuda=float(caso.valor_deuda) if caso.valor_deuda is not None else None,
        fecha_inicio=caso.fecha_inicio,
        fecha_cierre=caso.fecha_cierre,
        observaciones=caso.observaciones,
        cliente=cliente_ref(caso.cliente),
        responsable=user_ref(caso.responsable),
        honorarios_count=len(caso.honorarios),
        created_at=caso.created_at,
    )


def _build_honorario_summary(honorario: Honorario) -> HonorarioSummary:
    return HonorarioSummary(
        id=honorario.id,
        caso_id=honorario.caso_id,
        tipo=honorario.tipo,
        modalidad_pago=honorario.modalidad_pago,
        valor=float(honorario.valor),
        estado=honorario.estado,
        fecha_pago=honorario.fecha_pago,
        observaciones=honorario.observaciones,
        facturas_count=len(honorario.facturas),
        created_at=honorario.created_at,
    )


# =========================================================
# CLIENTES
# =========================================================


@clientes_router.get(
    "",
    response_model=List[ClienteSummary],
    summary="Listar clientes",
    dependencies=[Depends(require_permission(Permission.CASOS_VIEW))],
)
def list_clientes(
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
) -> List[ClienteSummary]:
    return [_build_cliente_summary(c) for c in CasosService(db).listar_clientes(search)]


@clientes_router.post(
    "",
    response_model=ClienteSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Crear cliente",
    dependencies=[Depends(require_permission(Permission.CASOS_CREATE))],
)
def create_cliente(
    request: CreateClienteRequest,
    db: Session = Depends(get_db),
) -> ClienteSummary:
    return _build_cliente_summary(CasosService(db).crear_cliente(request))


@clientes_router.get(
    "/{cliente_id}",
    response_model=ClienteSummary,
    summary="Consultar un cliente",
    dependencies=[Depends(require_permission(Permission.CASOS_VIEW))],
)
def get_cliente(cliente_id: str, db: Session = Depends(get_db)) -> ClienteSummary:
    return _build_cliente_summary(CasosService(db).obtener_cliente(cliente_id))


# =========================================================
# CASOS
# =========================================================


@router.get(
    "",
    response_model=CasoListResponse,
    summary="Listar casos",
    description="search busca en número de caso, nombre del cliente y observaciones.",
    dependencies=[Depends(require_permission(Permission.CASOS_VIEW))],
)
def list_casos(
    estado: Optional[EstadoCaso] = Query(None),
    tipo_insolvencia: Optional[TipoInsolvencia] = Query(None),
    prioridad: Optional[Prioridad] = Query(None),
    responsable_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=200),
    db: Session = Depends(get_db),
) -> CasoListResponse:
    casos, total = CasosService(db).listar_casos(
        estado=estado,
        tipo_insolvencia=tipo_insolvencia,
        prioridad=prioridad,
        responsable_id=responsable_id,
        search=search,
        page=page,
        limit=limit,
    )
    return CasoListResponse(
        casos=[_build_caso_summary(c) for c in casos],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
    )


@router.post(
    "",
    response_model=CasoSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Crear caso",
    description=(
        "Valida el valor de la deuda contra el tipo de insolvencia. "
        "Sin prioridad explícita se calcula automáticamente."
    ),
)
def create_caso(
    request: CreateCasoRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.CASOS_CREATE)),
) -> CasoSummary:
    return _build_caso_summary(CasosService(db).crear_caso(request, usuario_id=current_user.id))


@router.get(
    "/{caso_id}",
    response_model=CasoSummary,
    summary="Consultar un caso",
    dependencies=[Depends(require_permission(Permission.CASOS_VIEW))],
)
def get_caso(caso_id: str, db: Session = Depends(get_db)) -> CasoSummary:
    return _build_caso_summary(CasosService(db).obtener_caso(caso_id))


@router.patch(
    "/{caso_id}",
    response_model=CasoSummary,
    summary="Actualizar caso",
    dependencies=[Depends(require_permission(Permission.CASOS_EDIT))],
)
def update_caso(
    caso_id: str,
    request: UpdateCasoRequest,
    db: Session = Depends(get_db),
) -> CasoSummary:
    return _build_caso_summary(CasosService(db).actualizar_caso(caso_id, request))


@router.delete(
    "/{caso_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Eliminar caso",
    description="Falla con 400 si el caso tiene honorarios.",
    dependencies=[Depends(require_permission(Permission.CASOS_DELETE))],
)
def delete_caso(caso_id: str, db: Session = Depends(get_db)) -> None:
    CasosService(db).eliminar_caso(caso_id)


# =========================================================
# HONORARIOS
# =========================================================


@router.get(
    "/{caso_id}/honorarios",
    response_model=List[HonorarioSummary],
    summary="Honorarios de un caso",
    dependencies=[Depends(require_permission(Permission.HONORARIOS_VIEW))],
)
def list_honorarios(caso_id: str, db: Session = Depends(get_db)) -> List[HonorarioSummary]:
    return [_build_honorario_summary(h) for h in CasosService(db).listar_honorarios(caso_id)]


@router.post(
    "/{caso_id}/honorarios",
    response_model=HonorarioSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Registrar honorario",
    dependencies=[Depends(require_permission(Permission.HONORARIOS_CREATE))],
)
def create_honorario(
    caso_id: str,
    request: CreateHonorarioRequest,
    db: Session = Depends(get_db),
) -> HonorarioSummary:
    return _build_honorario_summary(CasosService(db).crear_honorario(caso_id, request))


@honorarios_router.patch(
    "/{honorario_id}",
    response_model=HonorarioSummary,
    summary="Actualizar honorario",
    description="El valor no se puede cambiar una vez facturado.",
    dependencies=[Depends(require_permission(Permission.HONORARIOS_EDIT))],
)
def update_honorario(
    honorario_id: str,
    request: UpdateHonorarioRequest,
    db: Session = Depends(get_db),
) -> HonorarioSummary:
    honorario = CasosService(db).actualizar_honorario(honorario_id, request)
    return _build_honorario_summary(honorario)
