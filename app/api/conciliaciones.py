"""
ENDPOINTS DE CONCILIACIONES.

PATCH puede disparar la creación encadenada de cliente, caso, honorario
y factura (ver ConciliacionesService.actualizar_conciliacion). La
respuesta incluye entonces la referencia al caso creado.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.serializers import lead_ref, total_pages, user_ref
from app.core.database import get_db
from app.core.permissions import Permission
from app.core.security import require_permission
from app.models.asesoria import Conciliacion
from app.models.asesoria_summary import (
    ConciliacionListResponse,
    ConciliacionSummary,
    CreateConciliacionRequest,
    UpdateConciliacionRequest,
    UpdateConciliacionResponse,
)
from app.models.enums import EstadoConciliacion
from app.models.user import User
from app.services.conciliaciones_service import ConciliacionesService

router = APIRouter(
    prefix="/conciliaciones",
    tags=["conciliaciones"],
)


def _build_conciliacion_summary(conciliacion: Conciliacion) -> ConciliacionSummary:
    asesoria = conciliacion.asesoria
    return ConciliacionSummary(
        id=conciliacion.id,
        numero=conciliacion.numero,
        demandante=conciliacion.demandante,
        demandado=conciliacion.demandado,
        valor=float(conciliacion.valor) if conciliacion.valor is not None else None,
        estado=conciliacion.estado,
        resultado=conciliacion.resultado,
        fecha_solicitud=conciliacion.fecha_solicitud,
        fecha_audiencia=conciliacion.fecha_audiencia,
        observaciones=conciliacion.observaciones,
        asesoria_id=conciliacion.asesoria_id,
        caso_id=conciliacion.caso_id,
        lead=lead_ref(asesoria.lead),
        asesor=user_ref(asesoria.asesor),
        created_at=conciliacion.created_at,
    )


@router.get(
    "",
    response_model=ConciliacionListResponse,
    summary="Listar conciliaciones",
    dependencies=[Depends(require_permission(Permission.CONCILIACIONES_VIEW))],
)
def list_conciliaciones(
    estado: Optional[EstadoConciliacion] = Query(None),
    asesoria_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
) -> ConciliacionListResponse:
    conciliaciones, total = ConciliacionesService(db).listar_conciliaciones(
        estado=estado, asesoria_id=asesoria_id, search=search, page=page, limit=limit
    )
    return ConciliacionListResponse(
        conciliaciones=[_build_conciliacion_summary(c) for c in conciliaciones],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
    )


@router.post(
    "",
    response_model=ConciliacionSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Solicitar conciliación",
    description="Se numera como CONC-AAAA-NNNN y arranca en SOLICITADA.",
    dependencies=[Depends(require_permission(Permission.CONCILIACIONES_CREATE))],
)
def create_conciliacion(
    request: CreateConciliacionRequest,
    db: Session = Depends(get_db),
) -> ConciliacionSummary:
    conciliacion = ConciliacionesService(db).crear_conciliacion(request)
    return _build_conciliacion_summary(conciliacion)


@router.get(
    "/{conciliacion_id}",
    response_model=ConciliacionSummary,
    summary="Consultar una conciliación",
    dependencies=[Depends(require_permission(Permission.CONCILIACIONES_VIEW))],
)
def get_conciliacion(conciliacion_id: str, db: Session = Depends(get_db)) -> ConciliacionSummary:
    conciliacion = ConciliacionesService(db).obtener_conciliacion(conciliacion_id)
    return _build_conciliacion_summary(conciliacion)


@router.patch(
    "/{conciliacion_id}",
    response_model=UpdateConciliacionResponse,
    summary="Actualizar conciliación",
    description=(
        "Con estado=REALIZADA y crear_caso=true (la primera vez que se realiza) "
        "crea el cliente si no existe y un caso de liquidación judicial. "
        "Si llega valor_honorario crea además el honorario y su factura. "
        "Todo o nada."
    ),
)
def update_conciliacion(
    conciliacion_id: str,
    request: UpdateConciliacionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.CONCILIACIONES_EDIT)),
) -> UpdateConciliacionResponse:
    conciliacion, caso_creado = ConciliacionesService(db).actualizar_conciliacion(
        conciliacion_id, request, usuario_id=current_user.id
    )
    return UpdateConciliacionResponse(
        conciliacion=_build_conciliacion_summary(conciliacion),
        caso_creado=caso_creado,
    )


@router.delete(
    "/{conciliacion_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Eliminar conciliación",
    dependencies=[Depends(require_permission(Permission.CONCILIACIONES_DELETE))],
)
def delete_conciliacion(conciliacion_id: str, db: Session = Depends(get_db)) -> None:
    ConciliacionesService(db).eliminar_conciliacion(conciliacion_id)
