"""
ENDPOINTS DE ASESORÍAS.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.serializers import lead_ref, total_pages, user_ref
from app.core.database import get_db
from app.core.permissions import Permission
from app.core.security import require_permission
from app.models.asesoria import Asesoria
from app.models.asesoria_summary import (
    AsesoriaListResponse,
    AsesoriaSummary,
    CreateAsesoriaRequest,
    UpdateAsesoriaRequest,
)
from app.models.enums import EstadoAsesoria, ModalidadAsesoria, TipoAsesoria
from app.services.asesorias_service import AsesoriasService

router = APIRouter(
    prefix="/asesorias",
    tags=["asesorias"],
)


def _build_asesoria_summary(asesoria: Asesoria) -> AsesoriaSummary:
    return AsesoriaSummary(
        id=asesoria.id,
        tipo=asesoria.tipo,
        estado=asesoria.estado,
        modalidad=asesoria.modalidad,
        fecha=asesoria.fecha,
        duracion=asesoria.duracion,
        tema=asesoria.tema,
        descripcion=asesoria.descripcion,
        valor=float(asesoria.valor) if asesoria.valor is not None else None,
        notas=asesoria.notas,
        lead=lead_ref(asesoria.lead),
        asesor=user_ref(asesoria.asesor),
        conciliaciones_count=len(asesoria.conciliaciones),
        created_at=asesoria.created_at,
    )


@router.get(
    "",
    response_model=AsesoriaListResponse,
    summary="Listar asesorías",
    description="Lista paginada ordenada por fecha de la asesoría (más recientes primero).",
    dependencies=[Depends(require_permission(Permission.ASESORIAS_VIEW))],
)
def list_asesorias(
    estado: Optional[EstadoAsesoria] = Query(None),
    tipo: Optional[TipoAsesoria] = Query(None),
    modalidad: Optional[ModalidadAsesoria] = Query(None),
    asesor_id: Optional[str] = Query(None),
    lead_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    fecha_inicio: Optional[datetime] = Query(None),
    fecha_fin: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
) -> AsesoriaListResponse:
    asesorias, total = AsesoriasService(db).listar_asesorias(
        estado=estado,
        tipo=tipo,
        modalidad=modalidad,
        asesor_id=asesor_id,
        lead_id=lead_id,
        search=search,
        fecha_inicio=fecha_inicio,
        fecha_fin=fecha_fin,
        page=page,
        limit=limit,
    )
    return AsesoriaListResponse(
        asesorias=[_build_asesoria_summary(a) for a in asesorias],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
    )


@router.post(
    "",
    response_model=AsesoriaSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Programar asesoría",
    description="Un lead NUEVO, CONTACTADO o CALIFICADO pasa a CONVERTIDO.",
    dependencies=[Depends(require_permission(Permission.ASESORIAS_CREATE))],
)
def create_asesoria(
    request: CreateAsesoriaRequest,
    db: Session = Depends(get_db),
) -> AsesoriaSummary:
    return _build_asesoria_summary(AsesoriasService(db).crear_asesoria(request))


@router.get(
    "/{asesoria_id}",
    response_model=AsesoriaSummary,
    summary="Consultar una asesoría",
    dependencies=[Depends(require_permission(Permission.ASESORIAS_VIEW))],
)
def get_asesoria(asesoria_id: str, db: Session = Depends(get_db)) -> AsesoriaSummary:
    return _build_asesoria_summary(AsesoriasService(db).obtener_asesoria(asesoria_id))


@router.patch(
    "/{asesoria_id}",
    response_model=AsesoriaSummary,
    summary="Actualizar asesoría",
    dependencies=[Depends(require_permission(Permission.ASESORIAS_EDIT))],
)
def update_asesoria(
    asesoria_id: str,
    request: UpdateAsesoriaRequest,
    db: Session = Depends(get_db),
) -> AsesoriaSummary:
    asesoria = AsesoriasService(db).actualizar_asesoria(asesoria_id, request)
    return _build_asesoria_summary(asesoria)


@router.delete(
    "/{asesoria_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Eliminar asesoría",
    description="Falla con 400 si la asesoría tiene conciliaciones.",
    dependencies=[Depends(require_permission(Permission.ASESORIAS_DELETE))],
)
def delete_asesoria(asesoria_id: str, db: Session = Depends(get_db)) -> None:
    AsesoriasService(db).eliminar_asesoria(asesoria_id)
