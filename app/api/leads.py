"""
ENDPOINTS DE LEADS Y SEGUIMIENTOS.

La lógica (validación de documento y teléfono, unicidad, fecha de
seguimiento automática) vive en LeadsService; esta capa solo traduce.
"""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.serializers import total_pages, user_ref
from app.core.database import get_db
from app.core.permissions import Permission
from app.core.security import require_permission
from app.models.enums import EstadoLead, TipoPersona
from app.models.lead import Lead, Seguimiento
from app.models.lead_summary import (
    CreateLeadRequest,
    CreateSeguimientoRequest,
    LeadListResponse,
    LeadSummary,
    SeguimientoSummary,
    UpdateLeadRequest,
)
from app.models.user import User
from app.services.leads_service import LeadsService

router = APIRouter(
    prefix="/leads",
    tags=["leads"],
)


def _build_lead_summary(lead: Lead) -> LeadSummary:
    return LeadSummary(
        id=lead.id,
        nombre=lead.nombre,
        email=lead.email,
        telefono=lead.telefono,
        empresa=lead.empresa,
        tipo_persona=lead.tipo_persona,
        documento=lead.documento,
        estado=lead.estado,
        origen=lead.origen,
        observaciones=lead.observaciones,
        fecha_seguimiento=lead.fecha_seguimiento,
        responsable=user_ref(lead.responsable),
        asesorias_count=len(lead.asesorias),
        seguimientos_count=len(lead.seguimientos),
        created_at=lead.created_at,
        updated_at=lead.updated_at,
    )


def _build_seguimiento_summary(seguimiento: Seguimiento) -> SeguimientoSummary:
    return SeguimientoSummary(
        id=seguimiento.id,
        lead_id=seguimiento.lead_id,
        tipo=seguimiento.tipo,
        descripcion=seguimiento.descripcion,
        duracion=seguimiento.duracion,
        resultado=seguimiento.resultado,
        proximo_seguimiento=seguimiento.proximo_seguimiento,
        usuario=user_ref(seguimiento.usuario),
        created_at=seguimiento.created_at,
    )


@router.get(
    "",
    response_model=LeadListResponse,
    summary="Listar leads",
    description=(
        "Lista paginada de leads, más recientes primero. "
        "search busca en nombre, email, empresa y documento."
    ),
    dependencies=[Depends(require_permission(Permission.LEADS_VIEW))],
)
def list_leads(
    estado: Optional[EstadoLead] = Query(None),
    tipo_persona: Optional[TipoPersona] = Query(None),
    responsable_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
) -> LeadListResponse:
    leads, total = LeadsService(db).listar_leads(
        estado=estado,
        tipo_persona=tipo_persona,
        responsable_id=responsable_id,
        search=search,
        page=page,
        limit=limit,
    )
    return LeadListResponse(
        leads=[_build_lead_summary(lead) for lead in leads],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
    )


@router.post(
    "",
    response_model=LeadSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Crear lead",
    description="Sin responsable explícito el lead queda asignado a quien lo crea.",
)
def create_lead(
    request: CreateLeadRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.LEADS_CREATE)),
) -> LeadSummary:
    lead = LeadsService(db).crear_lead(request, usuario_id=current_user.id)
    return _build_lead_summary(lead)


@router.get(
    "/{lead_id}",
    response_model=LeadSummary,
    summary="Consultar un lead",
    dependencies=[Depends(require_permission(Permission.LEADS_VIEW))],
)
def get_lead(lead_id: str, db: Session = Depends(get_db)) -> LeadSummary:
    return _build_lead_summary(LeadsService(db).obtener_lead(lead_id))


@router.patch(
    "/{lead_id}",
    response_model=LeadSummary,
    summary="Actualizar lead",
    description=(
        "Al pasar a CONTACTADO sin fecha de seguimiento se programa una "
        "a tres días."
    ),
    dependencies=[Depends(require_permission(Permission.LEADS_EDIT))],
)
def update_lead(
    lead_id: str,
    request: UpdateLeadRequest,
    db: Session = Depends(get_db),
) -> LeadSummary:
    return _build_lead_summary(LeadsService(db).actualizar_lead(lead_id, request))


@router.delete(
    "/{lead_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Eliminar lead",
    description="Falla con 400 si el lead tiene asesorías.",
    dependencies=[Depends(require_permission(Permission.LEADS_DELETE))],
)
def delete_lead(lead_id: str, db: Session = Depends(get_db)) -> None:
    LeadsService(db).eliminar_lead(lead_id)


# =========================================================
# SEGUIMIENTOS
# =========================================================


@router.get(
    "/{lead_id}/seguimientos",
    response_model=List[SeguimientoSummary],
    summary="Historial de seguimientos de un lead",
    dependencies=[Depends(require_permission(Permission.SEGUIMIENTOS_VIEW))],
)
def list_seguimientos(lead_id: str, db: Session = Depends(get_db)) -> List[SeguimientoSummary]:
    seguimientos = LeadsService(db).listar_seguimientos(lead_id)
    return [_build_seguimiento_summary(s) for s in seguimientos]


@router.post(
    "/{lead_id}/seguimientos",
    response_model=SeguimientoSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Registrar seguimiento",
)
def create_seguimiento(
    lead_id: str,
    request: CreateSeguimientoRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.SEGUIMIENTOS_CREATE)),
) -> SeguimientoSummary:
    seguimiento = LeadsService(db).crear_seguimiento(lead_id, request, usuario_id=current_user.id)
    return _build_seguimiento_summary(seguimiento)
