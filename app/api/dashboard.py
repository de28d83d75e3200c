"""
ENDPOINT DEL TABLERO PRINCIPAL.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.permissions import Permission
from app.core.security import require_permission
from app.models.dashboard_summary import DashboardStats
from app.services.dashboard_service import DashboardService

router = APIRouter(
    prefix="/dashboard",
    tags=["dashboard"],
)


@router.get(
    "/stats",
    response_model=DashboardStats,
    summary="Indicadores del tablero",
    description=(
        "Leads nuevos (semana actual frente a la anterior), casos activos "
        "(mes actual frente al anterior) y estado de la cartera."
    ),
    dependencies=[Depends(require_permission(Permission.DASHBOARD_VIEW))],
)
def get_stats(db: Session = Depends(get_db)) -> DashboardStats:
    return DashboardService(db).estadisticas()
