"""
ENDPOINT DE BÚSQUEDA GLOBAL.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.permissions import Permission
from app.core.security import require_permission
from app.models.search_summary import GlobalSearchResponse
from app.services.search_service import SearchService

router = APIRouter(
    prefix="/search",
    tags=["search"],
)


@router.get(
    "/global",
    response_model=GlobalSearchResponse,
    summary="Búsqueda global",
    description=(
        "Hasta cinco coincidencias por categoría (leads, clientes, casos, "
        "facturas y conciliaciones). Con menos de dos caracteres devuelve "
        "listas vacías."
    ),
    dependencies=[Depends(require_permission(Permission.DASHBOARD_VIEW))],
)
def global_search(
    q: Optional[str] = Query(None, max_length=100),
    db: Session = Depends(get_db),
) -> GlobalSearchResponse:
    return SearchService(db).buscar(q)
