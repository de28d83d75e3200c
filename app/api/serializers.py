"""
Referencias compactas compartidas por los endpoints.

Los summaries completos se construyen en cada router (_build_*_summary);
aquí solo viven las referencias que aparecen anidadas en varios de ellos.
"""
from __future__ import annotations

from math import ceil
from typing import Optional

from app.models.asesoria_summary import LeadRef
from app.models.lead import Lead
from app.models.lead_summary import UserRef
from app.models.user import User


def user_ref(user: Optional[User]) -> Optional[UserRef]:
    if user is None:
        return None
    return UserRef(id=user.id, nombre=user.nombre, apellido=user.apellido, email=user.email)


def lead_ref(lead: Lead) -> LeadRef:
    return LeadRef(id=lead.id, nombre=lead.nombre, email=lead.email, telefono=lead.telefono)


def total_pages(total: int, limit: int) -> int:
    return ceil(total / limit) if limit else 0
