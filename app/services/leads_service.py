"""
Servicio de leads y seguimientos comerciales.
"""
from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.exceptions import (
    DuplicateEntityException,
    EntityNotFoundException,
    StateConflictException,
    ValidationException,
)
from app.core.logger import StructuredLogger
from app.models.enums import EstadoLead, TipoPersona
from app.models.lead import Lead, Seguimiento
from app.models.lead_summary import (
    CreateLeadRequest,
    CreateSeguimientoRequest,
    UpdateLeadRequest,
)
from app.models.user import User
from app.services.base import BaseService

DIAS_SEGUIMIENTO_CONTACTADO = 3

_CEDULA = re.compile(r"^\d{7,10}$")
_NIT = re.compile(r"^\d{9,10}$")
_TELEFONO = re.compile(r"^(3\d{9}|[1-8]\d{6,7})$")


# =========================================================
# VALIDACIONES COLOMBIA
# =========================================================


def validar_documento_colombia(documento: Optional[str], tipo_persona: TipoPersona) -> bool:
    """Cédula (7-10 dígitos) para persona natural, NIT (9-10) para jurídica."""
    if not documento:
        return True
    patron = _CEDULA if TipoPersona(tipo_persona) == TipoPersona.NATURAL else _NIT
    return bool(patron.match(documento))


def validar_telefono_colombia(telefono: str) -> bool:
    """Celular de 10 dígitos empezando por 3, o fijo de 7-8 dígitos."""
    return bool(_TELEFONO.match(telefono))


class LeadsService(BaseService):
    """Gestión de prospectos y de su historial de contacto."""

    def __init__(self, db: Session, logger: Optional[StructuredLogger] = None):
        super().__init__(db, logger)

    # =========================================================
    # LECTURA
    # =========================================================

    def obtener_lead(self, lead_id: str) -> Lead:
        lead = self.db.query(Lead).filter(Lead.id == lead_id).first()
        if lead is None:
            raise EntityNotFoundException("Lead", lead_id)
        return lead

    def listar_leads(
        self,
        estado: Optional[EstadoLead] = None,
        tipo_persona: Optional[TipoPersona] = None,
        responsable_id: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[Lead], int]:
        query = self.db.query(Lead)
        if estado:
            query = query.filter(Lead.estado == estado.value)
        if tipo_persona:
            query = query.filter(Lead.tipo_persona == tipo_persona.value)
        if responsable_id:
            query = query.filter(Lead.responsable_id == responsable_id)
        if search:
            patron = f"%{search}%"
            query = query.filter(
                or_(
                    Lead.nombre.ilike(patron),
                    Lead.email.ilike(patron),
                    Lead.empresa.ilike(patron),
                    Lead.documento.ilike(patron),
                )
            )

        total = query.count()
        leads = (
            query.order_by(Lead.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return leads, total

    # =========================================================
    # VALIDACIONES DE NEGOCIO
    # =========================================================

    def _validar_datos(
        self,
        documento: Optional[str],
        tipo_persona: TipoPersona,
        telefono: Optional[str],
    ):
        if not validar_documento_colombia(documento, tipo_persona):
            raise ValidationException(
                "Documento inválido para el tipo de persona seleccionado", field="documento"
            )
        if telefono is not None and not validar_telefono_colombia(telefono):
            raise ValidationException("Número de teléfono inválido", field="telefono")

    def _validar_unicos(
        self, email: Optional[str], documento: Optional[str], excluir_id: Optional[str] = None
    ):
        if email:
            query = self.db.query(Lead.id).filter(Lead.email == email)
            if excluir_id:
                query = query.filter(Lead.id != excluir_id)
            if query.first():
                raise DuplicateEntityException("Ya existe un lead con este email", field="email")
        if documento:
            query = self.db.query(Lead.id).filter(Lead.documento == documento)
            if excluir_id:
                query = query.filter(Lead.id != excluir_id)
            if query.first():
                raise DuplicateEntityException(
                    "Ya existe un lead con este documento", field="documento"
                )

    def _validar_responsable(self, responsable_id: Optional[str]):
        if responsable_id and self.db.get(User, responsable_id) is None:
            raise EntityNotFoundException("Responsable", responsable_id)

    # =========================================================
    # ESCRITURA
    # =========================================================

    def crear_lead(self, request: CreateLeadRequest, usuario_id: Optional[str] = None) -> Lead:
        self._validar_datos(request.documento, request.tipo_persona, request.telefono)
        self._validar_unicos(request.email, request.documento)

        responsable_id = request.responsable_id or usuario_id
        self._validar_responsable(responsable_id)

        lead = Lead(
            nombre=request.nombre,
            email=request.email,
            telefono=request.telefono,
            empresa=request.empresa,
            tipo_persona=request.tipo_persona.value,
            documento=request.documento,
            estado=EstadoLead.NUEVO.value,
            origen=request.origen,
            observaciones=request.observaciones,
            responsable_id=responsable_id,
        )
        self.db.add(lead)
        self._commit("crear_lead")
        self.db.refresh(lead)

        self._log_info("Lead creado", entity_id=lead.id, action="crear_lead", email=lead.email)
        return lead

    def actualizar_lead(
        self, lead_id: str, request: UpdateLeadRequest, ahora: Optional[datetime] = None
    ) -> Lead:
        """
        Actualiza un lead.

        Pasar a CONTACTADO programa el siguiente seguimiento a tres días,
        salvo que se indique otra fecha.
        """
        lead = self.obtener_lead(lead_id)
        cambios = request.model_dump(exclude_unset=True)
        ahora = ahora or datetime.utcnow()

        tipo_persona = request.tipo_persona or TipoPersona(lead.tipo_persona)
        documento = cambios.get("documento", lead.documento)
        if "documento" in cambios or "tipo_persona" in cambios:
            self._validar_datos(documento, tipo_persona, None)
        if request.telefono is not None:
            self._validar_datos(None, tipo_persona, request.telefono)

        self._validar_unicos(
            request.email if request.email and request.email != lead.email else None,
            request.documento if request.documento and request.documento != lead.documento else None,
            excluir_id=lead.id,
        )
        if "responsable_id" in cambios:
            self._validar_responsable(request.responsable_id)

        for campo, valor in cambios.items():
            if campo in ("estado", "tipo_persona") and valor is not None:
                valor = valor.value
            setattr(lead, campo, valor)

        if (
            request.estado == EstadoLead.CONTACTADO
            and "fecha_seguimiento" not in cambios
        ):
            lead.fecha_seguimiento = ahora + timedelta(days=DIAS_SEGUIMIENTO_CONTACTADO)

        self._commit("actualizar_lead", entity_id=lead.id)
        self.db.refresh(lead)

        self._log_info(
            "Lead actualizado",
            entity_id=lead.id,
            action="actualizar_lead",
            campos=sorted(cambios),
            estado=lead.estado,
        )
        return lead

    def eliminar_lead(self, lead_id: str) -> None:
        lead = self.obtener_lead(lead_id)
        if lead.asesorias:
            raise StateConflictException(
                "No se puede eliminar un lead que tiene asesorías asociadas"
            )

        self.db.delete(lead)
        self._commit("eliminar_lead", entity_id=lead_id)
        self._log_info("Lead eliminado", entity_id=lead_id, action="eliminar_lead")

    # =========================================================
    # SEGUIMIENTOS
    # =========================================================

    def listar_seguimientos(self, lead_id: str) -> List[Seguimiento]:
        return self.obtener_lead(lead_id).seguimientos

    def crear_seguimiento(
        self, lead_id: str, request: CreateSeguimientoRequest, usuario_id: str
    ) -> Seguimiento:
        """Registra un contacto y marca la fecha de seguimiento del lead."""
        lead = self.obtener_lead(lead_id)
        ahora = datetime.utcnow()

        seguimiento = Seguimiento(
            usuario_id=usuario_id,
            tipo=request.tipo.value,
            descripcion=request.descripcion,
            duracion=request.duracion,
            resultado=request.resultado,
            proximo_seguimiento=request.proximo_seguimiento,
            created_at=ahora,
        )
        lead.seguimientos.append(seguimiento)
        lead.fecha_seguimiento = ahora

        self._commit("crear_seguimiento", entity_id=lead.id)
        self.db.refresh(seguimiento)

        self._log_info(
            "Seguimiento registrado",
            entity_id=lead.id,
            action="crear_seguimiento",
            tipo=seguimiento.tipo,
        )
        return seguimiento
