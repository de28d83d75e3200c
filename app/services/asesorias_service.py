"""
Servicio de asesorías.

Agendar una asesoría a un lead activo lo da por convertido.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.exceptions import EntityNotFoundException, StateConflictException
from app.core.logger import StructuredLogger
from app.models.asesoria import Asesoria
from app.models.asesoria_summary import CreateAsesoriaRequest, UpdateAsesoriaRequest
from app.models.enums import EstadoAsesoria, EstadoLead, ModalidadAsesoria, TipoAsesoria
from app.models.lead import Lead
from app.models.user import User
from app.services.amortizacion import redondear
from app.services.base import BaseService

ESTADOS_LEAD_CONVERTIBLES = {
    EstadoLead.NUEVO.value,
    EstadoLead.CONTACTADO.value,
    EstadoLead.CALIFICADO.value,
}


class AsesoriasService(BaseService):
    def __init__(self, db: Session, logger: Optional[StructuredLogger] = None):
        super().__init__(db, logger)

    def obtener_asesoria(self, asesoria_id: str) -> Asesoria:
        asesoria = self.db.query(Asesoria).filter(Asesoria.id == asesoria_id).first()
        if asesoria is None:
            raise EntityNotFoundException("Asesoría", asesoria_id)
        return asesoria

    def listar_asesorias(
        self,
        estado: Optional[EstadoAsesoria] = None,
        tipo: Optional[TipoAsesoria] = None,
        modalidad: Optional[ModalidadAsesoria] = None,
        asesor_id: Optional[str] = None,
        lead_id: Optional[str] = None,
        search: Optional[str] = None,
        fecha_inicio: Optional[datetime] = None,
        fecha_fin: Optional[datetime] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[Asesoria], int]:
        query = (
            self.db.query(Asesoria)
            .join(Lead, Asesoria.lead_id == Lead.id)
            .join(User, Asesoria.asesor_id == User.id)
        )
        if estado:
            query = query.filter(Asesoria.estado == estado.value)
        if tipo:
            query = query.filter(Asesoria.tipo == tipo.value)
        if modalidad:
            query = query.filter(Asesoria.modalidad == modalidad.value)
        if asesor_id:
            query = query.filter(Asesoria.asesor_id == asesor_id)
        if lead_id:
            query = query.filter(Asesoria.lead_id == lead_id)
        if search:
            patron = f"%{search}%"
            query = query.filter(
                or_(
                    Asesoria.tema.ilike(patron),
                    Asesoria.descripcion.ilike(patron),
                    Lead.nombre.ilike(patron),
                    User.nombre.ilike(patron),
                    User.apellido.ilike(patron),
                )
            )
        if fecha_inicio:
            query = query.filter(Asesoria.fecha >= fecha_inicio)
        if fecha_fin:
            query = query.filter(Asesoria.fecha <= fecha_fin)

        total = query.count()
        asesorias = (
            query.order_by(Asesoria.fecha.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return asesorias, total

    def crear_asesoria(self, request: CreateAsesoriaRequest) -> Asesoria:
        """
        Crea la asesoría y convierte el lead si aún estaba en gestión.

        Raises:
            EntityNotFoundException: lead o asesor inexistentes
        """
        lead = self.db.get(Lead, request.lead_id)
        if lead is None:
            raise EntityNotFoundException("Lead", request.lead_id)
        if self.db.get(User, request.asesor_id) is None:
            raise EntityNotFoundException("Asesor", request.asesor_id)

        asesoria = Asesoria(
            tipo=request.tipo.value,
            estado=request.estado.value,
            modalidad=request.modalidad.value,
            fecha=request.fecha,
            duracion=request.duracion,
            tema=request.tema,
            descripcion=request.descripcion,
            valor=redondear(request.valor) if request.valor is not None else None,
            notas=request.notas,
            lead=lead,
            asesor_id=request.asesor_id,
        )
        self.db.add(asesoria)

        convertido = lead.estado in ESTADOS_LEAD_CONVERTIBLES
        if convertido:
            lead.estado = EstadoLead.CONVERTIDO.value

        self._commit("crear_asesoria")
        self.db.refresh(asesoria)

        self._log_info(
            "Asesoría creada",
            entity_id=asesoria.id,
            action="crear_asesoria",
            lead_id=lead.id,
            lead_convertido=convertido,
        )
        return asesoria

    def actualizar_asesoria(self, asesoria_id: str, request: UpdateAsesoriaRequest) -> Asesoria:
        asesoria = self.obtener_asesoria(asesoria_id)
        cambios = request.model_dump(exclude_unset=True)

        if request.asesor_id and self.db.get(User, request.asesor_id) is None:
            raise EntityNotFoundException("Asesor", request.asesor_id)

        for campo, valor in cambios.items():
            if campo in ("tipo", "estado", "modalidad") and valor is not None:
                valor = valor.value
            elif campo == "valor" and valor is not None:
                valor = redondear(valor)
            setattr(asesoria, campo, valor)

        self._commit("actualizar_asesoria", entity_id=asesoria.id)
        self.db.refresh(asesoria)

        self._log_info(
            "Asesoría actualizada",
            entity_id=asesoria.id,
            action="actualizar_asesoria",
            campos=sorted(cambios),
        )
        return asesoria

    def eliminar_asesoria(self, asesoria_id: str) -> None:
        asesoria = self.obtener_asesoria(asesoria_id)
        if asesoria.conciliaciones:
            raise StateConflictException(
                "No se puede eliminar una asesoría que tiene conciliaciones asociadas"
            )

        self.db.delete(asesoria)
        self._commit("eliminar_asesoria", entity_id=asesoria_id)
        self._log_info("Asesoría eliminada", entity_id=asesoria_id, action="eliminar_asesoria")
