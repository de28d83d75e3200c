"""
Servicio de conciliaciones.

Cuando una conciliación se realiza y se pide crear el caso, en una sola
transacción se encadenan:
  1. cliente (el existente con el email del lead, o uno nuevo)
  2. caso de liquidación judicial con la deuda conciliada
  3. opcionalmente honorario + factura con IVA y vencimiento estándar
"""
from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.exceptions import EntityNotFoundException
from app.core.logger import StructuredLogger
from app.models.asesoria import Asesoria, Conciliacion
from app.models.asesoria_summary import (
    CasoCreadoRef,
    CreateConciliacionRequest,
    UpdateConciliacionRequest,
)
from app.models.enums import (
    EstadoConciliacion,
    ModalidadPago,
    TipoHonorario,
    TipoInsolvencia,
)
from app.models.lead import Lead
from app.services.amortizacion import redondear
from app.services.base import BaseService
from app.services.casos_service import CasosService
from app.services.facturacion_service import FacturacionService
from app.services.numeracion import PREFIJO_CONCILIACION, siguiente_numero

_CAMPOS_ENUM = ("estado", "resultado")
_CAMPOS_CASCADA = ("crear_caso", "valor_honorario")


class ConciliacionesService(BaseService):
    def __init__(self, db: Session, logger: Optional[StructuredLogger] = None):
        super().__init__(db, logger)

    def obtener_conciliacion(self, conciliacion_id: str) -> Conciliacion:
        conciliacion = (
            self.db.query(Conciliacion).filter(Conciliacion.id == conciliacion_id).first()
        )
        if conciliacion is None:
            raise EntityNotFoundException("Conciliación", conciliacion_id)
        return conciliacion

    def listar_conciliaciones(
        self,
        estado: Optional[EstadoConciliacion] = None,
        asesoria_id: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[Conciliacion], int]:
        query = (
            self.db.query(Conciliacion)
            .join(Asesoria, Conciliacion.asesoria_id == Asesoria.id)
            .join(Lead, Asesoria.lead_id == Lead.id)
        )
        if estado:
            query = query.filter(Conciliacion.estado == estado.value)
        if asesoria_id:
            query = query.filter(Conciliacion.asesoria_id == asesoria_id)
        if search:
            patron = f"%{search}%"
            query = query.filter(
                or_(
                    Conciliacion.numero.ilike(patron),
                    Conciliacion.demandante.ilike(patron),
                    Conciliacion.demandado.ilike(patron),
                    Lead.nombre.ilike(patron),
                )
            )

        total = query.count()
        conciliaciones = (
            query.order_by(Conciliacion.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return conciliaciones, total

    def crear_conciliacion(self, request: CreateConciliacionRequest) -> Conciliacion:
        asesoria = self.db.get(Asesoria, request.asesoria_id)
        if asesoria is None:
            raise EntityNotFoundException("Asesoría", request.asesoria_id)

        datos = request.model_dump(exclude_unset=True, exclude={"asesoria_id"})
        if datos.get("valor") is not None:
            datos["valor"] = redondear(datos["valor"])
        if datos.get("fecha_solicitud") is None:
            datos.pop("fecha_solicitud", None)

        conciliacion = Conciliacion(
            numero=siguiente_numero(self.db, Conciliacion.numero, PREFIJO_CONCILIACION),
            estado=EstadoConciliacion.SOLICITADA.value,
            asesoria=asesoria,
            **datos,
        )
        self.db.add(conciliacion)
        self._commit("crear_conciliacion")
        self.db.refresh(conciliacion)

        self._log_info(
            "Conciliación creada",
            entity_id=conciliacion.id,
            action="crear_conciliacion",
            numero=conciliacion.numero,
        )
        return conciliacion

    # =========================================================
    # ACTUALIZACIÓN Y CASCADA
    # =========================================================

    def actualizar_conciliacion(
        self,
        conciliacion_id: str,
        request: UpdateConciliacionRequest,
        usuario_id: Optional[str] = None,
    ) -> Tuple[Conciliacion, Optional[CasoCreadoRef]]:
        """
        Aplica los cambios y, si corresponde, crea cliente, caso, honorario
        y factura. Todo o nada.

        Returns:
            (conciliación actualizada, referencia al caso creado o None)
        """
        conciliacion = self.obtener_conciliacion(conciliacion_id)
        cambios = request.model_dump(exclude_unset=True, exclude=set(_CAMPOS_CASCADA))

        dispara_cascada = (
            request.crear_caso
            and request.estado == EstadoConciliacion.REALIZADA
            and conciliacion.estado != EstadoConciliacion.REALIZADA.value
            and conciliacion.caso_id is None
        )

        with self._transaccion("actualizar_conciliacion", entity_id=conciliacion_id):
            for campo, valor in cambios.items():
                if campo in _CAMPOS_ENUM and valor is not None:
                    valor = valor.value
                elif campo == "valor" and valor is not None:
                    valor = redondear(valor)
                setattr(conciliacion, campo, valor)

            caso_creado = None
            if dispara_cascada:
                caso_creado = self._crear_caso_desde_conciliacion(
                    conciliacion, request, usuario_id
                )

        self._commit("actualizar_conciliacion", entity_id=conciliacion.id)
        self.db.refresh(conciliacion)

        self._log_info(
            "Conciliación actualizada",
            entity_id=conciliacion.id,
            action="actualizar_conciliacion",
            campos=sorted(cambios),
            caso_creado=caso_creado.numero_caso if caso_creado else None,
        )
        return conciliacion, caso_creado

    def _crear_caso_desde_conciliacion(
        self,
        conciliacion: Conciliacion,
        request: UpdateConciliacionRequest,
        usuario_id: Optional[str],
    ) -> CasoCreadoRef:
        asesoria = conciliacion.asesoria
        lead = asesoria.lead
        casos = CasosService(self.db, self.logger)

        cliente = casos.buscar_o_preparar_cliente(
            nombre=lead.nombre,
            email=lead.email,
            telefono=lead.telefono,
            documento=lead.documento,
            tipo_persona=lead.tipo_persona,
            empresa=lead.empresa,
        )

        caso = casos.preparar_caso(
            cliente,
            TipoInsolvencia.LIQUIDACION_JUDICIAL,
            conciliacion.valor,
            responsable_id=asesoria.asesor_id,
            creado_por_id=usuario_id or asesoria.asesor_id,
            observaciones=(
                f"Caso creado automáticamente al aceptar conciliación {conciliacion.numero}. "
                f"Demandante: {conciliacion.demandante} vs {conciliacion.demandado}"
            ),
        )
        conciliacion.caso = caso

        ref = CasoCreadoRef(id=caso.id, numero_caso=caso.numero_caso, cliente_id=cliente.id)

        if request.valor_honorario is not None:
            honorario = casos.preparar_honorario(
                caso,
                TipoHonorario.REPRESENTACION,
                request.valor_honorario,
                ModalidadPago.CONTADO,
                observaciones=f"Honorarios de la conciliación {conciliacion.numero}",
            )
            factura = FacturacionService(self.db, self.logger).preparar_factura_de_honorario(
                honorario, usuario_id=usuario_id
            )
            ref.honorario_id = honorario.id
            ref.factura_id = factura.id
            ref.factura_numero = factura.numero

        self._log_info(
            "Caso creado desde conciliación",
            entity_id=caso.id,
            action="cascada_conciliacion",
            conciliacion_id=conciliacion.id,
            cliente_id=cliente.id,
            factura_id=ref.factura_id,
        )
        return ref

    def eliminar_conciliacion(self, conciliacion_id: str) -> None:
        conciliacion = self.obtener_conciliacion(conciliacion_id)
        self.db.delete(conciliacion)
        self._commit("eliminar_conciliacion", entity_id=conciliacion_id)
        self._log_info(
            "Conciliación eliminada", entity_id=conciliacion_id, action="eliminar_conciliacion"
        )
