"""
Servicio de clientes, casos de insolvencia y honorarios.

Reglas de negocio (normativa colombiana de insolvencia):
- valor de la deuda acotado según el tipo de proceso
- prioridad calculada si no se indica
- cerrar un caso fija la fecha de cierre, reactivarlo la borra
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
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
from app.models.caso import Caso, Cliente, Honorario
from app.models.caso_summary import (
    CreateCasoRequest,
    CreateClienteRequest,
    CreateHonorarioRequest,
    UpdateCasoRequest,
    UpdateHonorarioRequest,
)
from app.models.enums import (
    EstadoCaso,
    EstadoHonorario,
    ModalidadPago,
    Prioridad,
    TipoHonorario,
    TipoInsolvencia,
    TipoPersona,
)
from app.models.user import User
from app.services.amortizacion import Numero, a_decimal, redondear
from app.services.base import BaseService
from app.services.numeracion import PREFIJO_CASO, siguiente_numero

DEUDA_MAXIMA_PERSONA_NATURAL = Decimal("5000000000")
DEUDA_MINIMA_EMPRESARIAL = Decimal("100000000")

UMBRAL_CRITICA = Decimal("1000000000")
UMBRAL_ALTA = Decimal("500000000")


# =========================================================
# REGLAS PURAS
# =========================================================


def validar_valor_deuda(valor_deuda: Numero, tipo_insolvencia: TipoInsolvencia) -> bool:
    valor = a_decimal(valor_deuda)
    tipo = TipoInsolvencia(tipo_insolvencia)
    if tipo == TipoInsolvencia.INSOLVENCIA_PERSONA_NATURAL:
        return valor <= DEUDA_MAXIMA_PERSONA_NATURAL
    if tipo in (TipoInsolvencia.REORGANIZACION, TipoInsolvencia.LIQUIDACION_JUDICIAL):
        return valor >= DEUDA_MINIMA_EMPRESARIAL
    return True


def calcular_prioridad(
    valor_deuda: Numero,
    fecha_inicio: datetime,
    tipo_insolvencia: TipoInsolvencia,
    hoy: Optional[datetime] = None,
) -> Prioridad:
    """
    - deuda > 1.000M                      -> CRITICA
    - deuda > 500M o más de 90 días       -> ALTA
    - liquidación judicial                -> ALTA
    - más de 30 días                      -> MEDIA
    - resto                               -> BAJA
    """
    hoy = hoy or datetime.utcnow()
    valor = a_decimal(valor_deuda)
    dias = (hoy - fecha_inicio).days

    if valor > UMBRAL_CRITICA:
        return Prioridad.CRITICA
    if valor > UMBRAL_ALTA or dias > 90:
        return Prioridad.ALTA
    if TipoInsolvencia(tipo_insolvencia) == TipoInsolvencia.LIQUIDACION_JUDICIAL:
        return Prioridad.ALTA
    if dias > 30:
        return Prioridad.MEDIA
    return Prioridad.BAJA


class CasosService(BaseService):
    """Clientes, casos y honorarios."""

    def __init__(self, db: Session, logger: Optional[StructuredLogger] = None):
        super().__init__(db, logger)

    # =========================================================
    # CLIENTES
    # =========================================================

    def obtener_cliente(self, cliente_id: str) -> Cliente:
        cliente = self.db.get(Cliente, cliente_id)
        if cliente is None:
            raise EntityNotFoundException("Cliente", cliente_id)
        return cliente

    def listar_clientes(self, search: Optional[str] = None) -> List[Cliente]:
        query = self.db.query(Cliente)
        if search:
            patron = f"%{search}%"
            query = query.filter(
                or_(
                    Cliente.nombre.ilike(patron),
                    Cliente.apellido.ilike(patron),
                    Cliente.email.ilike(patron),
                    Cliente.documento.ilike(patron),
                )
            )
        return query.order_by(Cliente.nombre).all()

    def crear_cliente(self, request: CreateClienteRequest) -> Cliente:
        if self.db.query(Cliente.id).filter(Cliente.email == request.email).first():
            raise DuplicateEntityException("Ya existe un cliente con este email", field="email")
        if (
            request.documento
            and self.db.query(Cliente.id).filter(Cliente.documento == request.documento).first()
        ):
            raise DuplicateEntityException(
                "Ya existe un cliente con este documento", field="documento"
            )

        cliente = Cliente(
            nombre=request.nombre,
            apellido=request.apellido,
            email=request.email,
            telefono=request.telefono,
            documento=request.documento,
            tipo_persona=request.tipo_persona.value,
            empresa=request.empresa,
        )
        self.db.add(cliente)
        self._commit("crear_cliente")
        self.db.refresh(cliente)

        self._log_info("Cliente creado", entity_id=cliente.id, action="crear_cliente")
        return cliente

    def buscar_o_preparar_cliente(
        self,
        nombre: str,
        email: str,
        telefono: Optional[str] = None,
        documento: Optional[str] = None,
        tipo_persona: TipoPersona = TipoPersona.NATURAL,
        empresa: Optional[str] = None,
    ) -> Cliente:
        """Cliente existente con ese email, o uno nuevo agregado a la sesión sin confirmar."""
        cliente = self.db.query(Cliente).filter(Cliente.email == email).first()
        if cliente is not None:
            return cliente

        if documento and self.db.query(Cliente.id).filter(Cliente.documento == documento).first():
            documento = None

        cliente = Cliente(
            nombre=nombre,
            email=email,
            telefono=telefono,
            documento=documento,
            tipo_persona=TipoPersona(tipo_persona).value,
            empresa=empresa,
        )
        self.db.add(cliente)
        self.db.flush()
        return cliente

    # =========================================================
    # CASOS - LECTURA
    # =========================================================

    def obtener_caso(self, caso_id: str) -> Caso:
        caso = self.db.query(Caso).filter(Caso.id == caso_id).first()
        if caso is None:
            raise EntityNotFoundException("Caso", caso_id)
        return caso

    def listar_casos(
        self,
        estado: Optional[EstadoCaso] = None,
        tipo_insolvencia: Optional[TipoInsolvencia] = None,
        prioridad: Optional[Prioridad] = None,
        responsable_id: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Caso], int]:
        query = self.db.query(Caso).join(Cliente, Caso.cliente_id == Cliente.id)
        if estado:
            query = query.filter(Caso.estado == estado.value)
        if tipo_insolvencia:
            query = query.filter(Caso.tipo_insolvencia == tipo_insolvencia.value)
        if prioridad:
            query = query.filter(Caso.prioridad == prioridad.value)
        if responsable_id:
            query = query.filter(Caso.responsable_id == responsable_id)
        if search:
            patron = f"%{search}%"
            query = query.filter(
                or_(
                    Caso.numero_caso.ilike(patron),
                    Cliente.nombre.ilike(patron),
                    Cliente.apellido.ilike(patron),
                    Caso.observaciones.ilike(patron),
                )
            )

        total = query.count()
        casos = (
            query.order_by(Caso.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return casos, total

    # =========================================================
    # CASOS - ESCRITURA
    # =========================================================

    def _validar_usuario(self, usuario_id: Optional[str], entidad: str = "Responsable"):
        if usuario_id and self.db.get(User, usuario_id) is None:
            raise EntityNotFoundException(entidad, usuario_id)

    def preparar_caso(
        self,
        cliente: Cliente,
        tipo_insolvencia: TipoInsolvencia,
        valor_deuda: Optional[Numero],
        prioridad: Optional[Prioridad] = None,
        responsable_id: Optional[str] = None,
        creado_por_id: Optional[str] = None,
        fecha_inicio: Optional[datetime] = None,
        observaciones: Optional[str] = None,
    ) -> Caso:
        """Construye el caso numerado y lo agrega a la sesión sin confirmar."""
        tipo_insolvencia = TipoInsolvencia(tipo_insolvencia)
        fecha_inicio = fecha_inicio or datetime.utcnow()
        deuda = redondear(valor_deuda) if valor_deuda is not None else None

        if prioridad is None:
            prioridad = calcular_prioridad(deuda or 0, fecha_inicio, tipo_insolvencia)

        caso = Caso(
            numero_caso=siguiente_numero(self.db, Caso.numero_caso, PREFIJO_CASO),
            tipo_insolvencia=tipo_insolvencia.value,
            estado=EstadoCaso.ACTIVO.value,
            prioridad=Prioridad(prioridad).value,
            valor_deuda=deuda,
            fecha_inicio=fecha_inicio,
            observaciones=observaciones,
            cliente=cliente,
            responsable_id=responsable_id,
            creado_por_id=creado_por_id,
        )
        self.db.add(caso)
        self.db.flush()
        return caso

    def crear_caso(self, request: CreateCasoRequest, usuario_id: Optional[str] = None) -> Caso:
        """
        Raises:
            ValidationException: valor de deuda fuera del rango del tipo
            EntityNotFoundException: cliente o responsable inexistentes
        """
        if not validar_valor_deuda(request.valor_deuda, request.tipo_insolvencia):
            raise ValidationException(
                "El valor de la deuda no es válido para el tipo de insolvencia seleccionado",
                field="valor_deuda",
            )
        cliente = self.obtener_cliente(request.cliente_id)
        responsable_id = request.responsable_id or usuario_id
        self._validar_usuario(responsable_id)

        caso = self.preparar_caso(
            cliente,
            request.tipo_insolvencia,
            request.valor_deuda,
            prioridad=request.prioridad,
            responsable_id=responsable_id,
            creado_por_id=usuario_id,
            fecha_inicio=request.fecha_inicio,
            observaciones=request.observaciones,
        )
        self._commit("crear_caso", entity_id=caso.id)

        self._log_info(
            "Caso creado",
            entity_id=caso.id,
            action="crear_caso",
            numero_caso=caso.numero_caso,
            prioridad=caso.prioridad,
        )
        return caso

    def actualizar_caso(self, caso_id: str, request: UpdateCasoRequest) -> Caso:
        caso = self.obtener_caso(caso_id)
        cambios = request.model_dump(exclude_unset=True)

        tipo = request.tipo_insolvencia or TipoInsolvencia(caso.tipo_insolvencia)
        if request.valor_deuda is not None and not validar_valor_deuda(request.valor_deuda, tipo):
            raise ValidationException(
                "El valor de la deuda no es válido para el tipo de insolvencia seleccionado",
                field="valor_deuda",
            )
        if request.cliente_id:
            self.obtener_cliente(request.cliente_id)
        if request.responsable_id:
            self._validar_usuario(request.responsable_id)

        estado_anterior = caso.estado
        for campo, valor in cambios.items():
            if campo in ("estado", "tipo_insolvencia", "prioridad") and valor is not None:
                valor = valor.value
            elif campo == "valor_deuda" and valor is not None:
                valor = redondear(valor)
            setattr(caso, campo, valor)

        if request.estado == EstadoCaso.CERRADO and request.fecha_cierre is None:
            caso.fecha_cierre = datetime.utcnow()
        if request.estado == EstadoCaso.ACTIVO and estado_anterior == EstadoCaso.CERRADO.value:
            caso.fecha_cierre = None

        self._commit("actualizar_caso", entity_id=caso.id)
        self.db.refresh(caso)

        self._log_info(
            "Caso actualizado",
            entity_id=caso.id,
            action="actualizar_caso",
            campos=sorted(cambios),
            estado=caso.estado,
        )
        return caso

    def eliminar_caso(self, caso_id: str) -> None:
        caso = self.obtener_caso(caso_id)
        if caso.honorarios:
            raise StateConflictException(
                "No se puede eliminar un caso que tiene honorarios asociados"
            )

        self.db.delete(caso)
        self._commit("eliminar_caso", entity_id=caso_id)
        self._log_info("Caso eliminado", entity_id=caso_id, action="eliminar_caso")

    # =========================================================
    # HONORARIOS
    # =========================================================

    def obtener_honorario(self, honorario_id: str) -> Honorario:
        honorario = self.db.get(Honorario, honorario_id)
        if honorario is None:
            raise EntityNotFoundException("Honorario", honorario_id)
        return honorario

    def listar_honorarios(self, caso_id: str) -> List[Honorario]:
        caso = self.obtener_caso(caso_id)
        return sorted(caso.honorarios, key=lambda h: h.created_at, reverse=True)

    def preparar_honorario(
        self,
        caso: Caso,
        tipo: TipoHonorario,
        valor: Numero,
        modalidad_pago: ModalidadPago = ModalidadPago.CONTADO,
        observaciones: Optional[str] = None,
    ) -> Honorario:
        honorario = Honorario(
            tipo=TipoHonorario(tipo).value,
            valor=redondear(valor),
            modalidad_pago=ModalidadPago(modalidad_pago).value,
            estado=EstadoHonorario.PENDIENTE.value,
            observaciones=observaciones,
            caso=caso,
        )
        self.db.add(honorario)
        self.db.flush()
        return honorario

    def crear_honorario(self, caso_id: str, request: CreateHonorarioRequest) -> Honorario:
        caso = self.obtener_caso(caso_id)
        honorario = self.preparar_honorario(
            caso, request.tipo, request.valor, request.modalidad_pago, request.observaciones
        )
        self._commit("crear_honorario", entity_id=honorario.id)

        self._log_info(
            "Honorario creado",
            entity_id=honorario.id,
            action="crear_honorario",
            caso_id=caso.id,
            valor=honorario.valor,
        )
        return honorario

    def actualizar_honorario(
        self, honorario_id: str, request: UpdateHonorarioRequest
    ) -> Honorario:
        """El valor solo puede cambiar mientras el honorario no tenga facturas."""
        honorario = self.obtener_honorario(honorario_id)
        cambios = request.model_dump(exclude_unset=True)

        if "valor" in cambios and honorario.facturas:
            raise StateConflictException(
                "No se puede modificar el valor de un honorario ya facturado"
            )

        for campo, valor in cambios.items():
            if campo in ("tipo", "modalidad_pago", "estado") and valor is not None:
                valor = valor.value
            elif campo == "valor" and valor is not None:
                valor = redondear(valor)
            setattr(honorario, campo, valor)

        if request.estado == EstadoHonorario.PAGADO and honorario.fecha_pago is None:
            honorario.fecha_pago = datetime.utcnow()

        self._commit("actualizar_honorario", entity_id=honorario.id)
        self.db.refresh(honorario)

        self._log_info(
            "Honorario actualizado",
            entity_id=honorario.id,
            action="actualizar_honorario",
            campos=sorted(cambios),
        )
        return honorario
