"""
Servicio de facturación.

Crea facturas sobre honorarios, aplica la tabla de transiciones de
estado y delega la financiación en el servicio de cartera.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    EntityNotFoundException,
    ImmutableInstallmentsException,
    StateConflictException,
    ValidationException,
)
from app.core.logger import StructuredLogger
from app.models.caso import Caso, Cliente, Honorario
from app.models.enums import EstadoFactura, EstadoHonorario, ModalidadPago
from app.models.factura import CuotaFactura, Factura, ItemFactura
from app.models.factura_summary import (
    CreateFacturaRequest,
    FacturacionReport,
    ItemFacturaInput,
    UpdateFacturaRequest,
)
from app.services.amortizacion import a_decimal, redondear
from app.services.base import BaseService
from app.services.cartera_service import CarteraService, marcar_honorario_pagado
from app.services.estados import validar_transicion_factura
from app.services.numeracion import PREFIJO_FACTURA, siguiente_numero

CERO = Decimal("0")


def calcular_totales(
    items: Iterable[ItemFacturaInput], iva_activado: bool, iva_tasa: Optional[float] = None
) -> Tuple[Decimal, Decimal, Decimal]:
    """
    subtotal = Σ cantidad · valor_unitario
    impuestos = subtotal · IVA (si está activado)
    total = subtotal + impuestos
    """
    tasa = a_decimal(settings.iva_tasa if iva_tasa is None else iva_tasa)
    subtotal = redondear(
        sum((item.cantidad * a_decimal(item.valor_unitario) for item in items), CERO)
    )
    impuestos = redondear(subtotal * tasa) if iva_activado else CERO
    return subtotal, impuestos, subtotal + impuestos


def descripcion_honorario(honorario: Honorario) -> str:
    return f"Honorarios profesionales - {honorario.tipo} - Caso: {honorario.caso.numero_caso}"


class FacturacionService(BaseService):
    """Ciclo de vida de las facturas."""

    def __init__(self, db: Session, logger: Optional[StructuredLogger] = None):
        super().__init__(db, logger)

    # =========================================================
    # LECTURA
    # =========================================================

    def obtener_factura(self, factura_id: str) -> Factura:
        factura = self.db.query(Factura).filter(Factura.id == factura_id).first()
        if factura is None:
            raise EntityNotFoundException("Factura", factura_id)
        return factura

    def listar_facturas(
        self,
        search: Optional[str] = None,
        estado: Optional[EstadoFactura] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Factura], int]:
        query = (
            self.db.query(Factura)
            .join(Honorario, Factura.honorario_id == Honorario.id)
            .join(Caso, Honorario.caso_id == Caso.id)
            .join(Cliente, Caso.cliente_id == Cliente.id)
        )
        if search:
            patron = f"%{search}%"
            query = query.filter(
                or_(
                    Factura.numero.ilike(patron),
                    Caso.numero_caso.ilike(patron),
                    Cliente.nombre.ilike(patron),
                    Cliente.apellido.ilike(patron),
                )
            )
        if estado:
            query = query.filter(Factura.estado == estado.value)

        total = query.count()
        facturas = (
            query.order_by(Factura.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return facturas, total

    def honorarios_disponibles(self) -> List[Honorario]:
        """Honorarios PENDIENTE que aún no tienen factura."""
        return (
            self.db.query(Honorario)
            .filter(
                Honorario.estado == EstadoHonorario.PENDIENTE.value,
                ~Honorario.facturas.any(),
            )
            .order_by(Honorario.created_at.desc())
            .all()
        )

    # =========================================================
    # CREACIÓN
    # =========================================================

    def _validar_honorario_facturable(self, honorario_id: str) -> Honorario:
        honorario = self.db.query(Honorario).filter(Honorario.id == honorario_id).first()
        if honorario is None:
            raise EntityNotFoundException("Honorario", honorario_id)
        if honorario.facturas:
            raise StateConflictException("Este honorario ya tiene facturas asociadas")
        if honorario.estado != EstadoHonorario.PENDIENTE.value:
            raise StateConflictException(
                f"Solo se pueden facturar honorarios PENDIENTE (actual: {honorario.estado})"
            )
        return honorario

    def preparar_factura(
        self,
        honorario: Honorario,
        items: List[ItemFacturaInput],
        iva_activado: bool = True,
        fecha_vencimiento: Optional[datetime] = None,
        observaciones: Optional[str] = None,
        usuario_id: Optional[str] = None,
    ) -> Factura:
        """Construye y agrega la factura a la sesión sin confirmar."""
        ahora = datetime.utcnow()
        subtotal, impuestos, total = calcular_totales(items, iva_activado)

        factura = Factura(
            numero=siguiente_numero(self.db, Factura.numero, PREFIJO_FACTURA),
            fecha=ahora,
            fecha_vencimiento=fecha_vencimiento
            or ahora + timedelta(days=settings.dias_vencimiento_factura),
            subtotal=subtotal,
            impuestos=impuestos,
            total=total,
            iva_activado=iva_activado,
            estado=EstadoFactura.GENERADA.value,
            modalidad_pago=ModalidadPago.CONTADO.value,
            observaciones=observaciones,
            honorario=honorario,
            creado_por_id=usuario_id,
            items=[self._nuevo_item(item) for item in items],
        )
        self.db.add(factura)
        self.db.flush()
        return factura

    def preparar_factura_de_honorario(
        self, honorario: Honorario, usuario_id: Optional[str] = None
    ) -> Factura:
        """Factura con un único ítem por el valor del honorario."""
        item = ItemFacturaInput(
            descripcion=descripcion_honorario(honorario),
            cantidad=1,
            valor_unitario=a_decimal(honorario.valor),
        )
        return self.preparar_factura(honorario, [item], usuario_id=usuario_id)

    def crear_factura(
        self, request: CreateFacturaRequest, usuario_id: Optional[str] = None
    ) -> Factura:
        honorario = self._validar_honorario_facturable(request.honorario_id)

        factura = self.preparar_factura(
            honorario,
            request.items,
            iva_activado=request.iva_activado,
            fecha_vencimiento=request.fecha_vencimiento,
            observaciones=request.observaciones,
            usuario_id=usuario_id,
        )
        self._commit("crear_factura", entity_id=factura.id)

        self._log_info(
            "Factura creada",
            entity_id=factura.id,
            action="crear_factura",
            numero=factura.numero,
            total=factura.total,
        )
        return factura

    @staticmethod
    def _nuevo_item(item: ItemFacturaInput) -> ItemFactura:
        valor_unitario = redondear(item.valor_unitario)
        return ItemFactura(
            descripcion=item.descripcion,
            cantidad=item.cantidad,
            valor_unitario=valor_unitario,
            valor_total=redondear(item.cantidad * valor_unitario),
        )

    # =========================================================
    # ACTUALIZACIÓN
    # =========================================================

    def actualizar_factura(self, factura_id: str, request: UpdateFacturaRequest) -> Factura:
        """
        Aplica los cambios pedidos en una sola transacción.

        Raises:
            InvalidTransitionException: el cambio de estado no está permitido
            StateConflictException: ítems fuera de GENERADA, cambio a CONTADO con cuotas
            ImmutableInstallmentsException: la factura ya tiene cuotas
        """
        factura = self.obtener_factura(factura_id)
        cambios = request.model_dump(exclude_unset=True)

        with self._transaccion("actualizar_factura", entity_id=factura_id):
            self._aplicar_cambios(factura, request, cambios)

        self._commit("actualizar_factura", entity_id=factura_id)
        self.db.refresh(factura)

        self._log_info(
            "Factura actualizada",
            entity_id=factura.id,
            action="actualizar_factura",
            campos=sorted(cambios),
            estado=factura.estado,
        )
        return factura

    def _aplicar_cambios(self, factura: Factura, request: UpdateFacturaRequest, cambios: dict):
        tiene_cuotas = bool(
            self.db.query(func.count(CuotaFactura.id))
            .filter(CuotaFactura.factura_id == factura.id)
            .scalar()
        )

        if "items" in cambios or "iva_activado" in cambios:
            if factura.estado != EstadoFactura.GENERADA.value:
                raise StateConflictException(
                    "Solo se pueden modificar los ítems de facturas en estado GENERADA"
                )
            if tiene_cuotas:
                raise ImmutableInstallmentsException(factura.id)
            self._recalcular_totales(factura, request)

        if "observaciones" in cambios:
            factura.observaciones = request.observaciones

        if request.fecha_vencimiento is not None:
            factura.fecha_vencimiento = request.fecha_vencimiento

        if request.modalidad_pago == ModalidadPago.FINANCIADO:
            if request.numero_cuotas is None:
                raise ValidationException(
                    "Debe indicar el número de cuotas para financiar", field="numero_cuotas"
                )
            CarteraService(self.db, self.logger).preparar_financiacion(
                factura,
                request.numero_cuotas,
                request.tasa_interes if request.tasa_interes is not None else CERO,
                request.fecha_inicio_financiacion,
            )
        elif request.modalidad_pago == ModalidadPago.CONTADO:
            if tiene_cuotas:
                raise StateConflictException(
                    "No se puede pasar a CONTADO una factura con cuotas generadas"
                )
            factura.modalidad_pago = ModalidadPago.CONTADO.value
            factura.numero_cuotas = None
            factura.tasa_interes = None
            factura.valor_cuota = None

        if request.estado is not None and request.estado.value != factura.estado:
            nuevo = validar_transicion_factura(factura.estado, request.estado.value)
            factura.estado = nuevo.value
            if nuevo == EstadoFactura.PAGADA:
                marcar_honorario_pagado(factura.honorario, datetime.utcnow())

    def _recalcular_totales(self, factura: Factura, request: UpdateFacturaRequest):
        iva_activado = (
            request.iva_activado if request.iva_activado is not None else factura.iva_activado
        )
        if request.items is not None:
            items = request.items
            factura.items.clear()
            factura.items.extend(self._nuevo_item(item) for item in items)
        else:
            items = [
                ItemFacturaInput(
                    descripcion=i.descripcion, cantidad=i.cantidad, valor_unitario=i.valor_unitario
                )
                for i in factura.items
            ]

        subtotal, impuestos, total = calcular_totales(items, iva_activado)
        factura.iva_activado = iva_activado
        factura.subtotal = subtotal
        factura.impuestos = impuestos
        factura.total = total

    # =========================================================
    # ELIMINACIÓN
    # =========================================================

    def eliminar_factura(self, factura_id: str) -> None:
        factura = self.obtener_factura(factura_id)
        if factura.estado != EstadoFactura.GENERADA.value:
            raise StateConflictException("Solo se pueden eliminar facturas en estado GENERADA")
        if factura.pagos:
            raise StateConflictException("No se puede eliminar una factura con pagos registrados")

        self.db.delete(factura)
        self._commit("eliminar_factura", entity_id=factura_id)
        self._log_info("Factura eliminada", entity_id=factura_id, action="eliminar_factura")

    # =========================================================
    # REPORTES
    # =========================================================

    def reporte_facturacion(
        self, desde: Optional[datetime] = None, hasta: Optional[datetime] = None
    ) -> FacturacionReport:
        """Totales facturados, pagados y pendientes (sin anuladas) en el rango."""
        query = self.db.query(Factura)
        if desde:
            query = query.filter(Factura.fecha >= desde)
        if hasta:
            query = query.filter(Factura.fecha <= hasta)
        facturas = query.all()

        por_estado = {estado.value: 0 for estado in EstadoFactura}
        for f in facturas:
            por_estado[f.estado] += 1

        vigentes = [f for f in facturas if f.estado != EstadoFactura.ANULADA.value]
        total_facturado = sum((a_decimal(f.total) for f in vigentes), CERO)
        total_pagado = sum(
            (
                a_decimal(f.total) if f.estado == EstadoFactura.PAGADA.value else f.total_pagado
                for f in vigentes
            ),
            CERO,
        )
        total_pendiente = total_facturado - total_pagado

        return FacturacionReport(
            desde=desde,
            hasta=hasta,
            total_facturado=float(total_facturado),
            total_pagado=float(total_pagado),
            total_pendiente=float(total_pendiente if total_pendiente > 0 else CERO),
            porcentaje_pagado=(
                float(total_pagado / total_facturado * 100) if total_facturado > 0 else 0.0
            ),
            facturas_por_estado=por_estado,
            cantidad_facturas=len(facturas),
        )
