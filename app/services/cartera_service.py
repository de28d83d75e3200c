"""
Servicio de cartera: financiación, aplicación de pagos y seguimiento de cuotas.

La aplicación de un pago es una única unidad de trabajo:
  1. bloquea la factura y sus cuotas (SELECT ... FOR UPDATE donde aplique)
  2. recalcula los saldos desde las aplicaciones registradas
  3. distribuye (automática o manual)
  4. crea Pago + PagoCuota y actualiza estado/valor_pagado/saldo de cada cuota
  5. confirma o hace rollback completo
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    EntityNotFoundException,
    ImmutableInstallmentsException,
    OverAllocationException,
    StateConflictException,
    ValidationException,
)
from app.core.logger import StructuredLogger
from app.models.caso import Caso, Cliente, Honorario
from app.models.enums import (
    EstadoCuota,
    EstadoFactura,
    EstadoHonorario,
    FiltroCartera,
    ModalidadPago,
)
from app.models.factura import CuotaFactura, Factura, Pago, PagoCuota
from app.models.cartera_summary import (
    ActualizacionVencimientosResponse,
    AplicacionSummary,
    AplicarPagoRequest,
    AplicarPagoResponse,
    CarteraListResponse,
    CarteraVencidaItem,
    CuotaSeguimiento,
    DistribucionHistorial,
    FacturaCartera,
    FacturaCarteraRef,
    FilaAmortizacionSummary,
    HistorialPago,
    PagoAplicadoEnCuota,
    ResumenCuotas,
    SeguimientoCuotasResponse,
    TablaAmortizacionResponse,
)
from app.models.factura_summary import CasoRef, ClienteRef, PagoSummary
from app.services.amortizacion import a_decimal, generar_tabla_amortizacion, redondear
from app.services.base import BaseService
from app.services.distribucion_pagos import (
    ResultadoDistribucion,
    SaldoCuota,
    distribuir_automaticamente,
    validar_distribucion_manual,
)
from app.services.estados import (
    ESTADOS_FACTURA_TERMINALES,
    derivar_estado_cuota,
    dias_vencido,
    puede_transicionar_cuota,
    puede_transicionar_factura,
    validar_transicion_cuota,
)

CERO = Decimal("0")

OBS_APLICACION_AUTOMATICA = "Aplicación automática"
OBS_APLICACION_MANUAL = "Aplicación manual"


# =========================================================
# CONVERSIONES A CONTRATOS DE API
# =========================================================


def pago_a_summary(pago: Pago) -> PagoSummary:
    return PagoSummary(
        id=pago.id,
        valor=float(pago.valor),
        fecha=pago.fecha,
        metodo_pago=pago.metodo_pago,
        referencia=pago.referencia,
        observaciones=pago.observaciones,
    )


def cliente_ref(cliente: Cliente) -> ClienteRef:
    return ClienteRef(
        id=cliente.id,
        nombre=cliente.nombre,
        apellido=cliente.apellido or "",
        email=cliente.email,
    )


def caso_ref(caso: Caso) -> CasoRef:
    return CasoRef(id=caso.id, numero_caso=caso.numero_caso)


class CarteraService(BaseService):
    """Gestión de cartera de facturas financiadas."""

    def __init__(self, db: Session, logger: Optional[StructuredLogger] = None):
        super().__init__(db, logger)

    # =========================================================
    # LECTURAS AUXILIARES
    # =========================================================

    def _get_factura(self, factura_id: str, bloquear: bool = False) -> Factura:
        query = self.db.query(Factura).filter(Factura.id == factura_id)
        if bloquear:
            query = query.with_for_update()
        factura = query.first()
        if factura is None:
            raise EntityNotFoundException("Factura", factura_id)
        return factura

    def _pagado_por_cuota(self, cuota_ids: List[str]) -> Dict[str, Decimal]:
        """Suma de aplicaciones por cuota, leída de PagoCuota (no del cache)."""
        if not cuota_ids:
            return {}
        filas = (
            self.db.query(PagoCuota.cuota_id, func.sum(PagoCuota.valor_aplicado))
            .filter(PagoCuota.cuota_id.in_(cuota_ids))
            .group_by(PagoCuota.cuota_id)
            .all()
        )
        return {cuota_id: a_decimal(total or 0) for cuota_id, total in filas}

    def _saldos(self, cuotas: List[CuotaFactura]) -> List[SaldoCuota]:
        pagado = self._pagado_por_cuota([c.id for c in cuotas])
        return [
            SaldoCuota(
                cuota_id=c.id,
                numero_cuota=c.numero_cuota,
                valor=a_decimal(c.valor),
                valor_pagado=pagado.get(c.id, CERO),
                fecha_vencimiento=c.fecha_vencimiento,
            )
            for c in cuotas
        ]

    # =========================================================
    # FINANCIACIÓN
    # =========================================================

    def _validar_parametros_financiacion(self, numero_cuotas: int, tasa_interes: Decimal):
        if not settings.min_cuotas <= numero_cuotas <= settings.max_cuotas:
            raise ValidationException(
                f"El número de cuotas debe estar entre {settings.min_cuotas} "
                f"y {settings.max_cuotas}",
                field="numero_cuotas",
            )
        if tasa_interes < 0:
            raise ValidationException(
                "La tasa de interés no puede ser negativa", field="tasa_interes"
            )

    def simular_amortizacion(
        self,
        monto: Decimal,
        numero_cuotas: int,
        tasa_interes: Decimal,
        fecha_inicio: Optional[datetime] = None,
    ) -> TablaAmortizacionResponse:
        """
        Tabla de amortización sin persistir nada.

        Args:
            monto: Capital a financiar
            numero_cuotas: Número de cuotas
            tasa_interes: Tasa mensual en porcentaje (2 = 2%)
            fecha_inicio: Fecha base de vencimientos (hoy por defecto)
        """
        tasa_interes = a_decimal(tasa_interes)
        self._validar_parametros_financiacion(numero_cuotas, tasa_interes)

        filas = generar_tabla_amortizacion(
            monto, numero_cuotas, tasa_interes / 100, fecha_inicio or datetime.utcnow()
        )
        total_intereses = sum((f.interes for f in filas), CERO)
        total_a_pagar = sum((f.valor_cuota for f in filas), CERO)

        return TablaAmortizacionResponse(
            monto=float(redondear(monto)),
            numero_cuotas=numero_cuotas,
            tasa_interes=float(tasa_interes),
            valor_cuota=float(filas[0].valor_cuota),
            total_intereses=float(total_intereses),
            total_a_pagar=float(total_a_pagar),
            filas=[FilaAmortizacionSummary(**f.to_dict()) for f in filas],
        )

    def preparar_financiacion(
        self,
        factura: Factura,
        numero_cuotas: int,
        tasa_interes: Decimal,
        fecha_inicio: Optional[datetime] = None,
    ) -> List[CuotaFactura]:
        """
        Marca la factura como FINANCIADO y crea sus cuotas, sin confirmar.

        El capital financiado es el saldo pendiente de la factura. Las
        cuotas se crean una sola vez; después su número es inmutable.

        Raises:
            StateConflictException: factura ANULADA/PAGADA o sin saldo
            ImmutableInstallmentsException: la factura ya tiene cuotas
            ValidationException: parámetros fuera de rango
        """
        tasa_interes = a_decimal(tasa_interes)
        self._validar_parametros_financiacion(numero_cuotas, tasa_interes)

        if EstadoFactura(factura.estado) in ESTADOS_FACTURA_TERMINALES:
            raise StateConflictException(
                f"No se puede financiar una factura en estado {factura.estado}"
            )
        existentes = (
            self.db.query(func.count(CuotaFactura.id))
            .filter(CuotaFactura.factura_id == factura.id)
            .scalar()
        )
        if existentes:
            raise ImmutableInstallmentsException(factura.id)

        monto = factura.saldo_pendiente
        if monto <= 0:
            raise StateConflictException("La factura no tiene saldo pendiente para financiar")

        filas = generar_tabla_amortizacion(
            monto, numero_cuotas, tasa_interes / 100, fecha_inicio or factura.fecha
        )

        cuotas = [
            CuotaFactura(
                numero_cuota=fila.numero_cuota,
                valor=fila.valor_cuota,
                capital=fila.capital,
                interes=fila.interes,
                saldo=fila.saldo,
                fecha_vencimiento=fila.fecha_vencimiento,
                valor_pagado=CERO,
                saldo_cuota=fila.valor_cuota,
                estado=EstadoCuota.PENDIENTE.value,
            )
            for fila in filas
        ]
        factura.cuotas.extend(cuotas)

        factura.modalidad_pago = ModalidadPago.FINANCIADO.value
        factura.numero_cuotas = numero_cuotas
        factura.tasa_interes = tasa_interes
        factura.valor_cuota = filas[0].valor_cuota

        self._log_info(
            "Factura financiada",
            entity_id=factura.id,
            action="financiar_factura",
            numero_cuotas=numero_cuotas,
            tasa_interes=tasa_interes,
            monto=monto,
        )
        return cuotas

    def financiar_factura(
        self,
        factura_id: str,
        numero_cuotas: int,
        tasa_interes: Decimal,
        fecha_inicio: Optional[datetime] = None,
    ) -> Factura:
        """Financia la factura y confirma en una sola transacción."""
        factura = self._get_factura(factura_id, bloquear=True)
        with self._transaccion("financiar_factura", entity_id=factura_id):
            self.preparar_financiacion(factura, numero_cuotas, tasa_interes, fecha_inicio)
        self._commit("financiar_factura", entity_id=factura_id)
        self.db.refresh(factura)
        return factura

    # =========================================================
    # APLICACIÓN DE PAGOS
    # =========================================================

    def aplicar_pago(
        self,
        request: AplicarPagoRequest,
        usuario_id: Optional[str] = None,
        hoy: Optional[datetime] = None,
    ) -> AplicarPagoResponse:
        """
        Registra un pago y lo distribuye entre las cuotas de la factura.

        Todo o nada: si cualquier paso falla no queda ni el pago ni
        ninguna aplicación.

        Raises:
            EntityNotFoundException: la factura no existe
            ValidationException: factura sin cuotas, sin saldo, o distribución inválida
            DistributionMismatchException / OverAllocationException: distribución manual
            StateConflictException: factura ANULADA o PAGADA
        """
        hoy = hoy or datetime.utcnow()
        factura = self._get_factura(request.factura_id, bloquear=True)

        with self._transaccion("aplicar_pago", entity_id=request.factura_id):
            resultado = self._distribuir(factura, request, hoy)
            pago = self._registrar_pago(factura, request, resultado, usuario_id, hoy)

        self._commit("aplicar_pago", entity_id=factura.id)

        self._log_info(
            "Pago aplicado",
            entity_id=factura.id,
            action="aplicar_pago",
            pago_id=pago.id,
            valor=request.valor,
            automatico=request.aplicacion_automatica,
            cuotas=len(resultado.aplicaciones),
            excedente=resultado.excedente,
        )

        return AplicarPagoResponse(
            pago=pago_a_summary(pago),
            aplicaciones=[
                AplicacionSummary(
                    cuota_id=a.cuota_id,
                    numero_cuota=a.numero_cuota,
                    valor_aplicado=float(a.valor_aplicado),
                )
                for a in resultado.aplicaciones
            ],
            excedente=float(resultado.excedente),
            estado_factura=factura.estado,
        )

    def _distribuir(
        self, factura: Factura, request: AplicarPagoRequest, hoy: datetime
    ) -> ResultadoDistribucion:
        if factura.estado in (EstadoFactura.ANULADA.value, EstadoFactura.PAGADA.value):
            raise StateConflictException(
                f"No se pueden registrar pagos en una factura {factura.estado}"
            )

        cuotas = (
            self.db.query(CuotaFactura)
            .filter(CuotaFactura.factura_id == factura.id)
            .order_by(CuotaFactura.numero_cuota)
            .with_for_update()
            .all()
        )
        if not cuotas:
            raise ValidationException("Esta factura no tiene cuotas configuradas")

        saldos = self._saldos(cuotas)

        if request.aplicacion_automatica:
            resultado = distribuir_automaticamente(request.valor, saldos, hoy)
        else:
            resultado = validar_distribucion_manual(
                request.valor,
                saldos,
                [(d.cuota_id, d.valor_aplicado) for d in request.distribucion_cuotas],
                tolerancia=settings.tolerancia_distribucion,
            )

        if not resultado.aplicaciones:
            raise ValidationException("No hay cuotas pendientes para aplicar el pago")

        if resultado.excedente > 0:
            self._log_warning(
                "El pago supera el saldo pendiente; el excedente no se asigna",
                entity_id=factura.id,
                action="aplicar_pago_excedente",
                excedente=resultado.excedente,
            )

        return resultado

    def _registrar_pago(
        self,
        factura: Factura,
        request: AplicarPagoRequest,
        resultado: ResultadoDistribucion,
        usuario_id: Optional[str],
        hoy: datetime,
    ) -> Pago:
        pago = Pago(
            valor=redondear(request.valor),
            metodo_pago=request.metodo_pago.value,
            referencia=request.referencia,
            observaciones=request.observaciones,
            fecha=hoy,
            registrado_por_id=usuario_id,
        )
        factura.pagos.append(pago)
        self.db.flush()

        observacion = (
            OBS_APLICACION_AUTOMATICA if request.aplicacion_automatica else OBS_APLICACION_MANUAL
        )
        cuotas = {c.id: c for c in factura.cuotas}
        pagado_previo = self._pagado_por_cuota(list(cuotas))

        for aplicacion in resultado.aplicaciones:
            cuota = cuotas[aplicacion.cuota_id]
            valor = a_decimal(cuota.valor)
            valor_aplicado = redondear(aplicacion.valor_aplicado)
            nuevo_pagado = pagado_previo.get(cuota.id, CERO) + valor_aplicado

            if nuevo_pagado > valor:
                raise OverAllocationException(
                    numero_cuota=cuota.numero_cuota,
                    valor=valor_aplicado,
                    saldo=valor - pagado_previo.get(cuota.id, CERO),
                )

            pago.aplicaciones.append(
                PagoCuota(
                    cuota=cuota,
                    valor_aplicado=valor_aplicado,
                    fecha_aplicacion=hoy,
                    observaciones=observacion,
                )
            )

            nuevo_estado = EstadoCuota.PAGADA if nuevo_pagado >= valor else EstadoCuota.PARCIAL
            validar_transicion_cuota(cuota.estado, nuevo_estado.value)

            cuota.estado = nuevo_estado.value
            cuota.valor_pagado = nuevo_pagado
            cuota.saldo_cuota = valor - nuevo_pagado
            cuota.fecha_pago = hoy if nuevo_estado == EstadoCuota.PAGADA else None

        self.db.flush()
        self._cerrar_factura_si_pagada(factura, hoy)
        return pago

    def _cerrar_factura_si_pagada(self, factura: Factura, hoy: datetime):
        """
        Con todas las cuotas pagadas el honorario queda PAGADO y la factura
        pasa a PAGADA si su tabla de transiciones lo permite.
        """
        if not all(c.estado == EstadoCuota.PAGADA.value for c in factura.cuotas):
            return

        marcar_honorario_pagado(factura.honorario, hoy)

        if not puede_transicionar_factura(factura.estado, EstadoFactura.PAGADA.value):
            self._log_warning(
                "Cuotas pagadas pero la factura no admite pasar a PAGADA desde su estado",
                entity_id=factura.id,
                action="cerrar_factura",
                estado=factura.estado,
            )
            return

        factura.estado = EstadoFactura.PAGADA.value
        self._log_info("Factura pagada por completo", entity_id=factura.id, action="cerrar_factura")

    # =========================================================
    # SEGUIMIENTO
    # =========================================================

    def obtener_seguimiento(
        self, factura_id: str, hoy: Optional[datetime] = None
    ) -> SeguimientoCuotasResponse:
        """
        Cuotas con su estado derivado, pagos aplicados, resumen e historial.

        El estado se recalcula desde las aplicaciones registradas, de modo
        que una cuota sin abonos cuyo vencimiento pasó se muestra VENCIDA
        aunque el barrido de vencimientos aún no la haya marcado.
        """
        hoy = hoy or datetime.utcnow()
        factura = self._get_factura(factura_id)
        caso = factura.honorario.caso

        cuotas: List[CuotaSeguimiento] = []
        for cuota in factura.cuotas:
            valor = a_decimal(cuota.valor)
            pagado = sum((a_decimal(a.valor_aplicado) for a in cuota.aplicaciones), CERO)
            estado = derivar_estado_cuota(valor, pagado, cuota.fecha_vencimiento, hoy)
            saldo_cuota = valor - pagado

            cuotas.append(
                CuotaSeguimiento(
                    id=cuota.id,
                    numero_cuota=cuota.numero_cuota,
                    valor=float(valor),
                    capital=float(cuota.capital),
                    interes=float(cuota.interes),
                    saldo=float(cuota.saldo),
                    fecha_vencimiento=cuota.fecha_vencimiento,
                    fecha_pago=cuota.fecha_pago,
                    estado=estado,
                    valor_pagado=float(pagado),
                    saldo_cuota=float(saldo_cuota if saldo_cuota > 0 else CERO),
                    dias_vencido=(
                        dias_vencido(cuota.fecha_vencimiento, hoy)
                        if estado == EstadoCuota.VENCIDA
                        else 0
                    ),
                    pagos_aplicados=[
                        PagoAplicadoEnCuota(
                            id=a.id,
                            valor_aplicado=float(a.valor_aplicado),
                            fecha_aplicacion=a.fecha_aplicacion,
                            observaciones=a.observaciones,
                            pago=pago_a_summary(a.pago),
                        )
                        for a in sorted(cuota.aplicaciones, key=lambda a: a.fecha_aplicacion)
                    ],
                )
            )

        total = a_decimal(factura.total)
        total_a_pagar = factura.total_a_pagar
        total_pagado = factura.total_aplicado
        conteo = {estado: 0 for estado in EstadoCuota}
        for c in cuotas:
            conteo[c.estado] += 1

        resumen = ResumenCuotas(
            total_a_pagar=float(total_a_pagar),
            total_pagado=float(total_pagado),
            saldo_pendiente=float(factura.saldo_pendiente),
            cuotas_pagadas=conteo[EstadoCuota.PAGADA],
            cuotas_vencidas=conteo[EstadoCuota.VENCIDA],
            cuotas_parciales=conteo[EstadoCuota.PARCIAL],
            cuotas_pendientes=conteo[EstadoCuota.PENDIENTE],
            progreso_pago=(
                float(total_pagado / total_a_pagar * 100) if total_a_pagar > 0 else 0.0
            ),
        )

        historial = [
            HistorialPago(
                **pago_a_summary(pago).model_dump(),
                distribucion=[
                    DistribucionHistorial(
                        cuota_numero=a.cuota.numero_cuota,
                        valor_aplicado=float(a.valor_aplicado),
                        fecha_aplicacion=a.fecha_aplicacion,
                    )
                    for a in sorted(pago.aplicaciones, key=lambda a: a.cuota.numero_cuota)
                ],
            )
            for pago in factura.pagos
        ]

        return SeguimientoCuotasResponse(
            factura=FacturaCarteraRef(
                id=factura.id,
                numero=factura.numero,
                fecha=factura.fecha,
                total=float(total),
                estado=factura.estado,
                modalidad_pago=factura.modalidad_pago,
                numero_cuotas=factura.numero_cuotas,
                valor_cuota=float(factura.valor_cuota) if factura.valor_cuota is not None else None,
                tasa_interes=(
                    float(factura.tasa_interes) if factura.tasa_interes is not None else None
                ),
                cliente=cliente_ref(caso.cliente),
                caso=caso_ref(caso),
            ),
            resumen=resumen,
            cuotas=cuotas,
            historial_pagos=historial,
        )

    # =========================================================
    # LISTADOS
    # =========================================================

    def listar_cartera(
        self,
        search: Optional[str] = None,
        estado: FiltroCartera = FiltroCartera.TODAS,
        hoy: Optional[datetime] = None,
    ) -> CarteraListResponse:
        """Facturas financiadas con su saldo pendiente y días de mora."""
        hoy = hoy or datetime.utcnow()

        query = (
            self.db.query(Factura)
            .join(Honorario, Factura.honorario_id == Honorario.id)
            .join(Caso, Honorario.caso_id == Caso.id)
            .join(Cliente, Caso.cliente_id == Cliente.id)
            .filter(Factura.modalidad_pago == ModalidadPago.FINANCIADO.value)
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

        if estado == FiltroCartera.VENCIDAS:
            query = query.filter(
                Factura.fecha_vencimiento < hoy, Factura.estado != EstadoFactura.PAGADA.value
            )
        elif estado == FiltroCartera.PROXIMAS:
            query = query.filter(
                Factura.fecha_vencimiento >= hoy, Factura.estado != EstadoFactura.PAGADA.value
            )
        elif estado == FiltroCartera.PAGADAS:
            query = query.filter(Factura.estado == EstadoFactura.PAGADA.value)

        facturas = query.order_by(Factura.created_at.desc()).all()

        return CarteraListResponse(
            facturas=[
                FacturaCartera(
                    id=f.id,
                    numero=f.numero,
                    fecha=f.fecha,
                    fecha_vencimiento=f.fecha_vencimiento,
                    total=float(f.total),
                    saldo_pendiente=float(f.saldo_pendiente),
                    dias_vencida=dias_vencido(f.fecha_vencimiento, hoy),
                    estado=f.estado,
                    modalidad_pago=f.modalidad_pago,
                    numero_cuotas=f.numero_cuotas or 1,
                    valor_cuota=float(f.valor_cuota if f.valor_cuota is not None else f.total),
                    cliente=cliente_ref(f.honorario.caso.cliente),
                    caso=caso_ref(f.honorario.caso),
                )
                for f in facturas
            ]
        )

    def cartera_vencida(self, hoy: Optional[datetime] = None) -> List[CarteraVencidaItem]:
        """Facturas vencidas con saldo, de mayor a menor antigüedad."""
        hoy = hoy or datetime.utcnow()
        facturas = (
            self.db.query(Factura)
            .filter(
                Factura.fecha_vencimiento < hoy,
                Factura.estado.notin_([EstadoFactura.PAGADA.value, EstadoFactura.ANULADA.value]),
            )
            .order_by(Factura.fecha_vencimiento.asc())
            .all()
        )
        return [
            CarteraVencidaItem(
                factura_id=f.id,
                numero=f.numero,
                fecha_vencimiento=f.fecha_vencimiento,
                dias_vencimiento=dias_vencido(f.fecha_vencimiento, hoy),
                saldo_pendiente=float(f.saldo_pendiente),
                cliente=cliente_ref(f.honorario.caso.cliente),
            )
            for f in facturas
            if f.saldo_pendiente > 0
        ]

    # =========================================================
    # VENCIMIENTOS
    # =========================================================

    def actualizar_vencimientos(
        self, hoy: Optional[datetime] = None
    ) -> ActualizacionVencimientosResponse:
        """
        Marca como VENCIDA lo que pasó su fecha sin pagarse.

        - cuotas PENDIENTE con vencimiento anterior a hoy
        - facturas ENVIADA con vencimiento anterior a hoy

        Cada cambio se valida contra su tabla de transiciones. Se ejecuta
        bajo demanda (no hay tareas programadas).
        """
        hoy = hoy or datetime.utcnow()
        inicio_hoy = datetime(hoy.year, hoy.month, hoy.day)

        cuotas = (
            self.db.query(CuotaFactura)
            .filter(
                CuotaFactura.estado == EstadoCuota.PENDIENTE.value,
                CuotaFactura.fecha_vencimiento < inicio_hoy,
            )
            .all()
        )
        cuotas_vencidas = 0
        for cuota in cuotas:
            if puede_transicionar_cuota(cuota.estado, EstadoCuota.VENCIDA.value):
                cuota.estado = EstadoCuota.VENCIDA.value
                cuotas_vencidas += 1

        facturas = (
            self.db.query(Factura)
            .filter(
                Factura.estado == EstadoFactura.ENVIADA.value,
                Factura.fecha_vencimiento < inicio_hoy,
            )
            .all()
        )
        facturas_vencidas = 0
        for factura in facturas:
            if puede_transicionar_factura(factura.estado, EstadoFactura.VENCIDA.value):
                factura.estado = EstadoFactura.VENCIDA.value
                facturas_vencidas += 1

        self._commit("actualizar_vencimientos")

        self._log_info(
            "Vencimientos actualizados",
            action="actualizar_vencimientos",
            cuotas_vencidas=cuotas_vencidas,
            facturas_vencidas=facturas_vencidas,
        )

        return ActualizacionVencimientosResponse(
            cuotas_vencidas=cuotas_vencidas,
            facturas_vencidas=facturas_vencidas,
            ejecutado_en=hoy,
        )


def marcar_honorario_pagado(honorario: Optional[Honorario], fecha: datetime):
    """El honorario queda PAGADO cuando su factura se cubre por completo."""
    if honorario is None:
        return
    honorario.estado = EstadoHonorario.PAGADO.value
    honorario.fecha_pago = fecha
