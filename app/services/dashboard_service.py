"""
Indicadores del tablero principal.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import func

from app.core.config import settings
from app.models.caso import Caso
from app.models.dashboard_summary import CarteraStats, CasosStats, DashboardStats, LeadsStats
from app.models.enums import EstadoCaso, EstadoCuota, EstadoFactura, EstadoLead
from app.models.factura import CuotaFactura, Factura
from app.models.lead import Lead
from app.services.base import BaseService

ESTADOS_CASO_ACTIVOS = (EstadoCaso.ACTIVO.value, EstadoCaso.SUSPENDIDO.value)
ESTADOS_FACTURA_PENDIENTES = (
    EstadoFactura.GENERADA.value,
    EstadoFactura.ENVIADA.value,
    EstadoFactura.VENCIDA.value,
)


def crecimiento(actual: int, anterior: int) -> float:
    """Variación porcentual redondeada a un decimal (100% si no había base)."""
    if anterior > 0:
        return round((actual - anterior) / anterior * 100, 1)
    return 100.0 if actual > 0 else 0.0


class DashboardService(BaseService):
    def estadisticas(self, ahora: Optional[datetime] = None) -> DashboardStats:
        ahora = ahora or datetime.utcnow()
        hoy = datetime(ahora.year, ahora.month, ahora.day)

        # La semana empieza el lunes
        inicio_semana = hoy - timedelta(days=hoy.weekday())
        inicio_semana_anterior = inicio_semana - timedelta(days=7)
        inicio_mes = datetime(ahora.year, ahora.month, 1)
        inicio_mes_anterior = inicio_mes - relativedelta(months=1)

        leads_nuevos = self.db.query(Lead).filter(Lead.estado == EstadoLead.NUEVO.value)
        leads_total = leads_nuevos.count()
        leads_semana = leads_nuevos.filter(Lead.created_at >= inicio_semana).count()
        leads_semana_anterior = leads_nuevos.filter(
            Lead.created_at >= inicio_semana_anterior, Lead.created_at < inicio_semana
        ).count()

        casos = self.db.query(Caso).filter(Caso.estado.in_(ESTADOS_CASO_ACTIVOS))
        casos_activos = casos.count()
        casos_mes = casos.filter(Caso.created_at >= inicio_mes).count()
        casos_mes_anterior = casos.filter(
            Caso.created_at >= inicio_mes_anterior, Caso.created_at < inicio_mes
        ).count()

        pendientes = self.db.query(Factura).filter(Factura.estado.in_(ESTADOS_FACTURA_PENDIENTES))
        facturas_pendientes = pendientes.count()
        total_pendiente = sum((f.saldo_pendiente for f in pendientes.all()), Decimal("0"))
        total_vencido = (
            self.db.query(func.coalesce(func.sum(Factura.total), 0))
            .filter(Factura.estado == EstadoFactura.VENCIDA.value)
            .scalar()
        )

        cuotas_abiertas = self.db.query(func.count(CuotaFactura.id)).filter(
            CuotaFactura.estado.in_([EstadoCuota.PENDIENTE.value, EstadoCuota.PARCIAL.value])
        )
        cuotas_proximas = cuotas_abiertas.filter(
            CuotaFactura.fecha_vencimiento >= hoy,
            CuotaFactura.fecha_vencimiento
            < hoy + timedelta(days=settings.dias_proximo_vencimiento + 1),
        ).scalar()
        cuotas_vencidas = (
            self.db.query(func.count(CuotaFactura.id))
            .filter(
                CuotaFactura.estado != EstadoCuota.PAGADA.value,
                CuotaFactura.fecha_vencimiento < hoy,
            )
            .scalar()
        )

        g_leads = crecimiento(leads_semana, leads_semana_anterior)
        g_casos = crecimiento(casos_mes, casos_mes_anterior)

        return DashboardStats(
            leads=LeadsStats(
                total=leads_total,
                esta_semana=leads_semana,
                crecimiento=g_leads,
                direccion="up" if g_leads >= 0 else "down",
            ),
            casos=CasosStats(
                activos=casos_activos,
                este_mes=casos_mes,
                crecimiento=g_casos,
                direccion="up" if g_casos >= 0 else "down",
            ),
            cartera=CarteraStats(
                facturas_pendientes=facturas_pendientes,
                total_pendiente=float(total_pendiente),
                total_vencido=float(total_vencido or 0),
                cuotas_proximas=cuotas_proximas or 0,
                cuotas_vencidas=cuotas_vencidas or 0,
            ),
            timestamp=ahora,
        )
