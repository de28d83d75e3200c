"""
Búsqueda global sobre leads, clientes, casos, facturas y conciliaciones.
"""
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.logger import StructuredLogger
from app.models.asesoria import Conciliacion
from app.models.caso import Caso, Cliente, Honorario
from app.models.factura import Factura
from app.models.lead import Lead
from app.models.search_summary import GlobalSearchResponse, SearchHit, SearchResults
from app.services.base import BaseService

MIN_LONGITUD_BUSQUEDA = 2
RESULTADOS_POR_CATEGORIA = 5


def nombre_completo(nombre: str, apellido: Optional[str]) -> str:
    return f"{nombre} {apellido or ''}".strip()


def formato_moneda(valor: Optional[Decimal]) -> str:
    return f"${Decimal(valor or 0):,.0f}"


class SearchService(BaseService):
    """Búsqueda por texto libre, limitada a unos pocos resultados por categoría."""

    def __init__(self, db: Session, logger: Optional[StructuredLogger] = None):
        super().__init__(db, logger)

    def buscar(self, q: Optional[str], limite: int = RESULTADOS_POR_CATEGORIA) -> GlobalSearchResponse:
        """
        Busca `q` (sin distinguir mayúsculas) en las cinco categorías.

        Con menos de dos caracteres no se consulta la base y se devuelven
        listas vacías.
        """
        query = (q or "").strip()
        if len(query) < MIN_LONGITUD_BUSQUEDA:
            return GlobalSearchResponse(results=SearchResults(), total_results=0, query=query)

        patron = f"%{query}%"
        results = SearchResults(
            leads=self._leads(patron, limite),
            clientes=self._clientes(patron, limite),
            casos=self._casos(patron, limite),
            facturas=self._facturas(patron, limite),
            conciliaciones=self._conciliaciones(patron, limite),
        )
        total = (
            len(results.leads)
            + len(results.clientes)
            + len(results.casos)
            + len(results.facturas)
            + len(results.conciliaciones)
        )

        self._log_info("Búsqueda global", action="search", query=query, total_results=total)
        return GlobalSearchResponse(results=results, total_results=total, query=query)

    # =========================================================
    # CATEGORÍAS
    # =========================================================

    def _leads(self, patron: str, limite: int) -> List[SearchHit]:
        leads = (
            self.db.query(Lead)
            .filter(
                or_(
                    Lead.nombre.ilike(patron),
                    Lead.email.ilike(patron),
                    Lead.telefono.ilike(patron),
                    Lead.empresa.ilike(patron),
                    Lead.documento.ilike(patron),
                )
            )
            .order_by(Lead.created_at.desc())
            .limit(limite)
            .all()
        )
        return [
            SearchHit(
                id=lead.id,
                tipo="lead",
                titulo=lead.nombre,
                subtitulo=lead.empresa or lead.email,
                estado=lead.estado,
                detalles=f"{len(lead.asesorias)} asesorías • {len(lead.seguimientos)} seguimientos",
                url=f"/leads/{lead.id}",
            )
            for lead in leads
        ]

    def _clientes(self, patron: str, limite: int) -> List[SearchHit]:
        clientes = (
            self.db.query(Cliente)
            .filter(
                or_(
                    Cliente.nombre.ilike(patron),
                    Cliente.apellido.ilike(patron),
                    Cliente.email.ilike(patron),
                    Cliente.documento.ilike(patron),
                    Cliente.empresa.ilike(patron),
                )
            )
            .order_by(Cliente.created_at.desc())
            .limit(limite)
            .all()
        )
        return [
            SearchHit(
                id=cliente.id,
                tipo="cliente",
                titulo=nombre_completo(cliente.nombre, cliente.apellido),
                subtitulo=cliente.documento,
                detalles=f"{len(cliente.casos)} casos • {cliente.empresa or 'Sin empresa'}",
                url=f"/casos?cliente={cliente.id}",
            )
            for cliente in clientes
        ]

    def _casos(self, patron: str, limite: int) -> List[SearchHit]:
        casos = (
            self.db.query(Caso)
            .join(Cliente, Caso.cliente_id == Cliente.id)
            .filter(
                or_(
                    Caso.numero_caso.ilike(patron),
                    Cliente.nombre.ilike(patron),
                    Cliente.apellido.ilike(patron),
                    Cliente.documento.ilike(patron),
                )
            )
            .order_by(Caso.fecha_inicio.desc())
            .limit(limite)
            .all()
        )
        return [
            SearchHit(
                id=caso.id,
                tipo="caso",
                titulo=caso.numero_caso,
                subtitulo=nombre_completo(caso.cliente.nombre, caso.cliente.apellido),
                estado=caso.estado,
                detalles=f"{caso.tipo_insolvencia} • {formato_moneda(caso.valor_deuda)}",
                url=f"/casos/{caso.id}",
            )
            for caso in casos
        ]

    def _facturas(self, patron: str, limite: int) -> List[SearchHit]:
        facturas = (
            self.db.query(Factura)
            .join(Honorario, Factura.honorario_id == Honorario.id)
            .join(Caso, Honorario.caso_id == Caso.id)
            .join(Cliente, Caso.cliente_id == Cliente.id)
            .filter(
                or_(
                    Factura.numero.ilike(patron),
                    Cliente.nombre.ilike(patron),
                    Cliente.apellido.ilike(patron),
                    Cliente.documento.ilike(patron),
                )
            )
            .order_by(Factura.fecha.desc())
            .limit(limite)
            .all()
        )
        hits = []
        for factura in facturas:
            cliente = factura.honorario.caso.cliente
            hits.append(
                SearchHit(
                    id=factura.id,
                    tipo="factura",
                    titulo=factura.numero,
                    subtitulo=nombre_completo(cliente.nombre, cliente.apellido),
                    estado=factura.estado,
                    detalles=f"{formato_moneda(factura.total)} • {factura.modalidad_pago}",
                    url=f"/facturacion/{factura.id}",
                )
            )
        return hits

    def _conciliaciones(self, patron: str, limite: int) -> List[SearchHit]:
        conciliaciones = (
            self.db.query(Conciliacion)
            .filter(
                or_(
                    Conciliacion.numero.ilike(patron),
                    Conciliacion.demandante.ilike(patron),
                    Conciliacion.demandado.ilike(patron),
                )
            )
            .order_by(Conciliacion.fecha_solicitud.desc())
            .limit(limite)
            .all()
        )
        return [
            SearchHit(
                id=c.id,
                tipo="conciliacion",
                titulo=c.numero,
                subtitulo=f"{c.demandante} vs {c.demandado}",
                estado=c.estado,
                detalles=formato_moneda(c.valor),
                url=f"/conciliaciones/{c.id}",
            )
            for c in conciliaciones
        ]
