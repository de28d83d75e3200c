from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.enums import EstadoCuota, EstadoFactura, ModalidadPago


# =========================================================
# FACTURA
# =========================================================


class Factura(Base):
    """
    Factura emitida sobre un honorario.

    Si se financia, posee una tabla de cuotas (creada una sola vez)
    sobre la que se distribuyen los pagos.
    """

    __tablename__ = "facturas"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    numero: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    fecha: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    fecha_vencimiento: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    impuestos: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    iva_activado: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    estado: Mapped[str] = mapped_column(
        String(16), nullable=False, default=EstadoFactura.GENERADA.value, index=True
    )
    modalidad_pago: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ModalidadPago.CONTADO.value
    )
    numero_cuotas: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    tasa_interes: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(7, 4), nullable=True
    )  # % mensual
    valor_cuota: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    observaciones: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    honorario_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("honorarios.id"), nullable=False
    )
    creado_por_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    honorario = relationship("Honorario", back_populates="facturas")
    creado_por = relationship("User")
    items: Mapped[List["ItemFactura"]] = relationship(
        "ItemFactura", back_populates="factura", cascade="all, delete-orphan"
    )
    cuotas: Mapped[List["CuotaFactura"]] = relationship(
        "CuotaFactura",
        back_populates="factura",
        cascade="all, delete-orphan",
        order_by="CuotaFactura.numero_cuota",
    )
    pagos: Mapped[List["Pago"]] = relationship(
        "Pago",
        back_populates="factura",
        cascade="all, delete-orphan",
        order_by="Pago.fecha.desc()",
    )

    @property
    def financiada(self) -> bool:
        return self.modalidad_pago == ModalidadPago.FINANCIADO.value and bool(self.cuotas)

    @property
    def total_pagado(self) -> Decimal:
        return sum((p.valor for p in self.pagos), Decimal("0"))

    @property
    def total_a_pagar(self) -> Decimal:
        """Total exigible: la suma de cuotas (capital + intereses) si está financiada."""
        if self.financiada:
            return sum((Decimal(c.valor) for c in self.cuotas), Decimal("0"))
        return Decimal(self.total)

    @property
    def total_aplicado(self) -> Decimal:
        """Lo efectivamente asignado a cuotas; sin cuotas, lo recibido."""
        if self.financiada:
            return sum((c.total_aplicado for c in self.cuotas), Decimal("0"))
        return self.total_pagado

    @property
    def saldo_pendiente(self) -> Decimal:
        if self.estado in (EstadoFactura.PAGADA.value, EstadoFactura.ANULADA.value):
            return Decimal("0")
        if self.financiada:
            return sum((c.saldo_por_aplicar for c in self.cuotas), Decimal("0"))
        saldo = Decimal(self.total) - self.total_pagado
        return saldo if saldo > 0 else Decimal("0")


class ItemFactura(Base):
    """Línea de detalle de una factura."""

    __tablename__ = "items_factura"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    factura_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("facturas.id", ondelete="CASCADE"), nullable=False
    )

    descripcion: Mapped[str] = mapped_column(String(500), nullable=False)
    cantidad: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    valor_unitario: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    valor_total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    factura: Mapped[Factura] = relationship(Factura, back_populates="items")


# =========================================================
# CARTERA: CUOTAS, PAGOS Y APLICACIONES
# =========================================================


class CuotaFactura(Base):
    """
    Cuota de una factura financiada.

    valor es el nominal de la cuota; valor_pagado y saldo_cuota son
    proyecciones cacheadas de las aplicaciones (PagoCuota) recibidas.
    """

    __tablename__ = "cuotas_factura"

    __table_args__ = (
        UniqueConstraint("factura_id", "numero_cuota", name="uq_factura_numero_cuota"),
        CheckConstraint("valor_pagado <= valor", name="ck_cuota_no_sobrepagada"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    factura_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("facturas.id", ondelete="CASCADE"), nullable=False
    )

    numero_cuota: Mapped[int] = mapped_column(Integer, nullable=False)
    valor: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    capital: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    interes: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    saldo: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)  # capital restante
    fecha_vencimiento: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    fecha_pago: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    valor_pagado: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    saldo_cuota: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    estado: Mapped[str] = mapped_column(
        String(16), nullable=False, default=EstadoCuota.PENDIENTE.value
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    factura: Mapped[Factura] = relationship(Factura, back_populates="cuotas")
    aplicaciones: Mapped[List["PagoCuota"]] = relationship(
        "PagoCuota", back_populates="cuota"
    )

    @property
    def total_aplicado(self) -> Decimal:
        return sum((Decimal(a.valor_aplicado) for a in self.aplicaciones), Decimal("0"))

    @property
    def saldo_por_aplicar(self) -> Decimal:
        saldo = Decimal(self.valor) - self.total_aplicado
        return saldo if saldo > 0 else Decimal("0")


class Pago(Base):
    """Pago recibido sobre una factura."""

    __tablename__ = "pagos"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    factura_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("facturas.id", ondelete="CASCADE"), nullable=False
    )

    valor: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    metodo_pago: Mapped[str] = mapped_column(String(20), nullable=False)
    referencia: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    observaciones: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    fecha: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    registrado_por_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    factura: Mapped[Factura] = relationship(Factura, back_populates="pagos")
    aplicaciones: Mapped[List["PagoCuota"]] = relationship(
        "PagoCuota", back_populates="pago", cascade="all, delete-orphan"
    )


class PagoCuota(Base):
    """Porción de un pago aplicada a una cuota."""

    __tablename__ = "pagos_cuota"

    __table_args__ = (
        CheckConstraint("valor_aplicado > 0", name="ck_aplicacion_positiva"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    pago_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("pagos.id", ondelete="CASCADE"), nullable=False
    )
    cuota_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("cuotas_factura.id", ondelete="CASCADE"), nullable=False
    )

    valor_aplicado: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    fecha_aplicacion: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    observaciones: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    pago: Mapped[Pago] = relationship(Pago, back_populates="aplicaciones")
    cuota: Mapped[CuotaFactura] = relationship(CuotaFactura, back_populates="aplicaciones")
