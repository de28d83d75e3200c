from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.enums import EstadoCaso, EstadoHonorario, ModalidadPago, Prioridad, TipoPersona


class Cliente(Base):
    """
    Cliente del despacho.
    Se crea a partir de un lead cuando la conciliación origina un caso.
    """

    __tablename__ = "clientes"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    nombre: Mapped[str] = mapped_column(String(200), nullable=False)
    apellido: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    telefono: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    documento: Mapped[Optional[str]] = mapped_column(String(20), unique=True, nullable=True)
    tipo_persona: Mapped[str] = mapped_column(
        String(16), nullable=False, default=TipoPersona.NATURAL.value
    )
    empresa: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    casos: Mapped[List["Caso"]] = relationship("Caso", back_populates="cliente")


class Caso(Base):
    """
    Proceso de insolvencia.
    Contenedor de los honorarios que luego se facturan.
    """

    __tablename__ = "casos"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    numero_caso: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    tipo_insolvencia: Mapped[str] = mapped_column(String(32), nullable=False)
    estado: Mapped[str] = mapped_column(
        String(16), nullable=False, default=EstadoCaso.ACTIVO.value, index=True
    )
    prioridad: Mapped[str] = mapped_column(
        String(16), nullable=False, default=Prioridad.MEDIA.value
    )
    valor_deuda: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2), nullable=True)
    fecha_inicio: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    fecha_cierre: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    observaciones: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    cliente_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clientes.id"), nullable=False
    )
    responsable_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
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

    cliente: Mapped[Cliente] = relationship(Cliente, back_populates="casos")
    responsable = relationship("User", foreign_keys=[responsable_id])
    creado_por = relationship("User", foreign_keys=[creado_por_id])
    honorarios: Mapped[List["Honorario"]] = relationship("Honorario", back_populates="caso")


class Honorario(Base):
    """Honorario pactado dentro de un caso."""

    __tablename__ = "honorarios"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    tipo: Mapped[str] = mapped_column(String(32), nullable=False)
    modalidad_pago: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ModalidadPago.CONTADO.value
    )
    valor: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    estado: Mapped[str] = mapped_column(
        String(16), nullable=False, default=EstadoHonorario.PENDIENTE.value
    )
    fecha_pago: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    observaciones: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    caso_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("casos.id"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    caso: Mapped[Caso] = relationship(Caso, back_populates="honorarios")
    facturas = relationship("Factura", back_populates="honorario")
