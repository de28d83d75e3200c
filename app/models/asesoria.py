from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.enums import (
    EstadoAsesoria,
    EstadoConciliacion,
    ModalidadAsesoria,
)


class Asesoria(Base):
    """Sesión de asesoría jurídica con un lead."""

    __tablename__ = "asesorias"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    tipo: Mapped[str] = mapped_column(String(16), nullable=False)
    estado: Mapped[str] = mapped_column(
        String(16), nullable=False, default=EstadoAsesoria.PROGRAMADA.value
    )
    modalidad: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ModalidadAsesoria.PRESENCIAL.value
    )
    fecha: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    duracion: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # minutos
    tema: Mapped[str] = mapped_column(String(255), nullable=False)
    descripcion: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    valor: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    notas: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    lead_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("leads.id"), nullable=False
    )
    asesor_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    lead = relationship("Lead", back_populates="asesorias")
    asesor = relationship("User")
    conciliaciones: Mapped[List["Conciliacion"]] = relationship(
        "Conciliacion", back_populates="asesoria"
    )


class Conciliacion(Base):
    """
    Conciliación extrajudicial derivada de una asesoría.
    Al realizarse puede originar un caso de insolvencia.
    """

    __tablename__ = "conciliaciones"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    numero: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    demandante: Mapped[str] = mapped_column(String(200), nullable=False)
    demandado: Mapped[str] = mapped_column(String(200), nullable=False)
    valor: Mapped[Optional[Decimal]] = mapped_column(Numeric(16, 2), nullable=True)
    estado: Mapped[str] = mapped_column(
        String(16), nullable=False, default=EstadoConciliacion.SOLICITADA.value
    )
    resultado: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    fecha_solicitud: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    fecha_audiencia: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    observaciones: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    asesoria_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("asesorias.id"), nullable=False
    )
    caso_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("casos.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    asesoria: Mapped[Asesoria] = relationship(Asesoria, back_populates="conciliaciones")
    caso = relationship("Caso")
