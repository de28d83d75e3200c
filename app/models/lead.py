from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.enums import EstadoLead, TipoPersona


class Lead(Base):
    """
    Prospecto comercial.
    Punto de entrada del flujo: lead -> asesoría -> conciliación -> caso.
    """

    __tablename__ = "leads"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    nombre: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    telefono: Mapped[str] = mapped_column(String(20), nullable=False)
    empresa: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    tipo_persona: Mapped[str] = mapped_column(
        String(16), nullable=False, default=TipoPersona.NATURAL.value
    )
    documento: Mapped[Optional[str]] = mapped_column(String(20), unique=True, nullable=True)
    estado: Mapped[str] = mapped_column(
        String(16), nullable=False, default=EstadoLead.NUEVO.value, index=True
    )
    origen: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    observaciones: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    fecha_seguimiento: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    responsable_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    responsable = relationship("User")
    seguimientos: Mapped[List["Seguimiento"]] = relationship(
        "Seguimiento",
        back_populates="lead",
        cascade="all, delete-orphan",
        order_by="Seguimiento.created_at.desc()",
    )
    asesorias = relationship("Asesoria", back_populates="lead")


class Seguimiento(Base):
    """Registro de contacto con un lead (llamada, email, reunión...)."""

    __tablename__ = "seguimientos"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    lead_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("leads.id", ondelete="CASCADE"), nullable=False
    )
    usuario_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )

    tipo: Mapped[str] = mapped_column(String(16), nullable=False)
    descripcion: Mapped[str] = mapped_column(Text, nullable=False)
    duracion: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # minutos
    resultado: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    proximo_seguimiento: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    lead: Mapped[Lead] = relationship(Lead, back_populates="seguimientos")
    usuario = relationship("User")
