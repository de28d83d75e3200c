"""
DASHBOARD SUMMARY - Indicadores del tablero principal.
"""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class LeadsStats(BaseModel):
    total: int
    esta_semana: int
    crecimiento: float
    direccion: Literal["up", "down"]


class CasosStats(BaseModel):
    activos: int
    este_mes: int
    crecimiento: float
    direccion: Literal["up", "down"]


class CarteraStats(BaseModel):
    facturas_pendientes: int
    total_pendiente: float
    total_vencido: float
    cuotas_proximas: int
    cuotas_vencidas: int


class DashboardStats(BaseModel):
    leads: LeadsStats
    casos: CasosStats
    cartera: CarteraStats
    timestamp: datetime
