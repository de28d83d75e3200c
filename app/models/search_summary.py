"""
SEARCH SUMMARY - Resultados de la búsqueda global.
"""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class SearchHit(BaseModel):
    id: str
    tipo: Literal["lead", "cliente", "caso", "factura", "conciliacion"]
    titulo: str
    subtitulo: Optional[str] = None
    estado: Optional[str] = None
    detalles: Optional[str] = None
    url: str


class SearchResults(BaseModel):
    leads: List[SearchHit] = Field(default_factory=list)
    clientes: List[SearchHit] = Field(default_factory=list)
    casos: List[SearchHit] = Field(default_factory=list)
    facturas: List[SearchHit] = Field(default_factory=list)
    conciliaciones: List[SearchHit] = Field(default_factory=list)


class GlobalSearchResponse(BaseModel):
    results: SearchResults
    total_results: int = 0
    query: str = ""
