"""
Numeración consecutiva por año: PREFIJO-AAAA-NNNN.

FAC  -> facturas
CONC -> conciliaciones
CASO -> casos
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

PREFIJO_FACTURA = "FAC"
PREFIJO_CONCILIACION = "CONC"
PREFIJO_CASO = "CASO"


def siguiente_numero(db: Session, columna, prefijo: str, anio: Optional[int] = None) -> str:
    """
    Calcula el siguiente consecutivo del año para la columna dada.

    La sesión no hace autoflush: quien cree varias entidades en la misma
    transacción debe hacer flush entre una y otra.
    """
    anio = anio or datetime.utcnow().year
    base = f"{prefijo}-{anio}-"

    ultimo = db.query(func.max(columna)).filter(columna.like(f"{base}%")).scalar()
    consecutivo = int(ultimo.rsplit("-", 1)[1]) + 1 if ultimo else 1

    return f"{base}{consecutivo:04d}"
