"""
Enumeraciones de dominio del ERP Jurídico.

Se persisten como texto (String) en la base de datos y se exponen
tal cual en la API.
"""
from enum import Enum


# =========================================================
# LEADS
# =========================================================

class EstadoLead(str, Enum):
    NUEVO = "NUEVO"
    CONTACTADO = "CONTACTADO"
    CALIFICADO = "CALIFICADO"
    CONVERTIDO = "CONVERTIDO"
    PERDIDO = "PERDIDO"


class TipoPersona(str, Enum):
    NATURAL = "NATURAL"
    JURIDICA = "JURIDICA"


class TipoSeguimiento(str, Enum):
    LLAMADA = "LLAMADA"
    EMAIL = "EMAIL"
    REUNION = "REUNION"
    WHATSAPP = "WHATSAPP"
    NOTA = "NOTA"


# =========================================================
# ASESORÍAS Y CONCILIACIONES
# =========================================================

class TipoAsesoria(str, Enum):
    INICIAL = "INICIAL"
    SEGUIMIENTO = "SEGUIMIENTO"
    ESPECIALIZADA = "ESPECIALIZADA"


class EstadoAsesoria(str, Enum):
    PROGRAMADA = "PROGRAMADA"
    REALIZADA = "REALIZADA"
    CANCELADA = "CANCELADA"
    REPROGRAMADA = "REPROGRAMADA"


class ModalidadAsesoria(str, Enum):
    PRESENCIAL = "PRESENCIAL"
    VIRTUAL = "VIRTUAL"
    TELEFONICA = "TELEFONICA"


class EstadoConciliacion(str, Enum):
    SOLICITADA = "SOLICITADA"
    PROGRAMADA = "PROGRAMADA"
    REALIZADA = "REALIZADA"
    CANCELADA = "CANCELADA"


class ResultadoConciliacion(str, Enum):
    ACUERDO_TOTAL = "ACUERDO_TOTAL"
    ACUERDO_PARCIAL = "ACUERDO_PARCIAL"
    SIN_ACUERDO = "SIN_ACUERDO"


# =========================================================
# CASOS Y HONORARIOS
# =========================================================

class TipoInsolvencia(str, Enum):
    REORGANIZACION = "REORGANIZACION"
    ACUERDO_REORGANIZACION = "ACUERDO_REORGANIZACION"
    LIQUIDACION_JUDICIAL = "LIQUIDACION_JUDICIAL"
    INSOLVENCIA_PERSONA_NATURAL = "INSOLVENCIA_PERSONA_NATURAL"


class EstadoCaso(str, Enum):
    ACTIVO = "ACTIVO"
    SUSPENDIDO = "SUSPENDIDO"
    CERRADO = "CERRADO"
    ARCHIVADO = "ARCHIVADO"


class Prioridad(str, Enum):
    BAJA = "BAJA"
    MEDIA = "MEDIA"
    ALTA = "ALTA"
    CRITICA = "CRITICA"


class TipoHonorario(str, Enum):
    ASESORIA = "ASESORIA"
    REPRESENTACION = "REPRESENTACION"
    TRAMITE = "TRAMITE"
    GESTION_COBRANZA = "GESTION_COBRANZA"


class EstadoHonorario(str, Enum):
    PENDIENTE = "PENDIENTE"
    PAGADO = "PAGADO"
    VENCIDO = "VENCIDO"


# =========================================================
# FACTURACIÓN Y CARTERA
# =========================================================

class ModalidadPago(str, Enum):
    CONTADO = "CONTADO"
    FINANCIADO = "FINANCIADO"


class EstadoFactura(str, Enum):
    GENERADA = "GENERADA"
    ENVIADA = "ENVIADA"
    PAGADA = "PAGADA"
    VENCIDA = "VENCIDA"
    ANULADA = "ANULADA"


class EstadoCuota(str, Enum):
    PENDIENTE = "PENDIENTE"
    PARCIAL = "PARCIAL"
    PAGADA = "PAGADA"
    VENCIDA = "VENCIDA"


class MetodoPago(str, Enum):
    EFECTIVO = "EFECTIVO"
    TRANSFERENCIA = "TRANSFERENCIA"
    CONSIGNACION = "CONSIGNACION"
    CHEQUE = "CHEQUE"
    TARJETA_CREDITO = "TARJETA_CREDITO"
    TARJETA_DEBITO = "TARJETA_DEBITO"


class FiltroCartera(str, Enum):
    TODAS = "TODAS"
    VENCIDAS = "VENCIDAS"
    PROXIMAS = "PROXIMAS"
    PAGADAS = "PAGADAS"
