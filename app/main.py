from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api import (
    asesorias,
    auth,
    cartera,
    casos,
    conciliaciones,
    dashboard,
    facturacion,
    leads,
    search,
    usuarios,
)
from app.core.config import settings
from app.core.exceptions import ErpException, ErrorSeverity
from app.core.init_db import init_db
from app.core.logger import get_logger
from app.core.security import limiter

logger = get_logger()


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.init_db_on_startup:
        init_db()
    logger.info(
        "Servicio iniciado",
        action="startup",
        environment=settings.environment,
        version=settings.app_version,
    )
    yield


# =========================================================
# FASTAPI APP (ENTRYPOINT ASGI)
# =========================================================

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(dashboard.router)
app.include_router(leads.router)
app.include_router(asesorias.router)
app.include_router(conciliaciones.router)
app.include_router(casos.clientes_router)
app.include_router(casos.router)
app.include_router(casos.honorarios_router)
app.include_router(facturacion.router)
app.include_router(cartera.router)
app.include_router(search.router)
app.include_router(usuarios.router)
app.include_router(usuarios.roles_router)
app.include_router(usuarios.permisos_router)


# =========================================================
# MANEJO DE ERRORES
# =========================================================


@app.exception_handler(ErpException)
async def erp_exception_handler(request: Request, exc: ErpException):
    """Errores de dominio: {"error", "error_code", "details"} con su status."""
    if exc.status_code >= 500 or exc.severity == ErrorSeverity.CRITICAL:
        logger.error(
            exc.message,
            action="request_failed",
            error=exc.original_error or exc,
            path=request.url.path,
            error_code=exc.code,
        )
    else:
        logger.warning(
            exc.message,
            action="request_rejected",
            path=request.url.path,
            error_code=exc.code,
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(exc.to_response()),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(
            {
                "error": "Datos inválidos",
                "error_code": "VALIDATION_ERROR",
                "details": {"errors": exc.errors()},
            }
        ),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Error no controlado",
        action="request_failed",
        error=exc,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Error interno del servidor", "error_code": "INTERNAL_ERROR"},
    )


# =========================================================
# ESTADO DEL SERVICIO
# =========================================================


@app.get("/", tags=["estado"])
def root():
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@app.get("/health", tags=["estado"])
def health():
    return {"status": "ok"}
