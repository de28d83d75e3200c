"""
ENDPOINTS DE AUTENTICACIÓN.

Login con email y contraseña (limitado por IP) y consulta del usuario
autenticado.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.usuarios import _build_user_summary
from app.core.config import settings
from app.core.database import get_db
from app.core.security import create_access_token, get_current_user, limiter
from app.models.user import User
from app.models.user_summary import LoginRequest, TokenResponse, UserSummary
from app.services.usuarios_service import UsuariosService

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Iniciar sesión",
    description=(
        "Valida email y contraseña y devuelve un token Bearer. "
        "Responde 401 con credenciales inválidas o usuario inactivo "
        "y 429 si se supera el límite de intentos."
    ),
)
@limiter.limit(settings.login_rate_limit)
def login(
    request: Request,
    credentials: LoginRequest,
    db: Session = Depends(get_db),
) -> TokenResponse:
    user = UsuariosService(db).autenticar(credentials.email, credentials.password)
    token = create_access_token(user.id, user.role.nombre)

    return TokenResponse(
        access_token=token,
        expires_in=settings.jwt_access_token_expire_minutes * 60,
    )


@router.get(
    "/me",
    response_model=UserSummary,
    summary="Usuario autenticado",
)
def me(current_user: User = Depends(get_current_user)) -> UserSummary:
    return _build_user_summary(current_user)
