"""
Autenticación y autorización de la API.

Passwords con bcrypt (passlib), tokens de acceso JWT firmados con HS256
(PyJWT) y límites por IP con slowapi. La autorización es por permiso: cada
endpoint declara el `Permission` que exige y el rol del usuario debe
tenerlo, salvo el rol administrador que los tiene todos.
"""
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import (
    AuthenticationException,
    InsufficientPermissionsException,
    InvalidTokenException,
    TokenExpiredException,
)
from app.core.logger import get_logger
from app.core.permissions import Permission
from app.models.user import User

logger = get_logger().bind(componente="security")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

bearer_scheme = HTTPBearer(auto_error=False)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
    enabled=settings.rate_limit_enabled,
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# =========================================================
# TOKENS
# =========================================================


class TokenClaims(BaseModel):
    sub: str
    role: str
    type: str = "access"
    exp: datetime
    iat: datetime


def create_access_token(user_id: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
    emitido = datetime.now(timezone.utc)
    vigencia = expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes)
    claims = {"sub": user_id, "role": role, "type": "access", "iat": emitido, "exp": emitido + vigencia}

    logger.debug("Token emitido", entity_id=user_id, action="token_create", role=role)
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> TokenClaims:
    """
    Verifica firma y expiración del token y devuelve sus claims.

    Raises:
        TokenExpiredException: el token expiró
        InvalidTokenException: firma, formato o claims inválidos
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        logger.warning("Token expirado", action="token_expired")
        raise TokenExpiredException()
    except jwt.InvalidTokenError as e:
        logger.warning("Token rechazado", action="token_invalid", motivo=str(e))
        raise InvalidTokenException(reason=str(e))

    try:
        claims = TokenClaims.model_validate(payload)
    except ValidationError:
        raise InvalidTokenException(reason="Claims incompletos")
    if claims.type != "access":
        raise InvalidTokenException(reason="Tipo de token no admitido")
    return claims


# =========================================================
# DEPENDENCIAS FASTAPI
# =========================================================


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Usuario activo dueño del token Bearer; cualquier fallo es 401."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationException("No autenticado")

    claims = decode_token(credentials.credentials)
    user = db.get(User, claims.sub)
    if user is None or not user.activo:
        logger.warning("Token de usuario inexistente o inactivo", entity_id=claims.sub, action="auth_denied")
        raise AuthenticationException("Usuario inexistente o inactivo")
    return user


def has_permission(user: User, permission: Permission) -> bool:
    if user.role is None:
        return False
    if user.role.nombre == settings.rol_administrador:
        return True
    return permission.value in user.role.permission_names


def require_permission(permission: Permission) -> Callable[..., User]:
    """
    Dependencia que exige `permission` y devuelve el usuario autenticado.

        current_user: User = Depends(require_permission(Permission.CARTERA_MANAGE))
    """

    def _verificar(current_user: User = Depends(get_current_user)) -> User:
        if not has_permission(current_user, permission):
            logger.warning(
                "Permiso denegado",
                entity_id=current_user.id,
                action="permission_denied",
                required_permission=permission.value,
            )
            raise InsufficientPermissionsException(permission.value)
        return current_user

    return _verificar
