from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import Base, get_engine, get_session
from app.core.logger import get_logger
from app.core.permissions import (
    ADMIN_ROLE_DESCRIPTION,
    DEFAULT_ROLES,
    PERMISSION_DESCRIPTIONS,
    Permission as PermissionName,
)
from app.core.security import hash_password
from app.models import asesoria, caso, factura, lead  # noqa: F401
from app.models.user import Permission, Role, User

logger = get_logger()


# =========================================================
# SEED
# =========================================================


def seed_permissions(db: Session) -> dict[str, Permission]:
    """Crea los permisos del catálogo que aún no existan."""
    existentes = {p.nombre: p for p in db.query(Permission).all()}
    for nombre in PermissionName:
        if nombre.value not in existentes:
            permiso = Permission(
                nombre=nombre.value,
                modulo=nombre.modulo,
                descripcion=PERMISSION_DESCRIPTIONS[nombre],
            )
            db.add(permiso)
            existentes[nombre.value] = permiso
    db.flush()
    return existentes


def seed_roles(db: Session, permisos: dict[str, Permission]) -> Role:
    """Crea el rol administrador y los roles base. Devuelve el administrador."""
    admin = db.query(Role).filter(Role.nombre == settings.rol_administrador).first()
    if admin is None:
        admin = Role(
            nombre=settings.rol_administrador,
            descripcion=ADMIN_ROLE_DESCRIPTION,
            permissions=list(permisos.values()),
        )
        db.add(admin)

    for nombre, (descripcion, incluye) in DEFAULT_ROLES.items():
        if db.query(Role.id).filter(Role.nombre == nombre).first():
            continue
        db.add(
            Role(
                nombre=nombre,
                descripcion=descripcion,
                permissions=[p for n, p in permisos.items() if incluye(n)],
            )
        )
    db.flush()
    return admin


def seed_admin_user(db: Session, admin_role: Role) -> User:
    user = db.query(User).filter(User.email == settings.admin_email).first()
    if user is None:
        user = User(
            email=settings.admin_email,
            hashed_password=hash_password(settings.admin_password),
            nombre="Administrador",
            apellido="Sistema",
            activo=True,
            role=admin_role,
        )
        db.add(user)
        db.flush()
        logger.info("Usuario administrador creado", entity_id=user.id, action="seed_admin")
    return user


def seed(db: Session) -> User:
    """Carga idempotente del catálogo de permisos, roles y administrador."""
    permisos = seed_permissions(db)
    admin_role = seed_roles(db, permisos)
    return seed_admin_user(db, admin_role)


# =========================================================
# INIT DB
# =========================================================


def init_db() -> list[str]:
    """
    Inicializa la base de datos:
    - Crea todas las tablas definidas en los modelos
    - Carga permisos, roles base y el usuario administrador
    """
    Base.metadata.create_all(bind=get_engine())

    with get_session() as db:
        seed(db)

    tables = sorted(Base.metadata.tables.keys())
    logger.info("Base de datos inicializada", action="init_db", tablas=len(tables))
    return tables


def main():
    tables = init_db()

    print("✅ Tablas creadas / registradas en SQLAlchemy:")
    for table in tables:
        print(f"   - {table}")

    print(f"\n📊 Total tablas: {len(tables)}")


if __name__ == "__main__":
    main()
