# curex/db/init_db.py
import logging

from sqlalchemy.orm import Session

from curex.core.rbac import ALL_PERMISSIONS, ROLE_PERMISSIONS
from curex.db.base import Base
from curex.db.session import engine
from curex import models  # noqa: F401  (register tables on Base.metadata)
from curex.models.role import Role, Permission

logger = logging.getLogger(__name__)


def create_tables(bind=None) -> None:
    Base.metadata.create_all(bind=bind or engine)


def seed_roles_and_permissions(db: Session) -> None:
    """
    Idempotent: creates missing permissions/roles and attaches the
    default permission set of each role.
    """
    perms = {p.code: p for p in db.query(Permission).all()}
    for code in ALL_PERMISSIONS:
        if code not in perms:
            p = Permission(code=code)
            db.add(p)
            perms[code] = p
    db.flush()

    for role_name, codes in ROLE_PERMISSIONS.items():
        role = db.query(Role).filter(Role.name == role_name).first()
        if not role:
            role = Role(name=role_name,
                        description=role_name.replace("_", " ").title())
            db.add(role)
            logger.info("Created role %s", role_name)
        have = {p.code for p in role.permissions}
        for code in codes:
            if code not in have:
                role.permissions.append(perms[code])

    db.commit()


def init_db(db: Session) -> None:
    create_tables(db.get_bind())
    seed_roles_and_permissions(db)
