# curex/api/deps.py
from __future__ import annotations

from datetime import datetime
from typing import Generator, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from curex.core.rbac import (
    ROLE_ADMIN,
    STAFF_ROLES,
    require_role,
)
from curex.db.session import SessionLocal
from curex.models.user import ApiToken, User
from curex.utils.jwt import decode_token


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# =========================================================
# AUTH HELPERS
# =========================================================
def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def resolve_token(db: Session, raw_token: Optional[str]) -> ApiToken:
    """
    A token is valid while its signature checks out, it is not expired,
    and its jti row still exists (logout deletes the row).
    """
    if not raw_token:
        raise HTTPException(status_code=401, detail="Unauthenticated.")

    payload = decode_token(raw_token)
    if not payload or not payload.get("jti"):
        raise HTTPException(status_code=401, detail="Invalid token")

    token = db.query(ApiToken).filter(ApiToken.jti == payload["jti"]).first()
    if not token:
        raise HTTPException(status_code=401, detail="Token has been revoked")
    if token.expires_at and token.expires_at < datetime.utcnow():
        raise HTTPException(status_code=401, detail="Token expired")

    user = token.user
    if not user or user.id != payload.get("uid"):
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is inactive")

    token.last_used_at = datetime.utcnow()
    db.commit()
    return token


def current_token(
        authorization: Optional[str] = Header(None),
        db: Session = Depends(get_db),
) -> ApiToken:
    return resolve_token(db, _extract_bearer(authorization))


def current_user(token: ApiToken = Depends(current_token)) -> User:
    return token.user


def staff_user(user: User = Depends(current_user)) -> User:
    """Pharmacist or admin."""
    require_role(user, STAFF_ROLES)
    return user


def admin_user(user: User = Depends(current_user)) -> User:
    require_role(user, (ROLE_ADMIN, ))
    return user
