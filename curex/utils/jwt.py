# curex/utils/jwt.py
import uuid
from datetime import datetime, timedelta
from typing import Optional, Tuple

from jose import jwt, JWTError

from curex.core.config import settings


def create_access_token(
    subject: str,
    user_id: int,
    expires_delta: Optional[timedelta] = None,
) -> Tuple[str, str, datetime]:
    """
    Issue a bearer token. Returns (token, jti, expires_at).
    The jti is persisted in api_tokens so the token can be revoked.
    """
    now = datetime.utcnow()
    expires_at = now + (expires_delta or timedelta(
        minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    jti = uuid.uuid4().hex
    payload = {
        "sub": subject,  # user email
        "uid": user_id,
        "jti": jti,
        "iat": now,
        "exp": expires_at,
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)
    return token, jti, expires_at


def decode_token(raw_token: str) -> Optional[dict]:
    try:
        return jwt.decode(raw_token,
                          settings.JWT_SECRET,
                          algorithms=[settings.JWT_ALG])
    except JWTError:
        return None
