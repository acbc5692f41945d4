# FILE: curex/core/security.py
from __future__ import annotations

import re

from passlib.context import CryptContext

from curex.core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

MIN_PASSWORD_LENGTH = 8


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """
    Safe bcrypt verify: malformed or empty hashes count as a mismatch.
    """
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def password_problems(password: str) -> list[str]:
    """
    Password policy: at least 8 characters, with letters and numbers.
    """
    problems: list[str] = []
    if len(password or "") < MIN_PASSWORD_LENGTH:
        problems.append(
            f"The password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if not re.search(r"[A-Za-z]", password or ""):
        problems.append("The password must contain at least one letter.")
    if not re.search(r"\d", password or ""):
        problems.append("The password must contain at least one number.")
    return problems
