# FILE: curex/core/rbac.py
from __future__ import annotations

from typing import Any, Iterable, Optional, Set

from fastapi import HTTPException, status

ROLE_ADMIN = "admin"
ROLE_PATIENT = "patient"
ROLE_PHARMACIST = "pharmacist"
ROLE_GOVERNMENT = "government_official"
ROLE_INSURANCE = "insurance_provider"

ALL_ROLES = (
    ROLE_ADMIN,
    ROLE_PATIENT,
    ROLE_PHARMACIST,
    ROLE_GOVERNMENT,
    ROLE_INSURANCE,
)

PERM_MANAGE_USERS = "manage users"
PERM_MANAGE_MEDICATIONS = "manage medications"
PERM_MANAGE_PHARMACIES = "manage pharmacies"
PERM_VIEW_REPORTS = "view reports"
PERM_PLACE_ORDERS = "place orders"
PERM_UPLOAD_PRESCRIPTIONS = "upload prescriptions"

ALL_PERMISSIONS = (
    PERM_MANAGE_USERS,
    PERM_MANAGE_MEDICATIONS,
    PERM_MANAGE_PHARMACIES,
    PERM_VIEW_REPORTS,
    PERM_PLACE_ORDERS,
    PERM_UPLOAD_PRESCRIPTIONS,
)

# role -> permission codes, seeded at startup
ROLE_PERMISSIONS = {
    ROLE_ADMIN: ALL_PERMISSIONS,
    ROLE_PHARMACIST: (
        PERM_MANAGE_MEDICATIONS,
        PERM_MANAGE_PHARMACIES,
        PERM_VIEW_REPORTS,
    ),
    ROLE_PATIENT: (PERM_PLACE_ORDERS, PERM_UPLOAD_PRESCRIPTIONS),
    ROLE_GOVERNMENT: (),
    ROLE_INSURANCE: (),
}

STAFF_ROLES = (ROLE_ADMIN, ROLE_PHARMACIST)


def user_role_names(user: Any) -> Set[str]:
    if not user:
        return set()
    return {r.name for r in getattr(user, "roles", None) or []}


def is_admin_user(user: Any) -> bool:
    return ROLE_ADMIN in user_role_names(user)


def is_staff_user(user: Any) -> bool:
    """Pharmacists and admins."""
    return bool(user_role_names(user).intersection(STAFF_ROLES))


def iter_user_perm_codes(user: Any) -> Set[str]:
    """
    Collect permission codes from user.roles[*].permissions.
    """
    out: Set[str] = set()
    for r in getattr(user, "roles", None) or []:
        for p in getattr(r, "permissions", None) or []:
            c = (p.code or "").strip()
            if c:
                out.add(c)
    return out


def has_perm(user: Any, code: str) -> bool:
    if is_admin_user(user):
        return True
    want = (code or "").strip()
    if not want:
        return False
    return want in iter_user_perm_codes(user)


def require_role(user: Any,
                 roles: Iterable[str],
                 *,
                 message: Optional[str] = None) -> None:
    """
    Raise 403 unless the user holds one of the given roles.
    """
    if user_role_names(user).intersection(set(roles)):
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=message or "Unauthorized. Insufficient permissions.",
    )
