# curex/api/routes_auth.py
import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from curex.api.deps import current_token, current_user, get_db
from curex.core.errors import FieldValidationError
from curex.core.rbac import ROLE_PATIENT, has_perm, iter_user_perm_codes
from curex.core.security import get_password_hash, verify_password
from curex.models.role import Role
from curex.models.user import ApiToken, User
from curex.schemas.auth import (
    CheckPermissionIn,
    LoginIn,
    PasswordChangeIn,
    ProfileUpdateIn,
    RegisterIn,
    TokenOut,
    UserOut,
)
from curex.utils.jwt import create_access_token
from curex.utils.resp import ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def issue_token(db: Session, user: User, name: str = "auth_token") -> dict:
    token, jti, expires_at = create_access_token(user.email, user.id)
    db.add(ApiToken(user_id=user.id, jti=jti, name=name, expires_at=expires_at))
    db.flush()
    logger.info("Issued token for user=%s", user.id)
    return TokenOut(
        user=UserOut.model_validate(user),
        token=token,
        expires_at=expires_at,
        permissions=sorted(iter_user_perm_codes(user)),
    ).model_dump()


@router.post("/register")
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    email = payload.email.lower()
    if db.query(User.id).filter(User.email == email).first():
        raise FieldValidationError(
            "Validation failed",
            {"email": ["The email has already been taken."]})

    user = User(
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        email=email,
        password_hash=get_password_hash(payload.password),
        phone=payload.phone,
        date_of_birth=payload.date_of_birth,
        gender=payload.gender,
        address=payload.address,
        is_active=True,
    )
    role = db.query(Role).filter(Role.name == ROLE_PATIENT).first()
    if role:
        user.roles.append(role)
    db.add(user)
    db.flush()

    data = issue_token(db, user)
    db.commit()
    logger.info("Registered user=%s", user.id)
    return ok(data, "User registered successfully", status_code=201)


@router.post("/login")
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise FieldValidationError(
            "Invalid credentials",
            {"email": ["The provided credentials are incorrect."]})
    if not user.is_active:
        raise FieldValidationError(
            "Account is inactive",
            {"account": ["Your account has been deactivated."]})

    user.last_login_at = datetime.utcnow()
    data = issue_token(db, user)
    db.commit()
    return ok(data, "Login successful")


@router.post("/logout")
def logout(token: ApiToken = Depends(current_token),
           db: Session = Depends(get_db)):
    user_id = token.user_id
    db.delete(token)
    db.commit()
    logger.info("Revoked token for user=%s", user_id)
    return ok(None, "Logged out successfully")


@router.get("/user")
def me(user: User = Depends(current_user)):
    data = UserOut.model_validate(user).model_dump()
    data["permissions"] = sorted(iter_user_perm_codes(user))
    return ok(data, "User retrieved successfully")


@router.post("/refresh")
def refresh(token: ApiToken = Depends(current_token),
            db: Session = Depends(get_db)):
    user = token.user
    db.delete(token)
    db.flush()
    data = issue_token(db, user)
    db.commit()
    return ok(data, "Token refreshed successfully")


@router.put("/profile")
def update_profile(payload: ProfileUpdateIn,
                   user: User = Depends(current_user),
                   db: Session = Depends(get_db)):
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(user, k, v)
    db.commit()
    db.refresh(user)
    return ok(UserOut.model_validate(user).model_dump(),
              "Profile updated successfully")


@router.put("/password")
def change_password(payload: PasswordChangeIn,
                    token: ApiToken = Depends(current_token),
                    db: Session = Depends(get_db)):
    user = token.user
    if not verify_password(payload.current_password, user.password_hash):
        raise FieldValidationError(
            "Current password is incorrect",
            {"current_password": ["The current password is incorrect."]})
    user.password_hash = get_password_hash(payload.password)
    # sign out every other session
    (db.query(ApiToken).filter(ApiToken.user_id == user.id,
                               ApiToken.id != token.id).delete(
                                   synchronize_session=False))
    db.commit()
    logger.info("Password changed for user=%s", user.id)
    return ok(None, "Password changed successfully")


@router.post("/check-permission")
def check_permission(payload: CheckPermissionIn,
                     user: User = Depends(current_user)):
    return ok(
        {
            "permission": payload.permission,
            "has_permission": has_perm(user, payload.permission),
            "role": user.role,
        }, "Permission checked")
