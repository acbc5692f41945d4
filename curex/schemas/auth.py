# curex/schemas/auth.py
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)

from curex.core.security import password_problems
from curex.schemas.common import reject_null


def _check_password(v: str) -> str:
    problems = password_problems(v)
    if problems:
        raise ValueError(" ".join(problems))
    return v


class RegisterIn(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str
    password_confirmation: str
    phone: Optional[str] = Field(None, max_length=30)
    date_of_birth: Optional[date] = None
    gender: Optional[Literal["male", "female", "other"]] = None
    address: Optional[str] = Field(None, max_length=500)

    @field_validator("password")
    @classmethod
    def _policy(cls, v: str) -> str:
        return _check_password(v)

    @model_validator(mode="after")
    def _confirmed(self):
        if self.password != self.password_confirmation:
            raise ValueError("The password confirmation does not match.")
        return self


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    remember: bool = False


class ProfileUpdateIn(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    date_of_birth: Optional[date] = None
    gender: Optional[Literal["male", "female", "other"]] = None
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)

    @field_validator("first_name", "last_name")
    @classmethod
    def _not_null(cls, v, info):
        return reject_null(v, info)


class PasswordChangeIn(BaseModel):
    current_password: str
    password: str
    password_confirmation: str

    @field_validator("password")
    @classmethod
    def _policy(cls, v: str) -> str:
        return _check_password(v)

    @model_validator(mode="after")
    def _confirmed(self):
        if self.password != self.password_confirmation:
            raise ValueError("The password confirmation does not match.")
        return self


class CheckPermissionIn(BaseModel):
    permission: str = Field(..., min_length=1)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    name: str
    email: EmailStr
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    is_active: bool
    role: str
    pharmacy_id: Optional[int] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class TokenOut(BaseModel):
    user: UserOut
    token: str
    token_type: str = "Bearer"
    expires_at: datetime
    permissions: List[str] = []
