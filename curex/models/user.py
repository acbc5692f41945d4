# FILE: curex/models/user.py
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, ForeignKey, Text,
)
from sqlalchemy.orm import relationship

from curex.db.base import Base

TABLE_ARGS = {
    "mysql_engine": "InnoDB",
    "mysql_charset": "utf8mb4",
    "mysql_collate": "utf8mb4_unicode_ci",
}


class User(Base):
    __tablename__ = "users"
    __table_args__ = TABLE_ARGS

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(191), unique=True,
                   nullable=False)  # <= 191 for utf8mb4 unique index
    password_hash = Column(String(255), nullable=False)

    phone = Column(String(30))
    date_of_birth = Column(Date)
    gender = Column(String(20))
    address = Column(Text)
    city = Column(String(100))
    postal_code = Column(String(20))

    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime)

    pharmacy_id = Column(Integer, ForeignKey("pharmacies.id"), nullable=True)
    pharmacy = relationship("Pharmacy", foreign_keys=[pharmacy_id])

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)

    roles = relationship("Role",
                         secondary="user_roles",
                         back_populates="users",
                         lazy="selectin")
    tokens = relationship("ApiToken",
                          back_populates="user",
                          cascade="all, delete-orphan")

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def role(self) -> str:
        # first assigned role wins; unassigned users browse as patients
        if self.roles:
            return self.roles[0].name
        return "patient"

    def has_role(self, *names: str) -> bool:
        return any(r.name in names for r in self.roles or [])


class UserRole(Base):
    __tablename__ = "user_roles"
    __table_args__ = TABLE_ARGS

    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    role_id = Column(Integer, ForeignKey("roles.id"), primary_key=True)


class ApiToken(Base):
    """
    One row per issued bearer token. Deleting the row revokes the token.
    """
    __tablename__ = "api_tokens"
    __table_args__ = TABLE_ARGS

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer,
                     ForeignKey("users.id", ondelete="CASCADE"),
                     nullable=False,
                     index=True)
    jti = Column(String(64), unique=True, nullable=False)
    name = Column(String(100), default="auth_token", nullable=False)
    expires_at = Column(DateTime)
    last_used_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="tokens")
