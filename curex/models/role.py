# FILE: curex/models/role.py
from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship

from curex.db.base import Base
from curex.models.user import TABLE_ARGS


class Role(Base):
    __tablename__ = "roles"
    __table_args__ = TABLE_ARGS

    id = Column(Integer, primary_key=True)
    name = Column(String(120), unique=True, nullable=False)
    description = Column(String(255))

    users = relationship("User", secondary="user_roles", back_populates="roles")
    permissions = relationship("Permission",
                               secondary="role_permissions",
                               back_populates="roles",
                               lazy="selectin")


class Permission(Base):
    __tablename__ = "permissions"
    __table_args__ = TABLE_ARGS

    id = Column(Integer, primary_key=True)
    code = Column(String(120), unique=True, nullable=False)

    roles = relationship("Role",
                         secondary="role_permissions",
                         back_populates="permissions")


class RolePermission(Base):
    __tablename__ = "role_permissions"
    __table_args__ = TABLE_ARGS

    role_id = Column(Integer, ForeignKey("roles.id"), primary_key=True)
    permission_id = Column(Integer, ForeignKey("permissions.id"), primary_key=True)
