from sqlalchemy import Column, Integer, String, DateTime, Enum, Boolean
from sqlalchemy.sql import func
from newshub.db.session import Base
import enum


class RoleEnum(str, enum.Enum):
    admin = "admin"
    super_admin = "super-admin"


class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    # stored trimmed and lowercased
    username = Column(String(30), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(RoleEnum, values_callable=lambda e: [m.value for m in e], name="admin_role"),
        nullable=False,
        default=RoleEnum.admin,
    )
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    last_login = Column(DateTime, nullable=True)
    login_attempts = Column(Integer, nullable=False, default=0)
    lock_until = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def is_locked(self, now) -> bool:
        return bool(self.lock_until and self.lock_until > now)
