from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, Enum, ForeignKey
from datetime import datetime
import enum
from ..core.db import Base


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    BRAND = "BRAND"
    INFLUENCER = "INFLUENCER"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=True)
    role = Column(Enum(UserRole), nullable=True)  # None until the user picks one
    image = Column(String, nullable=True)
    email_verified = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(String(64), nullable=False)  # USER_UPDATE, USER_DELETE, ...
    message = Column(Text, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True)  # actor
    target_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
