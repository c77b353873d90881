from datetime import datetime
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Boolean, JSON, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from core.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)  # type: ignore
    email = Column(String, unique=True, index=True, nullable=False)  # type: ignore
    first_name = Column(String(80), nullable=False)  # type: ignore
    last_name = Column(String(80), nullable=False)  # type: ignore
    hashed_password = Column(String, nullable=False)  # type: ignore
    role = Column(String, default="INSPECTOR")  # type: ignore  # INSPECTOR, SUPERVISOR, ADMIN or SUPERUSER
    permissions = Column(JSON, nullable=False, default=list)  # type: ignore
    is_active = Column(Boolean, default=True)  # type: ignore
    profile_picture = Column(String, nullable=True)  # type: ignore
    phone = Column(String(40), nullable=True)  # type: ignore

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    pin_devices = relationship("PinDevice", back_populates="user", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class PinDevice(Base):
    """A device registered for quick PIN login, with brute force counters."""
    __tablename__ = "pin_devices"

    __table_args__ = (
        UniqueConstraint("device_id", name="uq_pin_device_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    device_id = Column(String(120), nullable=False, index=True)
    pin_hash = Column(String, nullable=False)
    device_name = Column(String(120), nullable=False, default="Unknown Device")

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    last_used = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    failed_attempts = Column(Integer, nullable=False, default=0)
    locked_until = Column(DateTime(timezone=True), nullable=True)
    last_failed_attempt = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="pin_devices")
