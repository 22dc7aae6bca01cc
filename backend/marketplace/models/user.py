from datetime import datetime
import enum

from sqlalchemy import Boolean, DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.core.database import Base


class UserRole(str, enum.Enum):
    admin = "admin"
    broker = "broker"
    client = "client"


class BrokerStatus(str, enum.Enum):
    pending_verification = "pending_verification"
    approved = "approved"
    rejected = "rejected"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    full_name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    role: Mapped[UserRole] = mapped_column(Enum(UserRole), default=UserRole.client, nullable=False)
    # Only meaningful for brokers; CRECI verification is handled by the admin panel.
    broker_status: Mapped[BrokerStatus | None] = mapped_column(Enum(BrokerStatus))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
