from datetime import datetime
from decimal import Decimal
import enum

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.core.database import Base


class DealType(str, enum.Enum):
    sale = "sale"
    rent = "rent"


class RecurrenceInterval(str, enum.Enum):
    none = "none"
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"


SALE_PROPERTY_CONSTRAINT = "uq_sales_property_id"


class Sale(Base):
    __tablename__ = "sales"
    # One current deal per property; repeat closings update this row.
    __table_args__ = (UniqueConstraint("property_id", name=SALE_PROPERTY_CONSTRAINT),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    property_id: Mapped[int] = mapped_column(ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    broker_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    deal_type: Mapped[DealType] = mapped_column(Enum(DealType, name="deal_type"), nullable=False)
    sale_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    iptu_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    condominio_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    commission_cycles: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    recurrence_interval: Mapped[RecurrenceInterval] = mapped_column(
        Enum(RecurrenceInterval, name="recurrence_interval"), default=RecurrenceInterval.none, nullable=False
    )
    sale_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
