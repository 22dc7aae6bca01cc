from datetime import datetime
from decimal import Decimal
import enum

from sqlalchemy import Boolean, DateTime, Enum, Float, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.core.database import Base


class PropertyStatus(str, enum.Enum):
    pending_approval = "pending_approval"
    approved = "approved"
    rejected = "rejected"
    rented = "rented"
    sold = "sold"


class Purpose(str, enum.Enum):
    sale = "Venda"
    rent = "Aluguel"
    sale_and_rent = "Venda e Aluguel"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Property(Base):
    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(160), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    property_type: Mapped[str] = mapped_column(String(50), nullable=False)
    purpose: Mapped[Purpose] = mapped_column(
        Enum(Purpose, values_callable=_enum_values, name="property_purpose"), nullable=False
    )
    status: Mapped[PropertyStatus] = mapped_column(
        Enum(PropertyStatus, name="property_status"),
        default=PropertyStatus.pending_approval,
        nullable=False,
        index=True,
    )

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    price_sale: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    price_rent: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    iptu_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    condominio_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    # Deal fields, set while the property is sold/rented.
    sale_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    commission_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    commission_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    address: Mapped[str | None] = mapped_column(String(255))
    city: Mapped[str | None] = mapped_column(String(120), index=True)
    state: Mapped[str | None] = mapped_column(String(60))
    bedrooms: Mapped[int | None] = mapped_column(Integer)
    bathrooms: Mapped[int | None] = mapped_column(Integer)
    area: Mapped[float | None] = mapped_column(Float)
    garage_spots: Mapped[int | None] = mapped_column(Integer)
    has_wifi: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    broker_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), index=True)
    owner_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )
