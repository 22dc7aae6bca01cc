from datetime import datetime
from pydantic import BaseModel

from marketplace.models.property import PropertyStatus, Purpose
from marketplace.models.sale import DealType, RecurrenceInterval

# Numbers arrive from mobile and web forms as numbers or strings ("300000",
# "") and are validated by the property service, not here.
Amount = str | float | None


class PropertyCreate(BaseModel):
    title: str
    description: str | None = None
    property_type: str
    purpose: str
    price: Amount
    price_sale: Amount = None
    price_rent: Amount = None
    iptu_value: Amount = None
    condominio_value: Amount = None
    commission_rate: Amount = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    bedrooms: Amount = None
    bathrooms: Amount = None
    area: Amount = None
    garage_spots: Amount = None
    has_wifi: bool | str | None = None


class PropertyUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    property_type: str | None = None
    purpose: str | None = None
    status: str | None = None
    price: Amount = None
    price_sale: Amount = None
    price_rent: Amount = None
    iptu_value: Amount = None
    condominio_value: Amount = None
    commission_rate: Amount = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    bedrooms: Amount = None
    bathrooms: Amount = None
    area: Amount = None
    garage_spots: Amount = None
    has_wifi: bool | str | None = None


class AdminStatusUpdate(BaseModel):
    status: str


class PropertyResponse(BaseModel):
    id: int
    title: str
    description: str | None
    property_type: str
    purpose: Purpose
    status: PropertyStatus
    price: float
    price_sale: float | None
    price_rent: float | None
    iptu_value: float | None
    condominio_value: float | None
    sale_value: float | None
    commission_rate: float | None
    commission_value: float | None
    address: str | None
    city: str | None
    state: str | None
    bedrooms: int | None
    bathrooms: int | None
    area: float | None
    garage_spots: int | None
    has_wifi: bool
    broker_id: int | None
    owner_id: int | None
    created_at: datetime
    updated_at: datetime | None

    class Config:
        from_attributes = True


class CloseDealRequest(BaseModel):
    type: str
    amount: Amount = None
    commission_rate: Amount = None
    commission_cycles: int | str | None = None
    recurrence_interval: str | None = None


class DealSummary(BaseModel):
    property_id: int
    status: PropertyStatus
    sale_id: int
    deal_type: DealType
    sale_price: float
    commission_rate: float
    commission_amount: float
    commission_cycles: int
    recurrence_interval: RecurrenceInterval
    is_recurring: bool
    sale_date: datetime


class CommissionEntry(BaseModel):
    id: int
    property_id: int
    title: str
    deal_type: DealType
    sale_price: float
    commission_rate: float
    commission_amount: float
    is_recurring: bool
    commission_cycles: int
    recurrence_interval: RecurrenceInterval
    sale_date: datetime


class PerformanceReport(BaseModel):
    total_deals: int
    total_commission: float
    total_properties: int
    status_breakdown: dict[str, int]
