from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from marketplace.models.property import Property, PropertyStatus
from marketplace.models.sale import DealType, RecurrenceInterval, Sale


@dataclass
class DealFields:
    broker_id: int
    deal_type: DealType
    sale_price: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    iptu_value: Decimal | None = None
    condominio_value: Decimal | None = None
    commission_cycles: int = 0
    recurrence_interval: RecurrenceInterval = RecurrenceInterval.none

    @property
    def is_recurring(self) -> bool:
        return self.recurrence_interval != RecurrenceInterval.none


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_current_sale(db: Session, property_id: int) -> Sale | None:
    return (
        db.query(Sale)
        .filter(Sale.property_id == property_id)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .first()
    )


def upsert_sale(db: Session, property_id: int, fields: DealFields) -> Sale:
    """Record the deal for a property, reusing the existing sale row if any.

    Only flushes; the caller commits together with the property status change.
    """
    sale = get_current_sale(db, property_id)
    if sale is None:
        sale = Sale(property_id=property_id)
        db.add(sale)

    sale.broker_id = fields.broker_id
    sale.deal_type = fields.deal_type
    sale.sale_price = fields.sale_price
    sale.commission_rate = fields.commission_rate
    sale.commission_amount = fields.commission_amount
    sale.iptu_value = fields.iptu_value
    sale.condominio_value = fields.condominio_value
    sale.is_recurring = fields.is_recurring
    sale.commission_cycles = fields.commission_cycles
    sale.recurrence_interval = fields.recurrence_interval
    sale.sale_date = _now()
    db.flush()
    return sale


def delete_sales_for_property(db: Session, property_id: int) -> int:
    return db.query(Sale).filter(Sale.property_id == property_id).delete(synchronize_session="fetch")


def list_broker_commissions(db: Session, broker_id: int) -> list[dict]:
    rows = (
        db.query(Sale, Property.title)
        .join(Property, Sale.property_id == Property.id)
        .filter(Sale.broker_id == broker_id)
        .order_by(Sale.sale_date.desc())
        .all()
    )
    return [
        {
            "id": sale.id,
            "property_id": sale.property_id,
            "title": title,
            "deal_type": sale.deal_type,
            "sale_price": sale.sale_price,
            "commission_rate": sale.commission_rate,
            "commission_amount": sale.commission_amount,
            "is_recurring": sale.is_recurring,
            "commission_cycles": sale.commission_cycles,
            "recurrence_interval": sale.recurrence_interval,
            "sale_date": sale.sale_date,
        }
        for sale, title in rows
    ]


def broker_performance_report(db: Session, broker_id: int) -> dict:
    total_deals, total_commission = (
        db.query(func.count(Sale.id), func.sum(Sale.commission_amount)).filter(Sale.broker_id == broker_id).one()
    )

    status_rows = (
        db.query(Property.status, func.count(Property.id))
        .filter(Property.broker_id == broker_id)
        .group_by(Property.status)
        .all()
    )
    breakdown = {status.value: 0 for status in PropertyStatus}
    for status, count in status_rows:
        breakdown[PropertyStatus(status).value] = int(count or 0)

    return {
        "total_deals": int(total_deals or 0),
        "total_commission": Decimal(str(total_commission or 0)).quantize(Decimal("0.01")),
        "total_properties": sum(breakdown.values()),
        "status_breakdown": breakdown,
    }
