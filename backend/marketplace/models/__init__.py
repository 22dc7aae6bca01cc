from marketplace.models.user import BrokerStatus, User, UserRole
from marketplace.models.property import Property, PropertyStatus, Purpose
from marketplace.models.sale import DealType, RecurrenceInterval, Sale
from marketplace.models.notification import DeviceToken, Notification, RelatedEntityType
from marketplace.models.favorite import Favorite

__all__ = [
    "User",
    "UserRole",
    "BrokerStatus",
    "Property",
    "PropertyStatus",
    "Purpose",
    "Sale",
    "DealType",
    "RecurrenceInterval",
    "Notification",
    "RelatedEntityType",
    "DeviceToken",
    "Favorite",
]
