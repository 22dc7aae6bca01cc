from marketplace.api.routes import admin, brokers, favorites, notifications, properties

__all__ = [
    "properties",
    "favorites",
    "notifications",
    "brokers",
    "admin",
]
