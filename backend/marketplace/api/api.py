from fastapi import APIRouter

from marketplace.api.routes import admin, brokers, favorites, notifications, properties

api_router = APIRouter()
api_router.include_router(properties.router)
api_router.include_router(favorites.router)
api_router.include_router(notifications.router)
api_router.include_router(brokers.router)
api_router.include_router(admin.router)
