"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from app.api.v1 import admin, bookings, notifications, schedules, users

api_router = APIRouter()

# Users
api_router.include_router(users.router, prefix="/users", tags=["Users"])

# Schedules
api_router.include_router(schedules.router, prefix="/schedules", tags=["Schedules"])

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Notifications
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])

# Admin
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
