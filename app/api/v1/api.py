from fastapi import APIRouter

# Import routers from modules
from app.api.v1.endpoints import admin, attendance, bookings, credits

# Import modular packages directly
from app.api.v1.endpoints.schedule import router as schedule_router

api_router = APIRouter()

# Schedule module (templates, class instances and generation)
api_router.include_router(schedule_router, prefix="/schedule")

# Bookings module
api_router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])

# Credits module
api_router.include_router(credits.router, prefix="/credits", tags=["credits"])

# Attendance module
api_router.include_router(attendance.router, prefix="/attendance", tags=["attendance"])

# Admin operations
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
