"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter

from passdesk.api.routes import admin, attendance, auth, passes, scan, slots

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(scan.router)
api_router.include_router(passes.router)
api_router.include_router(slots.router)
api_router.include_router(attendance.router)
api_router.include_router(admin.router)
