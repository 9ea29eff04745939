"""
API router assembly
"""
from fastapi import APIRouter

from app.api.routes import admin, auth, profile

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(profile.router, prefix="/profile", tags=["Profile"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin - Auth"])
api_router.include_router(admin.management_router, prefix="/admin/management", tags=["Admin - Management"])
