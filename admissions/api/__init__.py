"""
HTTP routers; admissions.main mounts each of them under /api
"""

from admissions.api.auth import router as auth_router
from admissions.api.applications import router as applications_router
from admissions.api.documents import router as documents_router
from admissions.api.admin import router as admin_router
from admissions.api.notifications import router as notifications_router

__all__ = [
    "auth_router",
    "applications_router",
    "documents_router",
    "admin_router",
    "notifications_router",
]
