"""
API v1 Router

Wedding-scoped resources take the wedding id in the body or as ``?wedding_id=``.
"""

from fastapi import APIRouter
from . import admin, applications, events, guests, media, notifications, questions, weddings

router = APIRouter()

router.include_router(applications.router, prefix="/applications", tags=["Applications"])
router.include_router(admin.router, prefix="/admin", tags=["Platform Admin"])
router.include_router(weddings.router, prefix="/weddings", tags=["Weddings"])
router.include_router(media.router, prefix="/media", tags=["Media"])
router.include_router(guests.router, prefix="/guests", tags=["Guests"])
router.include_router(events.router, prefix="/events", tags=["Events"])
router.include_router(questions.router, prefix="/questions", tags=["Questions"])
router.include_router(questions.answers_router, prefix="/answers", tags=["Answers"])
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])


@router.get("/", tags=["API"])
async def api_root():
    """API root — returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/applications",
            "/admin/super-admins",
            "/admin/direct-users",
            "/weddings",
            "/media",
            "/guests",
            "/events",
            "/questions",
            "/answers",
            "/notifications",
        ],
    }
