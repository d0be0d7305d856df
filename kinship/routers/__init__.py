"""Aggregate router exports."""
from .admin import router as admin_router
from .api_keys import router as api_keys_router
from .auth import router as auth_router
from .comments import router as comments_router
from .follows import router as follows_router
from .friends import router as friends_router
from .groups import router as groups_router
from .live import router as live_router
from .messages import router as messages_router
from .notifications import router as notifications_router
from .posts import router as posts_router
from .profiles import router as profiles_router
from .realtime import router as realtime_router
from .reports import router as reports_router
from .stories import router as stories_router
from .uploads import router as uploads_router
from .verification import router as verification_router
from .videos import router as videos_router

__all__ = [
    "admin_router",
    "api_keys_router",
    "auth_router",
    "comments_router",
    "follows_router",
    "friends_router",
    "groups_router",
    "live_router",
    "messages_router",
    "notifications_router",
    "posts_router",
    "profiles_router",
    "realtime_router",
    "reports_router",
    "stories_router",
    "uploads_router",
    "verification_router",
    "videos_router",
]
