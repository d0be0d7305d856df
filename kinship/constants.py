"""Project-wide constant values and shared enumerations."""
from __future__ import annotations

from enum import StrEnum


class Visibility(StrEnum):
    PUBLIC = "public"
    PRIVATE = "private"
    FOLLOWERS = "followers"
    FRIENDS = "friends"


class BadgeTier(StrEnum):
    BLUE = "blue"
    GOLD = "gold"
    PURPLE = "purple"
    SILVER = "silver"


class FriendRequestStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class LikeSubject(StrEnum):
    POST = "post"
    COMMENT = "comment"
    VIDEO = "video"


class VerificationStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReportStatus(StrEnum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    DISMISSED = "dismissed"


class ReportContentType(StrEnum):
    POST = "post"
    COMMENT = "comment"
    VIDEO = "video"
    ACCOUNT = "account"
    MESSAGE = "message"


ADMIN_ROLE = "admin"

ONLINE_CHANNEL = "online-users"

STORAGE_BUCKETS = frozenset({"avatars", "banners", "posts", "stories", "videos", "audio"})

API_KEY_PREFIX = "kn_"

__all__ = [
    "Visibility",
    "BadgeTier",
    "FriendRequestStatus",
    "LikeSubject",
    "VerificationStatus",
    "ReportStatus",
    "ReportContentType",
    "ADMIN_ROLE",
    "ONLINE_CHANNEL",
    "STORAGE_BUCKETS",
    "API_KEY_PREFIX",
]
