"""Convenience exports for ORM models."""
from .api_key import ApiKey
from .follow import Follow
from .friend_request import FriendRequest
from .friendship import Friendship
from .group_chat import GroupChat, GroupMember, GroupMessage
from .live_stream import LiveStream, StreamViewer
from .message import Message
from .notification import Notification
from .password_reset import PasswordResetToken
from .post import Comment, CommentLike, Post, PostLike
from .report import Report
from .story import Story, StoryView
from .user import User, UserRole
from .verification import VerificationRequest
from .video import Video, VideoComment, VideoLike

__all__ = [
    "ApiKey",
    "Follow",
    "FriendRequest",
    "Friendship",
    "GroupChat",
    "GroupMember",
    "GroupMessage",
    "LiveStream",
    "StreamViewer",
    "Message",
    "Notification",
    "PasswordResetToken",
    "Post",
    "PostLike",
    "Comment",
    "CommentLike",
    "Report",
    "Story",
    "StoryView",
    "User",
    "UserRole",
    "VerificationRequest",
    "Video",
    "VideoLike",
    "VideoComment",
]
