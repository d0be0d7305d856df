"""Convenience exports for schema layer."""
from .api_keys import ApiKeyCreate, ApiKeyResponse
from .auth import (
    AuthResponse,
    EmailUpdateRequest,
    LoginRequest,
    PasswordResetConfirm,
    PasswordResetRequest,
    PasswordUpdateRequest,
    RegisterRequest,
)
from .follow import FollowActionResponse, FollowListResponse, FollowStatsResponse
from .friends import FriendRequestPayload, FriendRequestResponse, FriendsOverviewResponse, FriendStatusResponse
from .live import StreamListResponse, StreamResponse, StreamStart, ViewerCountResponse
from .media import MediaUploadResponse
from .messages import (
    ConversationSummaryResponse,
    GroupChatCreate,
    GroupChatResponse,
    GroupLeaveResponse,
    GroupMemberAdd,
    GroupMemberResponse,
    GroupMessageResponse,
    InboxResponse,
    MessageResponse,
    MessageSendRequest,
    MessageThreadResponse,
)
from .moderation import (
    AdminUserResponse,
    BadgeGrantRequest,
    BlockRequest,
    VerificationApproval,
    VerificationRequestCreate,
    VerificationRequestResponse,
)
from .notifications import NotificationListResponse, NotificationResponse, NotificationSummaryResponse
from .posts import (
    LikeRequest,
    LikeStateResponse,
    MediaGridResponse,
    PostCommentCreate,
    PostCommentListResponse,
    PostCommentResponse,
    PostCreate,
    PostFeedResponse,
    PostResponse,
    PostUpdate,
    PostVisibilityUpdate,
    RepostRequest,
)
from .profiles import AccountResponse, ProfileResponse, ProfileUpdateRequest, UserSummary
from .reports import ReportCreate, ReportResponse, ReportReview
from .stories import (
    StoryCreate,
    StoryFeedResponse,
    StoryGroupResponse,
    StoryResponse,
    StoryUploadResponse,
    StoryViewerResponse,
    StoryViewResponse,
)
from .videos import VideoCommentCreate, VideoCommentResponse, VideoCreate, VideoFeedResponse, VideoResponse

__all__ = [
    "ApiKeyCreate",
    "ApiKeyResponse",
    "AuthResponse",
    "EmailUpdateRequest",
    "LoginRequest",
    "PasswordResetConfirm",
    "PasswordResetRequest",
    "PasswordUpdateRequest",
    "RegisterRequest",
    "FollowActionResponse",
    "FollowListResponse",
    "FollowStatsResponse",
    "FriendRequestPayload",
    "FriendRequestResponse",
    "FriendsOverviewResponse",
    "FriendStatusResponse",
    "StreamListResponse",
    "StreamResponse",
    "StreamStart",
    "ViewerCountResponse",
    "MediaUploadResponse",
    "ConversationSummaryResponse",
    "GroupChatCreate",
    "GroupChatResponse",
    "GroupLeaveResponse",
    "GroupMemberAdd",
    "GroupMemberResponse",
    "GroupMessageResponse",
    "InboxResponse",
    "MessageResponse",
    "MessageSendRequest",
    "MessageThreadResponse",
    "AdminUserResponse",
    "BadgeGrantRequest",
    "BlockRequest",
    "VerificationApproval",
    "VerificationRequestCreate",
    "VerificationRequestResponse",
    "NotificationListResponse",
    "NotificationResponse",
    "NotificationSummaryResponse",
    "LikeRequest",
    "LikeStateResponse",
    "MediaGridResponse",
    "PostCommentCreate",
    "PostCommentListResponse",
    "PostCommentResponse",
    "PostCreate",
    "PostFeedResponse",
    "PostResponse",
    "PostUpdate",
    "PostVisibilityUpdate",
    "RepostRequest",
    "AccountResponse",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "UserSummary",
    "ReportCreate",
    "ReportResponse",
    "ReportReview",
    "StoryCreate",
    "StoryFeedResponse",
    "StoryGroupResponse",
    "StoryResponse",
    "StoryUploadResponse",
    "StoryViewerResponse",
    "StoryViewResponse",
    "VideoCommentCreate",
    "VideoCommentResponse",
    "VideoCreate",
    "VideoFeedResponse",
    "VideoResponse",
]
