"""Convenience exports for service layer."""
from .admin_service import block_user, grant_badge, revoke_badge, unblock_user
from .api_key_service import create_api_key, delete_api_key, list_api_keys
from .auth_service import (
    authenticate_user,
    confirm_password_reset,
    create_access_token,
    decode_access_token,
    get_current_user,
    get_login_throttle,
    get_optional_user,
    is_admin,
    register_user,
    request_password_reset,
    require_admin,
    update_email,
    update_password,
)
from .change_feed import ChangeFeed, RowChange
from .cleanup_service import CleanupError, CleanupSummary, run_cleanup
from .comment_service import CommentNode, create_comment, delete_comment, list_comments
from .composite import CompositeWrite, CompositeWriteError
from .follow_service import (
    FollowStats,
    follow_user,
    get_follow_stats,
    list_followers,
    list_following,
    unfollow_user,
)
from .friendship_service import (
    accept_friend_request,
    cancel_friend_request,
    friend_status,
    list_friend_requests,
    list_friends,
    reject_friend_request,
    remove_friend,
    send_friend_request,
)
from .group_service import (
    add_member,
    create_group,
    get_group,
    leave_group,
    list_group_messages,
    list_groups,
    send_group_message,
)
from .like_service import LikeState, get_like_state, set_like_state, toggle_like
from .live_service import (
    StreamView,
    get_active_stream,
    join_stream,
    leave_stream,
    list_active_streams,
    start_stream,
    stop_stream,
)
from .media_layout import MediaGrid, select_media_grid
from .message_service import ConversationSummary, count_unread_messages, list_conversation, list_inbox, send_message
from .notification_service import (
    NotificationType,
    add_notification,
    count_unread_notifications,
    list_notifications,
    mark_all_read,
    mark_read,
)
from .post_service import (
    PostView,
    create_post,
    delete_post,
    get_visible_post,
    list_feed,
    list_user_posts,
    repost,
    set_post_visibility,
    update_post,
)
from .presence import OnlineTracker, PresenceHub, TypingIndicator
from .profile_service import ProfileView, get_profile, update_profile
from .report_service import create_report, list_reports, review_report
from .storage_service import (
    StorageConfigurationError,
    StorageUploadError,
    StoredObject,
    get_storage_backend,
    upload_bytes,
    upload_file,
)
from .story_service import (
    StoryUploadResult,
    create_story,
    delete_story,
    list_active_stories,
    list_viewers,
    record_view,
    upload_stories,
)
from .sync import SyncedView, Watch
from .verification_service import (
    approve_verification,
    list_pending_requests,
    reject_verification,
    request_verification,
)
from .video_service import (
    VideoView,
    add_video_comment,
    create_video,
    get_by_share_code,
    list_video_comments,
    list_videos,
)

__all__ = [
    "block_user",
    "grant_badge",
    "revoke_badge",
    "unblock_user",
    "create_api_key",
    "delete_api_key",
    "list_api_keys",
    "authenticate_user",
    "confirm_password_reset",
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    "get_login_throttle",
    "get_optional_user",
    "is_admin",
    "register_user",
    "request_password_reset",
    "require_admin",
    "update_email",
    "update_password",
    "ChangeFeed",
    "RowChange",
    "CleanupError",
    "CleanupSummary",
    "run_cleanup",
    "CommentNode",
    "create_comment",
    "delete_comment",
    "list_comments",
    "CompositeWrite",
    "CompositeWriteError",
    "FollowStats",
    "follow_user",
    "get_follow_stats",
    "list_followers",
    "list_following",
    "unfollow_user",
    "accept_friend_request",
    "cancel_friend_request",
    "friend_status",
    "list_friend_requests",
    "list_friends",
    "reject_friend_request",
    "remove_friend",
    "send_friend_request",
    "add_member",
    "create_group",
    "get_group",
    "leave_group",
    "list_group_messages",
    "list_groups",
    "send_group_message",
    "LikeState",
    "get_like_state",
    "set_like_state",
    "toggle_like",
    "StreamView",
    "get_active_stream",
    "join_stream",
    "leave_stream",
    "list_active_streams",
    "start_stream",
    "stop_stream",
    "MediaGrid",
    "select_media_grid",
    "ConversationSummary",
    "count_unread_messages",
    "list_conversation",
    "list_inbox",
    "send_message",
    "NotificationType",
    "add_notification",
    "count_unread_notifications",
    "list_notifications",
    "mark_all_read",
    "mark_read",
    "PostView",
    "create_post",
    "delete_post",
    "get_visible_post",
    "list_feed",
    "list_user_posts",
    "repost",
    "set_post_visibility",
    "update_post",
    "OnlineTracker",
    "PresenceHub",
    "TypingIndicator",
    "ProfileView",
    "get_profile",
    "update_profile",
    "create_report",
    "list_reports",
    "review_report",
    "StorageConfigurationError",
    "StorageUploadError",
    "StoredObject",
    "get_storage_backend",
    "upload_bytes",
    "upload_file",
    "StoryUploadResult",
    "create_story",
    "delete_story",
    "list_active_stories",
    "list_viewers",
    "record_view",
    "upload_stories",
    "SyncedView",
    "Watch",
    "approve_verification",
    "list_pending_requests",
    "reject_verification",
    "request_verification",
    "VideoView",
    "add_video_comment",
    "create_video",
    "get_by_share_code",
    "list_video_comments",
    "list_videos",
]
