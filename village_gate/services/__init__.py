# =======================================================================================
# village_gate/services/__init__.py - Services Package
# =======================================================================================
from .auth_service import AuthService, CallerContext
from .sync_service import SyncService, SyncResult
from .guest_approval_service import GuestApprovalService
from .notification_service import NotificationDispatcher, PushNotificationDispatcher

__all__ = [
    "AuthService", "CallerContext", "SyncService", "SyncResult", "GuestApprovalService",
    "NotificationDispatcher", "PushNotificationDispatcher",
]
