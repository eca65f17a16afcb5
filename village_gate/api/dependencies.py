# =======================================================================================
# village_gate/api/dependencies.py - FastAPI Dependencies
# =======================================================================================
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from ..database import DatabaseManager, db_manager
from ..models.enums import SECURITY_ROLES
from ..services.auth_service import AuthService, CallerContext
from ..services.guest_approval_service import GuestApprovalService
from ..services.notification_service import NotificationDispatcher, PushNotificationDispatcher
from ..services.sync_service import SyncService

bearer_scheme = HTTPBearer(auto_error=False)


def get_database() -> DatabaseManager:
    """Dependency to get the database manager."""
    return db_manager


def get_notifier() -> NotificationDispatcher:
    return PushNotificationDispatcher()


def get_auth_service(db: DatabaseManager = Depends(get_database)) -> AuthService:
    return AuthService(db)


def get_sync_service(db: DatabaseManager = Depends(get_database)) -> SyncService:
    return SyncService(db)


def get_guest_approval_service(
    db: DatabaseManager = Depends(get_database),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> GuestApprovalService:
    return GuestApprovalService(db, notifier)


def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> CallerContext:
    """Resolve the bearer token to the caller's tenant and role."""
    token = credentials.credentials if credentials else None
    return auth_service.resolve_caller(token)


def require_security_caller(action: str):
    """Dependency factory rejecting non-security callers before the body is validated."""
    def dependency(caller: CallerContext = Depends(get_current_caller)) -> CallerContext:
        caller.require_role(SECURITY_ROLES, action)
        return caller
    return dependency
