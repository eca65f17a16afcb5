# =======================================================================================
# village_gate/models/__init__.py - Models Package
# =======================================================================================
from .schemas import *
from .enums import *
from .keys import LogNaturalKey

__all__ = [
    "OfflineLogIn", "SyncOfflineLogsRequest", "SyncErrorDetail", "SyncOfflineLogsResponse",
    "GuestApprovalCreateRequest", "GuestApprovalCreateResponse", "GuestApprovalView",
    "GuestApprovalListResponse", "ExpirySweepResponse", "LoginRequest", "LoginResponse",
    "UserInfo", "HealthResponse", "ErrorResponse", "EntryType", "Direction",
    "ApprovalStatus", "UserRole", "ApprovalState", "SECURITY_ROLES",
    "APPROVAL_TIMEOUT_SECONDS", "LogNaturalKey",
]
