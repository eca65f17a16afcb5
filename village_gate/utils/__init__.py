# =======================================================================================
# village_gate/utils/__init__.py - Utils Package
# =======================================================================================
from .exceptions import *
from .validators import *

__all__ = [
    "VillageGateError", "AuthenticationRequired", "AuthorizationDenied",
    "ValidationError", "ApprovalRequestNotFound", "PartialBatchFailure",
    "UnexpectedError", "utcnow", "to_naive_utc", "to_aware_utc",
    "blank_to_none", "require_fields", "require_role",
]
