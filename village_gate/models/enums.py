# =======================================================================================
# village_gate/models/enums.py - Enums and Constants
# =======================================================================================
from enum import Enum
from typing import Literal

# Type aliases for better type hints
EntryType = Literal["resident", "guest", "delivery", "construction_worker", "emergency"]
Direction = Literal["entry", "exit"]
ApprovalStatus = Literal["pending", "approved", "denied", "expired"]
UserRole = Literal[
    "super_admin",
    "admin_head",
    "admin_officer",
    "security_head",
    "security_officer",
    "household_head",
    "household_member",
]

# Roles allowed to operate a gate (sync logs, request guest approvals)
SECURITY_ROLES = frozenset({"security_head", "security_officer"})

# Guests must be admitted or refused within this window
APPROVAL_TIMEOUT_SECONDS = 120


class ApprovalState(Enum):
    """Guest approval request lifecycle."""
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not ApprovalState.PENDING
