# =======================================================================================
# village_gate/models/schemas.py - Pydantic Models
# =======================================================================================
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator
from .enums import ApprovalStatus, Direction, EntryType, UserRole
from .tables import ID_LENGTH
from ..utils.validators import blank_to_none


# ========== Offline log sync ==========

class OfflineLogIn(BaseModel):
    """One entry/exit event captured by a gate device while offline."""
    gate_id: str = Field(..., min_length=1, max_length=ID_LENGTH, description="Gate where the crossing happened")
    entry_type: EntryType
    direction: Direction
    timestamp: datetime = Field(..., description="Event time on the device, not receipt time")
    sticker_id: Optional[str] = Field(None, max_length=ID_LENGTH)
    guest_id: Optional[str] = Field(None, max_length=ID_LENGTH)
    permit_id: Optional[str] = Field(None, max_length=ID_LENGTH)
    guard_on_duty_id: Optional[str] = Field(None, max_length=ID_LENGTH)
    vehicle_plate: Optional[str] = Field(None, max_length=32)
    purpose: Optional[str] = None
    notes: Optional[str] = None

    @field_validator(
        "sticker_id", "guest_id", "permit_id", "guard_on_duty_id",
        "vehicle_plate", "purpose", "notes",
    )
    @classmethod
    def _blank_is_missing(cls, v: Optional[str]) -> Optional[str]:
        return blank_to_none(v)


class SyncOfflineLogsRequest(BaseModel):
    logs: Optional[List[OfflineLogIn]] = None


class SyncErrorDetail(BaseModel):
    """Representative failure for one batch."""
    log: Dict[str, Any]
    error: str
    batch_index: int
    failed_count: int


class SyncOfflineLogsResponse(BaseModel):
    success: bool
    total: int
    inserted: int
    duplicates: int
    errors: int
    error_details: List[SyncErrorDetail] = []


# ========== Guest approvals ==========

class GuestApprovalCreateRequest(BaseModel):
    """Guard asks a household to admit a guest. Required fields are checked by the service."""
    household_id: Optional[str] = Field(None, max_length=ID_LENGTH)
    guest_name: Optional[str] = Field(None, max_length=255)
    vehicle_plate: Optional[str] = Field(None, max_length=32)
    gate_id: Optional[str] = Field(None, max_length=ID_LENGTH)

    @field_validator("household_id", "guest_name", "vehicle_plate", "gate_id")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        return blank_to_none(v)


class GuestApprovalCreateResponse(BaseModel):
    approval_request_id: str
    status: ApprovalStatus
    timeout_seconds: int
    timeout_at: datetime
    notification_sent: bool


class GuestApprovalView(BaseModel):
    """Stored approval request with its status as of read time."""
    id: str
    household_id: str
    guest_name: str
    vehicle_plate: Optional[str] = None
    gate_id: str
    requested_by_guard_id: str
    status: ApprovalStatus
    created_at: datetime
    timeout_at: datetime
    responded_at: Optional[datetime] = None
    seconds_remaining: int = 0


class GuestApprovalListResponse(BaseModel):
    data: List[GuestApprovalView]


class ExpirySweepResponse(BaseModel):
    expired: int


# ========== Auth ==========

class LoginRequest(BaseModel):
    username: str
    password: str


class UserInfo(BaseModel):
    id: str
    username: str
    role: UserRole
    tenant_id: str


class LoginResponse(BaseModel):
    token: str
    expires_at: datetime
    user: UserInfo


# ========== Health / errors ==========

class HealthResponse(BaseModel):
    status: str                 # "ok" | "error"
    dataAvailable: bool
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
    details: Optional[List[Dict[str, Any]]] = None
