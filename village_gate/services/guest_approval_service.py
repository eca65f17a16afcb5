# =======================================================================================
# village_gate/services/guest_approval_service.py - Guest Approval Coordination
# =======================================================================================
import logging
import math
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, List, Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from ..database import DatabaseManager
from ..models.enums import APPROVAL_TIMEOUT_SECONDS, SECURITY_ROLES, ApprovalState
from ..models.schemas import GuestApprovalCreateRequest, GuestApprovalCreateResponse, GuestApprovalView
from ..models.tables import guest_approval_requests
from ..utils.exceptions import ApprovalRequestNotFound, UnexpectedError
from ..utils.validators import require_fields, to_aware_utc, utcnow
from .auth_service import CallerContext
from .notification_service import NotificationDispatcher, PushNotificationDispatcher

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("household_id", "guest_name", "gate_id")


def effective_status(status: str, timeout_at: datetime, now: datetime) -> ApprovalState:
    """A pending request past its deadline reads as expired, whether or not a sweep has run."""
    state = ApprovalState(status)
    if state is ApprovalState.PENDING and now > timeout_at:
        return ApprovalState.EXPIRED
    return state


class GuestApprovalService:
    """
    Creates time-boxed requests asking a household to admit a guest at a gate.

    The household's decision is written by the household app; this service
    only creates the pending row, reads it back, and expires rows nobody
    answered in time.
    """

    def __init__(self, db: DatabaseManager, notifier: Optional[NotificationDispatcher] = None,
                 clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.notifier = notifier or PushNotificationDispatcher()
        self.clock = clock

    def request_guest_approval(self, caller: CallerContext,
                               request: GuestApprovalCreateRequest) -> GuestApprovalCreateResponse:
        caller.require_role(SECURITY_ROLES, "request guest approvals")
        require_fields(request.model_dump(), REQUIRED_FIELDS)

        created_at = self.clock()
        timeout_at = created_at + timedelta(seconds=APPROVAL_TIMEOUT_SECONDS)
        row = {
            "id": str(uuid.uuid4()),
            "tenant_id": caller.tenant_id,
            "household_id": request.household_id,
            "guest_name": request.guest_name,
            "vehicle_plate": request.vehicle_plate,
            "gate_id": request.gate_id,
            "requested_by_guard_id": caller.user_id,
            "status": ApprovalState.PENDING.value,
            "created_at": created_at,
            "timeout_at": timeout_at,
            "responded_at": None,
        }
        try:
            self.db.insert_one(guest_approval_requests, row)
        except SQLAlchemyError as e:
            logger.exception("Error creating approval request for household %s", request.household_id)
            raise UnexpectedError(str(getattr(e, "orig", None) or e)) from e

        logger.info("Guest approval request created: %s for household: %s", row["id"], request.household_id)

        notification_sent = self._notify(row)
        return GuestApprovalCreateResponse(
            approval_request_id=row["id"],
            status="pending",
            timeout_seconds=APPROVAL_TIMEOUT_SECONDS,
            timeout_at=to_aware_utc(timeout_at),
            notification_sent=notification_sent,
        )

    def get_guest_approval(self, caller: CallerContext, request_id: str) -> GuestApprovalView:
        caller.require_role(SECURITY_ROLES, "view guest approvals")
        row = self.db.fetch_one(
            select(guest_approval_requests).where(
                guest_approval_requests.c.id == request_id,
                guest_approval_requests.c.tenant_id == caller.tenant_id,
            )
        )
        if not row:
            raise ApprovalRequestNotFound(f"Guest approval request {request_id} not found")
        return self._view(row, self.clock())

    def list_pending_approvals(self, caller: CallerContext,
                               gate_id: Optional[str] = None) -> List[GuestApprovalView]:
        """Requests still awaiting a household decision, oldest first."""
        caller.require_role(SECURITY_ROLES, "view guest approvals")
        now = self.clock()
        query = (
            select(guest_approval_requests)
            .where(
                guest_approval_requests.c.tenant_id == caller.tenant_id,
                guest_approval_requests.c.status == ApprovalState.PENDING.value,
                guest_approval_requests.c.timeout_at >= now,
            )
            .order_by(guest_approval_requests.c.created_at)
        )
        if gate_id:
            query = query.where(guest_approval_requests.c.gate_id == gate_id)
        return [self._view(row, now) for row in self.db.fetch_all(query)]

    def expire_stale_requests(self, now: Optional[datetime] = None,
                              tenant_id: Optional[str] = None) -> int:
        """
        Mark pending requests past their deadline as expired.

        Idempotent: only rows still pending are touched, so a row that a
        household answered concurrently keeps its decision.
        """
        now = now or self.clock()
        stmt = (
            update(guest_approval_requests)
            .where(
                guest_approval_requests.c.status == ApprovalState.PENDING.value,
                guest_approval_requests.c.timeout_at < now,
            )
            .values(status=ApprovalState.EXPIRED.value, responded_at=now)
        )
        if tenant_id is not None:
            stmt = stmt.where(guest_approval_requests.c.tenant_id == tenant_id)
        expired = self.db.execute_query(stmt)
        if expired:
            logger.info("Expired %d stale guest approval request(s)", expired)
        return expired

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _notify(self, row: Mapping[str, Any]) -> bool:
        payload = {
            "type": "guest_approval_request",
            "title": "Guest at the gate",
            "body": f"{row['guest_name']} is waiting at the gate",
            "approval_request_id": row["id"],
            "gate_id": row["gate_id"],
            "vehicle_plate": row["vehicle_plate"],
            "timeout_at": to_aware_utc(row["timeout_at"]).isoformat(),
        }
        try:
            return self.notifier.dispatch_guest_approval(row["household_id"], payload)
        except Exception:
            logger.exception("Notification dispatch failed for approval request %s", row["id"])
            return False

    @staticmethod
    def _view(row: Mapping[str, Any], now: datetime) -> GuestApprovalView:
        state = effective_status(row["status"], row["timeout_at"], now)
        remaining = 0
        if state is ApprovalState.PENDING:
            remaining = max(0, math.ceil((row["timeout_at"] - now).total_seconds()))
        return GuestApprovalView(
            id=row["id"],
            household_id=row["household_id"],
            guest_name=row["guest_name"],
            vehicle_plate=row["vehicle_plate"],
            gate_id=row["gate_id"],
            requested_by_guard_id=row["requested_by_guard_id"],
            status=state.value,
            created_at=to_aware_utc(row["created_at"]),
            timeout_at=to_aware_utc(row["timeout_at"]),
            responded_at=to_aware_utc(row["responded_at"]),
            seconds_remaining=remaining,
        )
