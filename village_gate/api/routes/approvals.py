# =======================================================================================
# village_gate/api/routes/approvals.py - Guest Approval Endpoints
# =======================================================================================
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from ...models.schemas import (
    ErrorResponse,
    ExpirySweepResponse,
    GuestApprovalCreateRequest,
    GuestApprovalCreateResponse,
    GuestApprovalListResponse,
    GuestApprovalView,
)
from ...services.auth_service import CallerContext
from ...services.guest_approval_service import GuestApprovalService
from ..dependencies import get_current_caller, get_guest_approval_service, require_security_caller

router = APIRouter()

_errors = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
}


@router.post(
    "/guest-approvals",
    response_model=GuestApprovalCreateResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses=_errors,
)
def request_guest_approval(
    request: GuestApprovalCreateRequest,
    caller: CallerContext = Depends(get_current_caller),
    service: GuestApprovalService = Depends(get_guest_approval_service),
):
    """Ask a household to admit a guest waiting at the gate."""
    return service.request_guest_approval(caller, request)


@router.get("/guest-approvals", response_model=GuestApprovalListResponse, responses=_errors)
def list_pending_approvals(
    gate_id: Optional[str] = Query(None, description="Only requests raised at this gate"),
    caller: CallerContext = Depends(get_current_caller),
    service: GuestApprovalService = Depends(get_guest_approval_service),
):
    return GuestApprovalListResponse(data=service.list_pending_approvals(caller, gate_id))


@router.post("/guest-approvals/expire", response_model=ExpirySweepResponse, responses=_errors)
def expire_stale_requests(
    caller: CallerContext = Depends(get_current_caller),
    service: GuestApprovalService = Depends(get_guest_approval_service),
):
    """Run the expiry sweep now for the caller's tenant."""
    caller.require_role({"security_head"}, "expire guest approvals", who="the head of security")
    return ExpirySweepResponse(expired=service.expire_stale_requests(tenant_id=caller.tenant_id))


@router.get(
    "/guest-approvals/{request_id}",
    response_model=GuestApprovalView,
    responses={**_errors, 404: {"model": ErrorResponse}},
)
def get_guest_approval(
    request_id: str,
    caller: CallerContext = Depends(require_security_caller("request guest approvals")),
    service: GuestApprovalService = Depends(get_guest_approval_service),
):
    return service.get_guest_approval(caller, request_id)
