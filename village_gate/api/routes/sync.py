# =======================================================================================
# village_gate/api/routes/sync.py - Offline Log Synchronization Endpoints
# =======================================================================================
from fastapi import APIRouter, Depends, Response, status
from ...models.schemas import ErrorResponse, SyncOfflineLogsRequest, SyncOfflineLogsResponse
from ...services.auth_service import CallerContext
from ...services.sync_service import SyncService
from ..dependencies import get_sync_service, require_security_caller

router = APIRouter()


@router.post(
    "/sync/offline-logs",
    response_model=SyncOfflineLogsResponse,
    responses={
        207: {"model": SyncOfflineLogsResponse, "description": "Some batches failed"},
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
    },
)
def sync_offline_logs(
    request: SyncOfflineLogsRequest,
    response: Response,
    caller: CallerContext = Depends(require_security_caller("sync offline logs")),
    sync_service: SyncService = Depends(get_sync_service),
):
    """Batch-ingest entry/exit logs a gate device captured while offline."""
    result = sync_service.sync_offline_logs(caller, request.logs)
    if not result.success:
        response.status_code = status.HTTP_207_MULTI_STATUS
    return result.to_response()
