# =======================================================================================
# village_gate/services/sync_service.py - Offline Gate Log Synchronization Service
# =======================================================================================
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Set

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ..config import STORE_INSERT_LIMIT, config
from ..database import DatabaseManager
from ..models.enums import SECURITY_ROLES
from ..models.keys import LogNaturalKey
from ..models.schemas import OfflineLogIn, SyncErrorDetail, SyncOfflineLogsResponse
from ..models.tables import entry_exit_logs
from ..utils.exceptions import PartialBatchFailure, ValidationError
from ..utils.validators import to_naive_utc, utcnow
from .auth_service import CallerContext

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Aggregate outcome of one sync call. inserted + duplicates + errors == total."""
    total: int
    inserted: int = 0
    duplicates: int = 0
    errors: int = 0
    error_details: List[SyncErrorDetail] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.errors == 0

    def to_response(self) -> SyncOfflineLogsResponse:
        return SyncOfflineLogsResponse(
            success=self.success,
            total=self.total,
            inserted=self.inserted,
            duplicates=self.duplicates,
            errors=self.errors,
            error_details=self.error_details,
        )


def _store_message(exc: SQLAlchemyError) -> str:
    # DBAPI errors carry the driver's message on .orig; the wrapper adds SQL text
    return str(getattr(exc, "orig", None) or exc)


class SyncService:
    """Ingests entry/exit logs captured by gate devices while disconnected."""

    def __init__(self, db: DatabaseManager, batch_size: Optional[int] = None):
        self.db = db
        self.batch_size = config.SYNC_BATCH_SIZE if batch_size is None else batch_size
        if not 1 <= self.batch_size <= STORE_INSERT_LIMIT:
            raise ValueError(f"batch_size must be between 1 and {STORE_INSERT_LIMIT}")

    def sync_offline_logs(self, caller: CallerContext,
                          logs: Optional[Sequence[OfflineLogIn]]) -> SyncResult:
        """
        Persist a device's backlog of crossings.

        Batches are independent: a store failure in one is recorded in the
        result and the remaining batches are still processed. Records already
        stored (same timestamp, gate and plate within the tenant) and repeats
        inside a batch are counted as duplicates, so resubmitting is safe.
        """
        caller.require_role(SECURITY_ROLES, "sync offline logs")
        if not logs:
            raise ValidationError("logs array is required and cannot be empty")

        result = SyncResult(total=len(logs))
        for index, batch in enumerate(self._batches(logs)):
            try:
                self._sync_batch(caller, index, batch, result)
            except PartialBatchFailure as failure:
                result.errors += failure.failed_count
                result.error_details.append(
                    SyncErrorDetail(
                        log=failure.sample or {},
                        error=failure.message,
                        batch_index=failure.batch_index,
                        failed_count=failure.failed_count,
                    )
                )
                logger.error(
                    "Batch %d failed for tenant %s (%d logs): %s",
                    failure.batch_index, caller.tenant_id, failure.failed_count, failure.message,
                )

        logger.info(
            "Sync completed for tenant %s: %d inserted, %d duplicates, %d errors",
            caller.tenant_id, result.inserted, result.duplicates, result.errors,
        )
        return result

    # ------------------------------------------------------------------
    # Batch processing
    # ------------------------------------------------------------------
    def _batches(self, logs: Sequence[OfflineLogIn]) -> Iterator[Sequence[OfflineLogIn]]:
        for start in range(0, len(logs), self.batch_size):
            yield logs[start:start + self.batch_size]

    def _sync_batch(self, caller: CallerContext, index: int,
                    batch: Sequence[OfflineLogIn], result: SyncResult) -> None:
        rows = [self._prepare_row(caller, log) for log in batch]

        try:
            seen = self._existing_keys(caller.tenant_id, rows)
        except SQLAlchemyError as e:
            raise PartialBatchFailure(
                _store_message(e), index, len(rows), batch[0].model_dump(mode="json")
            ) from e

        unique_logs: List[OfflineLogIn] = []
        unique_rows: List[Dict[str, Any]] = []
        for log, row in zip(batch, rows):
            key = LogNaturalKey.from_row(row)
            if key in seen:
                result.duplicates += 1
                continue
            seen.add(key)
            unique_logs.append(log)
            unique_rows.append(row)

        if not unique_rows:
            return

        try:
            persisted = self.db.insert_many(entry_exit_logs, unique_rows)
        except SQLAlchemyError as e:
            raise PartialBatchFailure(
                _store_message(e), index, len(unique_rows), unique_logs[0].model_dump(mode="json")
            ) from e

        result.inserted += len(persisted)

    @staticmethod
    def _prepare_row(caller: CallerContext, log: OfflineLogIn) -> Dict[str, Any]:
        return {
            "id": str(uuid.uuid4()),
            "tenant_id": caller.tenant_id,
            "gate_id": log.gate_id,
            "entry_type": log.entry_type,
            "direction": log.direction,
            "timestamp": to_naive_utc(log.timestamp),
            "sticker_id": log.sticker_id,
            "guest_id": log.guest_id,
            "permit_id": log.permit_id,
            "guard_on_duty_id": log.guard_on_duty_id or caller.user_id,
            "vehicle_plate": log.vehicle_plate,
            "purpose": log.purpose,
            "notes": log.notes,
            "created_at": utcnow(),
        }

    def _existing_keys(self, tenant_id: str, rows: Sequence[Dict[str, Any]]) -> Set[LogNaturalKey]:
        """Natural keys already stored for this tenant at any of the batch's timestamps."""
        timestamps = sorted({row["timestamp"] for row in rows})
        existing = self.db.fetch_all(
            select(
                entry_exit_logs.c.timestamp,
                entry_exit_logs.c.gate_id,
                entry_exit_logs.c.vehicle_plate,
            ).where(
                entry_exit_logs.c.tenant_id == tenant_id,
                entry_exit_logs.c.timestamp.in_(timestamps),
            )
        )
        return {LogNaturalKey.from_row(row) for row in existing}
