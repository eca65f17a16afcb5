# =======================================================================================
# village_gate/workers/expiry_worker.py - Background Guest Approval Expiry Sweep
# =======================================================================================
import logging
import threading
from typing import Optional

from ..config import config
from ..database import db_manager
from ..services.guest_approval_service import GuestApprovalService

logger = logging.getLogger(__name__)


class ExpiryWorker:
    """Background worker that moves unanswered guest approvals to expired."""

    def __init__(self, service: Optional[GuestApprovalService] = None,
                 interval_seconds: Optional[int] = None):
        self.service = service or GuestApprovalService(db_manager)
        self.interval = config.APPROVAL_EXPIRY_SWEEP_SECONDS if interval_seconds is None else interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Start / Stop
    # ------------------------------------------------------------------
    def start(self) -> bool:
        """Start the sweep loop in a daemon thread. Returns False when disabled."""
        if not self._should_start():
            return False

        self._stop.clear()
        self._thread = threading.Thread(target=self._run_loop, name="approval-expiry", daemon=True)
        self._thread.start()
        logger.info("Expiry worker started (every %ss)", self.interval)
        return True

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the worker and wait for the current sweep to finish."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------
    def _should_start(self) -> bool:
        if self.interval <= 0:
            logger.debug("APPROVAL_EXPIRY_SWEEP_SECONDS not set; skipping expiry worker.")
            return False
        if self.running:
            return False
        return True

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------
    def sweep_once(self) -> int:
        """Run one sweep; errors are logged so the loop keeps going."""
        try:
            return self.service.expire_stale_requests()
        except Exception:
            logger.exception("Expiry sweep failed; retrying in %ss", self.interval)
            return 0

    def _run_loop(self) -> None:
        while not self._stop.wait(self.interval):
            self.sweep_once()


# ----------------------------------------------------------------------
# Global instance + entrypoint
# ----------------------------------------------------------------------
expiry_worker = ExpiryWorker()


def start_expiry_worker() -> bool:
    """Called from FastAPI startup."""
    return expiry_worker.start()


def stop_expiry_worker() -> None:
    """Called from FastAPI shutdown."""
    expiry_worker.stop(timeout=5)
