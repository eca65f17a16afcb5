# =======================================================================================
# village_gate/workers/__init__.py - Workers Package
# =======================================================================================
from .expiry_worker import ExpiryWorker, start_expiry_worker, stop_expiry_worker

__all__ = ["ExpiryWorker", "start_expiry_worker", "stop_expiry_worker"]
