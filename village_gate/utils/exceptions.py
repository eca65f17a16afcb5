# =======================================================================================
# village_gate/utils/exceptions.py - Custom Exceptions
# =======================================================================================
from typing import Optional


class VillageGateError(Exception):
    """Base exception for the village gate service."""
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationRequired(VillageGateError):
    """Raised when the caller has no valid session."""
    status_code = 401


class AuthorizationDenied(VillageGateError):
    """Raised when the caller's role may not perform the operation."""
    status_code = 403


class ValidationError(VillageGateError):
    """Raised when required fields are missing or malformed."""
    status_code = 400


class ApprovalRequestNotFound(VillageGateError):
    """Raised when a guest approval request does not exist in the caller's tenant."""
    status_code = 404


class PartialBatchFailure(VillageGateError):
    """Raised when one sync batch could not be read or persisted.

    Handled inside the sync engine; never leaves it.
    """

    def __init__(self, message: str, batch_index: int, failed_count: int,
                 sample: Optional[dict] = None):
        super().__init__(message)
        self.batch_index = batch_index
        self.failed_count = failed_count
        self.sample = sample


class UnexpectedError(VillageGateError):
    """Catch-all for datastore and transport faults."""
    status_code = 500
