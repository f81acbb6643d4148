"""
Notification Center
===================
Sink for monitor notifications, persisted through the LocalStore so
entries survive restarts until dismissed.

Delivery rules:
    - a dismissed id is never re-added (dismissals kept for 7 days)
    - an id already present is ignored
    - newest first, capped at MAX_NOTIFICATIONS
    - fire_toast=True queues a toast ("error" for queue-failed, else "info")

Entries older than NOTIFICATION_TTL_SECONDS are pruned on load.
"""
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from app.core.constants import (
    DISMISSED_STORAGE_KEY,
    MAX_NOTIFICATIONS,
    NOTIFICATION_TTL_SECONDS,
    NOTIFICATIONS_STORAGE_KEY,
    TOAST_DURATION_MS,
)
from app.models.notification import Notification, StoredNotification, Toast
from app.services.local_store import LocalStore

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NotificationCenter:

    def __init__(
        self,
        store: LocalStore,
        clock: Callable[[], datetime] = _utc_now,
        max_toasts: int = 20,
    ) -> None:
        self.store = store
        self.clock = clock
        self.max_toasts = max_toasts
        self.toasts: List[Toast] = []
        self.notifications: List[StoredNotification] = self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def _ttl(self) -> timedelta:
        return timedelta(seconds=NOTIFICATION_TTL_SECONDS)

    def _load_dismissed(self) -> Dict[str, float]:
        raw = self.store.get_item(DISMISSED_STORAGE_KEY)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring corrupt dismissed-notifications entry")
            return {}
        if not isinstance(data, dict):
            return {}
        cutoff = (self.clock() - self._ttl()).timestamp()
        pruned = {k: v for k, v in data.items() if isinstance(v, (int, float)) and v > cutoff}
        if len(pruned) != len(data):
            self._save_dismissed(pruned)
        return pruned

    def _save_dismissed(self, dismissed: Dict[str, float]) -> None:
        self.store.set_item(DISMISSED_STORAGE_KEY, json.dumps(dismissed))

    def _load(self) -> List[StoredNotification]:
        raw = self.store.get_item(NOTIFICATIONS_STORAGE_KEY)
        if not raw:
            return []
        try:
            items = [StoredNotification.model_validate(n) for n in json.loads(raw)]
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning("Ignoring corrupt notifications entry: %s", e)
            return []
        cutoff = self.clock() - self._ttl()
        dismissed = self._load_dismissed()
        return [n for n in items if n.timestamp > cutoff and n.id not in dismissed]

    def _save(self) -> None:
        payload = [n.model_dump(mode="json", by_alias=True) for n in self.notifications]
        self.store.set_item(NOTIFICATIONS_STORAGE_KEY, json.dumps(payload))

    # ------------------------------------------------------------------
    # Sink
    # ------------------------------------------------------------------
    def is_dismissed(self, notification_id: str) -> bool:
        return notification_id in self._load_dismissed()

    def add_notification(self, notification: Notification) -> bool:
        """
        Deliver a notification.

        Returns
        -------
        bool
            True if it was stored, False if it was a dismissed or duplicate id.
        """
        if self.is_dismissed(notification.id):
            return False
        if any(n.id == notification.id for n in self.notifications):
            return False

        stored = StoredNotification(
            id=notification.id,
            type=notification.type,
            title=notification.title,
            message=notification.message,
            timestamp=self.clock(),
            action_tab=notification.action_tab,
        )
        self.notifications.insert(0, stored)
        del self.notifications[MAX_NOTIFICATIONS:]
        self._save()
        logger.info("Notification: %s: %s", notification.title, notification.message)

        if notification.fire_toast:
            toast_type = "error" if notification.type == "queue-failed" else "info"
            self.toasts.append(Toast(
                message=f"{notification.title}: {notification.message}",
                type=toast_type,
                duration_ms=TOAST_DURATION_MS,
            ))
            del self.toasts[:-self.max_toasts]
        return True

    __call__ = add_notification

    def dismiss(self, notification_id: str) -> bool:
        dismissed = self._load_dismissed()
        dismissed[notification_id] = self.clock().timestamp()
        self._save_dismissed(dismissed)

        before = len(self.notifications)
        self.notifications = [n for n in self.notifications if n.id != notification_id]
        self._save()
        return len(self.notifications) != before

    def dismiss_all(self) -> int:
        dismissed = self._load_dismissed()
        now = self.clock().timestamp()
        for n in self.notifications:
            dismissed[n.id] = now
        self._save_dismissed(dismissed)

        count = len(self.notifications)
        self.notifications = []
        self._save()
        return count

    def get(self, notification_id: str) -> Optional[StoredNotification]:
        return next((n for n in self.notifications if n.id == notification_id), None)

    def drain_toasts(self) -> List[Toast]:
        toasts, self.toasts = self.toasts, []
        return toasts
