"""
Constants
Centralised storage for storage keys, mount point names and notification limits.
"""
DEPLOY_STORAGE_KEY = "sias-deploy-status"
NOTIFICATIONS_STORAGE_KEY = "sias-notifications"
DISMISSED_STORAGE_KEY = "sias-notifications-dismissed"

# Mount points the monitor renders into
BADGE_MOUNT = "deploy-status-badge"
DETAIL_PANEL_MOUNT = "deploy-detail-panel"
OVERVIEW_MOUNT = "deploy-overview-content"

ACTIVE_STATUSES = ("queued", "in_progress")
# GitHub statuses that mean "not started yet"
PENDING_STATUS_ALIASES = ("requested", "waiting", "pending")

MAX_NOTIFICATIONS = 50
NOTIFICATION_TTL_SECONDS = 7 * 24 * 60 * 60
TOAST_DURATION_MS = 5000

DETAIL_COMMIT_MAX = 50
OVERVIEW_COMMIT_MAX = 60
