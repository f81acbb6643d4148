"""
Deploy Status Monitor
=====================
Keeps a near-real-time view of the latest deploy pipeline runs.

Lifecycle:
    initialize()  → seed runs from the persisted cache, render the badge,
                    arm the poll timer (idle cadence) and the 1s ticker,
                    spawn an immediate refresh
    refresh()     → fetch, detect transition, replace runs, persist,
                    render, recompute cadence, re-arm the poll timer
    tick()        → every second; re-render the badge while a run is active
    shutdown()    → cancel both timers, wait for in-flight refreshes

Failure semantics:
    Nothing here raises to the caller. A failed fetch keeps the last known
    runs on screen; a corrupt cache is an empty cache; a missing mount point
    skips that render.

Overlapping refreshes:
    refresh() is not re-entrancy guarded, so a slow provider can leave two
    fetches outstanding. Each call takes a sequence ticket and a response
    that resolves after a newer one has been applied is discarded.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol, Set

from app.core.config import DEPLOY_POLL_ACTIVE_MS, DEPLOY_POLL_IDLE_MS, DEPLOY_TICK_MS
from app.core.constants import BADGE_MOUNT, DETAIL_PANEL_MOUNT, OVERVIEW_MOUNT
from app.core.output_formatter import (
    badge_text,
    describe_badge,
    render_badge_html,
    render_detail_html,
    render_overview_html,
)
from app.core.scheduler import RecurringTimer
from app.core.transitions import detect_transition
from app.models.deploy_run import DeployRun
from app.models.notification import Notification
from app.services.cache_service import DeployRunCache
from app.services.status_provider import StatusProviderError
from app.state.monitor_state import MonitorState
from app.state.mounts import MountRegistry

logger = logging.getLogger(__name__)


class StatusProvider(Protocol):
    async def fetch_runs(self) -> List[DeployRun]: ...


NotificationSink = Callable[[Notification], Any]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def default_mounts() -> MountRegistry:
    registry = MountRegistry([BADGE_MOUNT, OVERVIEW_MOUNT])
    registry.mount(DETAIL_PANEL_MOUNT, hidden=True)
    return registry


class DeployStatusMonitor:
    """
    Polls a status provider at an adaptive interval and renders the
    deploy badge, detail panel and overview card from one MonitorState.
    """

    def __init__(
        self,
        provider: StatusProvider,
        cache: DeployRunCache,
        mounts: Optional[MountRegistry] = None,
        notify: Optional[NotificationSink] = None,
        clock: Callable[[], datetime] = _utc_now,
        active_interval_ms: int = DEPLOY_POLL_ACTIVE_MS,
        idle_interval_ms: int = DEPLOY_POLL_IDLE_MS,
        tick_interval_ms: int = DEPLOY_TICK_MS,
    ) -> None:
        self.provider = provider
        self.cache = cache
        self.mounts = mounts if mounts is not None else default_mounts()
        self.notify = notify
        self.clock = clock
        self.active_interval_ms = active_interval_ms
        self.idle_interval_ms = idle_interval_ms
        self.tick_interval_ms = tick_interval_ms

        self.state = MonitorState(poll_interval_ms=idle_interval_ms)
        self.poll_timer = RecurringTimer(self.refresh, name="deploy-poll")
        self.tick_timer = RecurringTimer(self.tick, name="deploy-tick")

        self._started = False
        self._issued_seq = 0
        self._applied_seq = 0
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def initialize(self) -> asyncio.Task:
        """
        Seed from cache, render, arm both timers and kick off a refresh.

        Must be called from inside a running event loop.

        Returns
        -------
        asyncio.Task
            The initial refresh, for callers that want to await it.
        """
        self.state.runs = self.cache.load()
        if self.state.runs:
            logger.info("Loaded %d cached deploy run(s)", len(self.state.runs))
        self.render_badge()

        self._started = True
        self.poll_timer.reschedule(self.idle_interval_ms)
        self.tick_timer.reschedule(self.tick_interval_ms)

        task = asyncio.get_running_loop().create_task(self.refresh(), name="deploy-initial-refresh")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def shutdown(self) -> None:
        self._started = False
        self.poll_timer.cancel()
        self.tick_timer.cancel()
        await self.poll_timer.drain()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        logger.info("Deploy status monitor stopped")

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------
    async def refresh(self) -> bool:
        """
        Fetch the current run list and apply it.

        Returns
        -------
        bool
            True if a fresh run list was applied, False on failure or when
            the response was superseded by a newer one.
        """
        self._issued_seq += 1
        seq = self._issued_seq
        try:
            new_runs = await self.provider.fetch_runs()
        except StatusProviderError as e:
            logger.error("Deploy status fetch error: %s", e)
            self.state.last_error = str(e)
            return False
        except Exception as e:
            logger.error("Unexpected deploy status provider failure: %s", e, exc_info=True)
            self.state.last_error = f"{type(e).__name__}: {e}"
            return False

        if seq < self._applied_seq:
            logger.info("Discarding stale deploy status response #%d (applied #%d)", seq, self._applied_seq)
            return False
        self._applied_seq = seq
        self._apply(new_runs)
        return True

    def _apply(self, new_runs: List[DeployRun]) -> None:
        self.state.last_known_runs = self.state.runs
        notification = detect_transition(self.state.last_known_runs, new_runs)

        self.state.runs = new_runs
        self.state.last_refreshed_at = self.clock()
        self.state.last_error = None
        self.state.refresh_count += 1

        if notification is not None:
            self._deliver(notification)

        self.cache.save(new_runs)
        self.render_badge()
        self.render_detail_panel()
        self.render_overview()

        interval = self.compute_poll_interval()
        if interval != self.state.poll_interval_ms:
            logger.info("Deploy poll interval %dms → %dms", self.state.poll_interval_ms, interval)
        self.state.poll_interval_ms = interval
        if self._started:
            self.poll_timer.reschedule(interval)

    def _deliver(self, notification: Notification) -> None:
        logger.info("Deploy transition detected: %s", notification.id)
        if self.notify is None:
            return
        try:
            self.notify(notification)
        except Exception as e:
            logger.error("Notification sink failed for %s: %s", notification.id, e)

    def compute_poll_interval(self) -> int:
        latest = self.state.latest
        if latest is not None and latest.is_active:
            return self.active_interval_ms
        return self.idle_interval_ms

    def tick(self) -> None:
        latest = self.state.latest
        if latest is not None and latest.is_active:
            self.render_badge()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def render_badge(self) -> None:
        mount = self.mounts.get(BADGE_MOUNT)
        latest = self.state.latest
        if mount is None or latest is None:
            return
        mount.html = render_badge_html(latest, self.clock())

    def render_detail_panel(self) -> None:
        mount = self.mounts.get(DETAIL_PANEL_MOUNT)
        if mount is None or not self.state.runs:
            return
        mount.html = render_detail_html(self.state.runs, self.clock())

    def render_overview(self) -> None:
        mount = self.mounts.get(OVERVIEW_MOUNT)
        latest = self.state.latest
        if mount is None or latest is None:
            return
        mount.html = render_overview_html(latest, self.clock())

    def toggle_detail(self) -> bool:
        panel = self.mounts.get(DETAIL_PANEL_MOUNT)
        if panel is None:
            return self.state.panel_open
        self.state.panel_open = not self.state.panel_open
        panel.hidden = not self.state.panel_open
        if self.state.panel_open:
            self.render_detail_panel()
        return self.state.panel_open

    def handle_document_click(self, inside_wrapper: bool) -> None:
        """Close the detail panel when a click lands outside the widget."""
        if not self.state.panel_open or inside_wrapper:
            return
        self.state.panel_open = False
        panel = self.mounts.get(DETAIL_PANEL_MOUNT)
        if panel is not None:
            panel.hidden = True

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------
    def snapshot(self) -> Dict[str, Any]:
        latest = self.state.latest
        badge: Optional[Dict[str, str]] = None
        if latest is not None:
            style = describe_badge(latest)
            badge = {
                "icon": style.icon,
                "label": style.label,
                "cssClass": style.css_class,
                "text": badge_text(latest, self.clock()),
            }
        refreshed = self.state.last_refreshed_at
        return {
            "runs": [run.to_payload() for run in self.state.runs],
            "active": bool(latest and latest.is_active),
            "badge": badge,
            "pollIntervalMs": self.state.poll_interval_ms,
            "panelOpen": self.state.panel_open,
            "lastRefreshedAt": refreshed.isoformat() if refreshed else None,
            "lastError": self.state.last_error,
            "refreshCount": self.state.refresh_count,
        }
