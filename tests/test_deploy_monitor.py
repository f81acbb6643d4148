"""
Deploy Monitor Tests
====================
Polling cadence, transition notifications, cache seeding and rendering,
with the status provider mocked.
"""
import asyncio
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

from app.agents.deploy_monitor import DeployStatusMonitor
from app.core.constants import BADGE_MOUNT, DEPLOY_STORAGE_KEY, DETAIL_PANEL_MOUNT, OVERVIEW_MOUNT
from app.models.deploy_run import DeployRun
from app.services.cache_service import DeployRunCache
from app.services.local_store import LocalStore
from app.services.status_provider import StatusProviderError
from app.state.mounts import MountRegistry

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
ACTIVE_MS = 15000
IDLE_MS = 120000


def _run(run_id=1, status="in_progress", conclusion=None, created_ago=125):
    return DeployRun(
        id=run_id,
        status=status,
        conclusion=conclusion,
        run_number=run_id + 100,
        created_at=(NOW - timedelta(seconds=created_ago)).isoformat(),
        updated_at=(NOW - timedelta(seconds=30)).isoformat(),
        commit_message="Deploy gallery\nmore",
        html_url=f"https://github.com/o/r/actions/runs/{run_id}",
    )


class FakeClock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def provider():
    p = MagicMock()
    p.fetch_runs = AsyncMock(return_value=[])
    return p


@pytest.fixture
def store():
    return LocalStore()


@pytest.fixture
def notify():
    return MagicMock()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monitor(provider, store, notify, clock):
    return DeployStatusMonitor(
        provider=provider,
        cache=DeployRunCache(store),
        notify=notify,
        clock=clock,
        active_interval_ms=ACTIVE_MS,
        idle_interval_ms=IDLE_MS,
        tick_interval_ms=1000,
    )


# ===================================================================
# Poll interval
# ===================================================================
@pytest.mark.parametrize("runs,expected", [
    ([], IDLE_MS),
    ([_run(status="in_progress")], ACTIVE_MS),
    ([_run(status="queued")], ACTIVE_MS),
    ([_run(status="completed", conclusion="success")], IDLE_MS),
    ([_run(status="completed", conclusion="failure"), _run(2, status="in_progress")], IDLE_MS),
])
def test_compute_poll_interval(monitor, runs, expected):
    monitor.state.runs = runs
    assert monitor.compute_poll_interval() == expected


# ===================================================================
# Refresh
# ===================================================================
def test_refresh_applies_runs_and_persists(monitor, provider, store):
    async def run_test():
        runs = [_run(status="in_progress")]
        provider.fetch_runs.return_value = runs

        assert await monitor.refresh() is True

        assert monitor.state.runs == runs
        assert monitor.state.poll_interval_ms == ACTIVE_MS
        assert monitor.state.last_error is None
        assert DeployRunCache(store).load() == runs
        assert "Deploying 2:05" in monitor.mounts.html(BADGE_MOUNT)
        assert "Deploy History" in monitor.mounts.html(DETAIL_PANEL_MOUNT)
        assert "Last Deploy" in monitor.mounts.html(OVERVIEW_MOUNT)

    asyncio.run(run_test())


def test_refresh_failure_keeps_stale_runs(monitor, provider, store):
    async def run_test():
        stale = [_run(status="completed", conclusion="success")]
        monitor.state.runs = stale
        provider.fetch_runs.side_effect = StatusProviderError("GitHub API error: 502")

        assert await monitor.refresh() is False

        assert monitor.state.runs == stale
        assert monitor.state.last_error == "GitHub API error: 502"
        assert store.get_item(DEPLOY_STORAGE_KEY) is None

    asyncio.run(run_test())


def test_refresh_survives_unexpected_errors(monitor, provider):
    async def run_test():
        provider.fetch_runs.side_effect = KeyError("runs")
        assert await monitor.refresh() is False
        assert "KeyError" in monitor.state.last_error

    asyncio.run(run_test())


def test_refresh_reschedules_poll_timer_once_started(monitor, provider):
    async def run_test():
        provider.fetch_runs.return_value = [_run(status="queued")]
        initial = monitor.initialize()
        assert monitor.poll_timer.interval_ms == IDLE_MS
        await initial
        assert monitor.poll_timer.interval_ms == ACTIVE_MS
        assert monitor.poll_timer.running

        provider.fetch_runs.return_value = [_run(status="completed", conclusion="success")]
        await monitor.refresh()
        assert monitor.poll_timer.interval_ms == IDLE_MS

        await monitor.shutdown()
        assert not monitor.poll_timer.running
        assert not monitor.tick_timer.running

    asyncio.run(run_test())


def test_refresh_before_initialize_does_not_arm_timer(monitor, provider):
    async def run_test():
        provider.fetch_runs.return_value = [_run()]
        await monitor.refresh()
        assert not monitor.poll_timer.running

    asyncio.run(run_test())


# ===================================================================
# Transitions
# ===================================================================
def test_success_transition_notifies_exactly_once(monitor, provider, notify):
    async def run_test():
        provider.fetch_runs.side_effect = [
            [_run(status="in_progress")],
            [_run(status="completed", conclusion="success")],
            [_run(status="completed", conclusion="success")],
        ]
        for _ in range(3):
            await monitor.refresh()

        notify.assert_called_once()
        notification = notify.call_args[0][0]
        assert notification.id == "deploy-success-1"
        assert notification.title == "Deploy Succeeded"

    asyncio.run(run_test())


def test_cancelled_transition_does_not_notify(monitor, provider, notify):
    async def run_test():
        provider.fetch_runs.side_effect = [
            [_run(status="in_progress")],
            [_run(status="completed", conclusion="cancelled")],
        ]
        await monitor.refresh()
        await monitor.refresh()
        notify.assert_not_called()

    asyncio.run(run_test())


def test_new_head_run_does_not_notify(monitor, provider, notify):
    async def run_test():
        provider.fetch_runs.side_effect = [
            [_run(1, status="in_progress")],
            [_run(2, status="completed", conclusion="failure"), _run(1, status="completed", conclusion="success")],
        ]
        await monitor.refresh()
        await monitor.refresh()
        notify.assert_not_called()

    asyncio.run(run_test())


def test_transition_against_cached_runs(provider, store, notify, clock):
    """A deploy that finishes while the process was down still notifies."""
    async def run_test():
        DeployRunCache(store).save([_run(status="in_progress")])
        provider.fetch_runs.return_value = [_run(status="completed", conclusion="failure")]
        monitor = DeployStatusMonitor(provider, DeployRunCache(store), notify=notify, clock=clock)

        await monitor.initialize()
        await monitor.shutdown()

        assert notify.call_args[0][0].id == "deploy-failed-1"

    asyncio.run(run_test())


def test_notification_sink_errors_are_contained(monitor, provider, notify):
    async def run_test():
        notify.side_effect = RuntimeError("sink down")
        provider.fetch_runs.side_effect = [
            [_run(status="in_progress")],
            [_run(status="completed", conclusion="success")],
        ]
        await monitor.refresh()
        assert await monitor.refresh() is True
        assert monitor.state.runs[0].conclusion == "success"

    asyncio.run(run_test())


def test_last_known_runs_tracks_previous_poll(monitor, provider):
    async def run_test():
        first = [_run(status="queued")]
        second = [_run(status="in_progress")]
        provider.fetch_runs.side_effect = [first, second]
        await monitor.refresh()
        await monitor.refresh()
        assert monitor.state.last_known_runs == first
        assert monitor.state.runs == second

    asyncio.run(run_test())


# ===================================================================
# Overlapping refreshes
# ===================================================================
def test_stale_overlapping_response_is_discarded(monitor, provider):
    async def run_test():
        slow = asyncio.get_running_loop().create_future()
        fast = asyncio.get_running_loop().create_future()
        provider.fetch_runs = MagicMock(side_effect=[slow, fast])

        first = asyncio.ensure_future(monitor.refresh())
        second = asyncio.ensure_future(monitor.refresh())
        await asyncio.sleep(0)

        fresh = [_run(status="completed", conclusion="success")]
        fast.set_result(fresh)
        assert await second is True

        slow.set_result([_run(status="in_progress")])
        assert await first is False
        assert monitor.state.runs == fresh

    asyncio.run(run_test())


# ===================================================================
# Initialize
# ===================================================================
def test_initialize_with_malformed_cache(provider, store, clock):
    async def run_test():
        store.set_item(DEPLOY_STORAGE_KEY, "<<definitely not json>>")
        provider.fetch_runs.side_effect = StatusProviderError("offline")
        monitor = DeployStatusMonitor(provider, DeployRunCache(store), clock=clock)

        await monitor.initialize()

        assert monitor.state.runs == []
        assert monitor.mounts.html(BADGE_MOUNT) == ""
        await monitor.shutdown()

    asyncio.run(run_test())


def test_initialize_renders_cached_badge_before_first_fetch(provider, store, clock):
    async def run_test():
        DeployRunCache(store).save([_run(status="completed", conclusion="success")])
        gate = asyncio.Event()

        async def blocked_fetch():
            await gate.wait()
            return []

        provider.fetch_runs = blocked_fetch
        monitor = DeployStatusMonitor(provider, DeployRunCache(store), clock=clock)
        initial = monitor.initialize()

        assert "Deployed" in monitor.mounts.html(BADGE_MOUNT)
        assert monitor.tick_timer.interval_ms == 1000

        gate.set()
        await initial
        await monitor.shutdown()

    asyncio.run(run_test())


# ===================================================================
# Tick and rendering
# ===================================================================
def test_tick_advances_active_badge(monitor, clock):
    monitor.state.runs = [_run(status="in_progress", created_ago=125)]
    monitor.tick()
    assert "2:05" in monitor.mounts.html(BADGE_MOUNT)

    clock.now = NOW + timedelta(seconds=1)
    monitor.tick()
    assert "2:06" in monitor.mounts.html(BADGE_MOUNT)


def test_tick_is_noop_when_idle(monitor):
    monitor.state.runs = [_run(status="completed", conclusion="success")]
    monitor.tick()
    assert monitor.mounts.html(BADGE_MOUNT) == ""

    monitor.state.runs = []
    monitor.tick()
    assert monitor.mounts.html(BADGE_MOUNT) == ""


def test_missing_mount_points_are_silent(provider, store, clock):
    async def run_test():
        provider.fetch_runs.return_value = [_run()]
        monitor = DeployStatusMonitor(provider, DeployRunCache(store), mounts=MountRegistry(), clock=clock)
        assert await monitor.refresh() is True
        monitor.tick()
        assert monitor.toggle_detail() is False

    asyncio.run(run_test())


def test_toggle_and_outside_click(monitor):
    monitor.state.runs = [_run()]
    panel = monitor.mounts.get(DETAIL_PANEL_MOUNT)
    assert panel.hidden

    assert monitor.toggle_detail() is True
    assert not panel.hidden
    assert "Deploy History" in panel.html

    monitor.handle_document_click(inside_wrapper=True)
    assert monitor.state.panel_open

    monitor.handle_document_click(inside_wrapper=False)
    assert not monitor.state.panel_open
    assert panel.hidden


def test_snapshot(monitor):
    monitor.state.runs = [_run(status="in_progress")]
    snap = monitor.snapshot()
    assert snap["active"] is True
    assert snap["badge"]["label"] == "Deploying"
    assert snap["badge"]["text"] == "Deploying 2:05"
    assert snap["runs"][0]["runNumber"] == 101
    assert snap["pollIntervalMs"] == IDLE_MS
    assert snap["lastRefreshedAt"] is None


def test_empty_refresh_keeps_last_rendered_badge(monitor, provider):
    async def run_test():
        provider.fetch_runs.side_effect = [
            [_run(status="completed", conclusion="success")],
            [],
        ]
        await monitor.refresh()
        rendered = monitor.mounts.html(BADGE_MOUNT)
        assert "Deployed" in rendered

        assert await monitor.refresh() is True
        assert monitor.state.runs == []
        assert monitor.mounts.html(BADGE_MOUNT) == rendered
        assert monitor.snapshot()["badge"] is None

    asyncio.run(run_test())


@pytest.mark.parametrize("status,active", [
    ("queued", True),
    ("waiting", True),
    ("in_progress", True),
    ("completed", False),
])
def test_is_active_follows_status(status, active):
    run = DeployRun(id=1, status=status)
    assert run.is_active is active
