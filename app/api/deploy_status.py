"""
Deploy Status Endpoints
=======================
HTTP surface of the deploy status monitor.

Routes:
    GET  /deploy/status        — JSON snapshot of the monitor state
    GET  /deploy/badge         — compact badge HTML fragment
    GET  /deploy/panel         — detail panel HTML fragment
    GET  /deploy/overview      — overview card HTML fragment
    GET  /deploy/runs          — live provider passthrough (uncached)
    POST /deploy/refresh       — poll the provider now
    POST /deploy/panel/toggle  — open/close the detail panel
    POST /deploy/panel/close   — outside-click close

HTML routes return an empty body when nothing has been fetched yet.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse

from app.agents.deploy_monitor import DeployStatusMonitor
from app.core.constants import BADGE_MOUNT, DETAIL_PANEL_MOUNT, OVERVIEW_MOUNT
from app.services.status_provider import StatusProviderError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/deploy", tags=["Deploy"])


def get_monitor(request: Request) -> DeployStatusMonitor:
    return request.app.state.monitor


@router.get("/status")
async def get_status(monitor: DeployStatusMonitor = Depends(get_monitor)):
    return monitor.snapshot()


@router.get("/badge", response_class=HTMLResponse)
async def get_badge(monitor: DeployStatusMonitor = Depends(get_monitor)):
    monitor.render_badge()
    return monitor.mounts.html(BADGE_MOUNT)


@router.get("/panel", response_class=HTMLResponse)
async def get_panel(monitor: DeployStatusMonitor = Depends(get_monitor)):
    monitor.render_detail_panel()
    return monitor.mounts.html(DETAIL_PANEL_MOUNT)


@router.get("/overview", response_class=HTMLResponse)
async def get_overview(monitor: DeployStatusMonitor = Depends(get_monitor)):
    monitor.render_overview()
    return monitor.mounts.html(OVERVIEW_MOUNT)


@router.get("/runs")
async def get_runs(monitor: DeployStatusMonitor = Depends(get_monitor)):
    try:
        runs = await monitor.provider.fetch_runs()
    except StatusProviderError as e:
        logger.error("Deploy runs passthrough failed: %s", e)
        raise HTTPException(status_code=502, detail=f"Failed to fetch deploy status: {e}")
    return {"runs": [run.to_payload() for run in runs]}


@router.post("/refresh")
async def post_refresh(monitor: DeployStatusMonitor = Depends(get_monitor)):
    refreshed = await monitor.refresh()
    return {"refreshed": refreshed, **monitor.snapshot()}


@router.post("/panel/toggle")
async def post_toggle_panel(monitor: DeployStatusMonitor = Depends(get_monitor)):
    return {"panelOpen": monitor.toggle_detail()}


@router.post("/panel/close")
async def post_close_panel(monitor: DeployStatusMonitor = Depends(get_monitor)):
    monitor.handle_document_click(inside_wrapper=False)
    return {"panelOpen": monitor.state.panel_open}
