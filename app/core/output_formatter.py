"""
Output Formatter
================
THE SINGLE SOURCE OF TRUTH for every string the deploy widgets display.

STRICT DETERMINISM CONTRACT:
  - This module NEVER performs I/O.
  - This module NEVER reads environment variables or the wall clock;
    callers pass `now` explicitly.
  - Given the same run and the same `now`, it ALWAYS returns the same string.

STATE CONTRACT:
  Every projection matches on DeployRun.state, the sum type
      Queued | InProgress | Completed(conclusion)
  so the (icon, label, class) triple is a pure function of
  (status, conclusion).

TIME DISPLAY:
  active runs     →  "m:ss" elapsed since createdAt
  completed runs  →  "just now" / "Nm ago" / "Nh ago" / "Nd ago" since updatedAt
"""
import html
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from app.core.constants import DETAIL_COMMIT_MAX, OVERVIEW_COMMIT_MAX
from app.models.deploy_run import Completed, DeployRun, InProgress, Queued


# ---------------------------------------------------------------------------
# Badge Styles
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class BadgeStyle:
    icon: str
    label: str
    css_class: str


HOURGLASS = "⏳"
CHECK = "✅"
CROSS = "❌"
WARNING = "⚠️"
INFO = "ℹ️"
SPINNER = "\U0001f504"
RECORD = "⏺️"
MIDDOT = "·"
NE_ARROW = "↗"


def describe_badge(run: DeployRun) -> BadgeStyle:
    """Map a run onto the header badge (icon, label, class) triple."""
    match run.state:
        case InProgress():
            return BadgeStyle(HOURGLASS, "Deploying", "deploy-badge-active")
        case Queued():
            return BadgeStyle(HOURGLASS, "Queued", "deploy-badge-queued")
        case Completed("success"):
            return BadgeStyle(CHECK, "Deployed", "deploy-badge-success")
        case Completed("failure"):
            return BadgeStyle(CROSS, "Failed", "deploy-badge-failed")
        case Completed("cancelled"):
            return BadgeStyle(WARNING, "Cancelled", "deploy-badge-cancelled")
        case Completed():
            return BadgeStyle(INFO, run.status or "Unknown", "deploy-badge-neutral")


def detail_icon(run: DeployRun) -> str:
    match run.state:
        case InProgress():
            return SPINNER
        case Queued():
            return HOURGLASS
        case Completed("success"):
            return CHECK
        case Completed("failure"):
            return CROSS
        case Completed("cancelled"):
            return WARNING
        case Completed():
            return RECORD


def overview_badge(run: DeployRun) -> tuple[str, str]:
    """(label, badge class) for the overview card."""
    match run.state:
        case InProgress():
            return "Deploying", "badge-processing"
        case Queued():
            return "Queued", "badge-pending"
        case Completed("success"):
            return "Deployed", "badge-success"
        case Completed("failure"):
            return "Failed", "badge-danger"
        case Completed(conclusion):
            return conclusion or run.status, "badge-neutral"


# ---------------------------------------------------------------------------
# Time Formatting
# ---------------------------------------------------------------------------
def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 string (trailing Z allowed). Naive values are UTC."""
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _seconds_since(value: Optional[str], now: datetime) -> Optional[int]:
    dt = parse_timestamp(value)
    if dt is None:
        return None
    return max(0, int((now - dt).total_seconds()))


def format_elapsed(created_at: Optional[str], now: datetime) -> str:
    """Minutes and zero-padded seconds since `created_at`, e.g. "2:05"."""
    diff = _seconds_since(created_at, now)
    if diff is None:
        return ""
    mins, secs = divmod(diff, 60)
    return f"{mins}:{secs:02d}"


def time_ago(value: Optional[str], now: datetime) -> str:
    seconds = _seconds_since(value, now)
    if seconds is None:
        return ""
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def badge_time(run: DeployRun, now: datetime) -> str:
    if run.is_active:
        return format_elapsed(run.created_at, now)
    return time_ago(run.updated_at, now)


def row_time(run: DeployRun, now: datetime) -> str:
    if isinstance(run.state, Completed):
        return time_ago(run.updated_at, now)
    return time_ago(run.created_at, now)


def truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


# ---------------------------------------------------------------------------
# HTML Fragments
# ---------------------------------------------------------------------------
def badge_text(run: DeployRun, now: datetime) -> str:
    """Label plus time suffix, e.g. "Deploying 2:05" or "Deployed 3m ago"."""
    style = describe_badge(run)
    suffix = badge_time(run, now)
    return f"{style.label} {suffix}" if suffix else style.label


def render_badge_html(run: DeployRun, now: datetime) -> str:
    style = describe_badge(run)
    pulse = " deploy-pulse" if run.is_active else ""
    return (
        f'<div class="deploy-badge {style.css_class}{pulse}" title="Deploy Status">'
        f'<span class="deploy-badge-icon">{style.icon}</span>'
        f'<span class="deploy-badge-label">{html.escape(badge_text(run, now))}</span>'
        f"</div>"
    )


def render_run_row_html(run: DeployRun, now: datetime) -> str:
    commit = truncate(run.commit_title, DETAIL_COMMIT_MAX)
    return (
        f'<div class="deploy-run-item">'
        f'<span class="deploy-run-icon">{detail_icon(run)}</span>'
        f'<div class="deploy-run-body">'
        f'<div class="deploy-run-commit">{html.escape(commit)}</div>'
        f'<div class="deploy-run-meta">#{run.run_number} {MIDDOT} {row_time(run, now)}</div>'
        f"</div>"
        f'<div class="deploy-run-link">'
        f'<a href="{html.escape(run.html_url)}" target="_blank" rel="noopener">Logs {NE_ARROW}</a>'
        f"</div>"
        f"</div>"
    )


def render_detail_html(runs: List[DeployRun], now: datetime) -> str:
    rows = "".join(render_run_row_html(run, now) for run in runs)
    return (
        f'<div class="deploy-detail-header"><h3>Deploy History</h3>'
        f'<button class="btn btn-small btn-outline" data-action="deploy-refresh">Refresh</button>'
        f"</div>{rows}"
    )


def render_overview_html(run: DeployRun, now: datetime) -> str:
    label, badge_class = overview_badge(run)
    commit = truncate(run.commit_title, OVERVIEW_COMMIT_MAX)
    return (
        f'<div class="deploy-overview">'
        f'<div class="deploy-overview-head"><strong>Last Deploy</strong>'
        f'<span class="badge {badge_class}">{html.escape(label)}</span></div>'
        f'<div class="text-muted">{html.escape(commit)}</div>'
        f'<div class="text-muted">{row_time(run, now)} {MIDDOT} '
        f'<a href="{html.escape(run.html_url)}" target="_blank" rel="noopener">View logs {NE_ARROW}</a>'
        f"</div></div>"
    )
