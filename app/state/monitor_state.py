"""
Monitor State
Dataclass holding everything the deploy monitor knows about the pipeline.
One instance per DeployStatusMonitor; renderers read it, only the monitor writes it.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from app.models.deploy_run import DeployRun


@dataclass
class MonitorState:
    # Provider-ordered, index 0 = most recent
    runs: List[DeployRun] = field(default_factory=list)
    poll_interval_ms: int = 0
    panel_open: bool = False
    # Previous poll's runs, only used for transition detection
    last_known_runs: List[DeployRun] = field(default_factory=list)

    # Diagnostics
    last_refreshed_at: Optional[datetime] = None
    last_error: Optional[str] = None
    refresh_count: int = 0

    @property
    def latest(self) -> Optional[DeployRun]:
        return self.runs[0] if self.runs else None
