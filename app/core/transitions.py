"""
Deploy Transitions
==================
Detects the one state change worth notifying about: the head run moving
from in_progress to completed between two consecutive polls.

Rules:
    - both run lists non-empty
    - same head run id (a new run appearing at the head is not a transition)
    - previous head in_progress, new head completed
    - conclusion "success" → success notification
      conclusion "failure" → failure notification
      anything else (cancelled, timed_out, null) → nothing

The notification id embeds the run id so the sink can drop re-deliveries.
"""
from typing import List, Optional

from app.models.deploy_run import Completed, DeployRun, InProgress
from app.models.notification import Notification


def _notification(run: DeployRun, outcome: str) -> Notification:
    message = f"#{run.run_number}: {run.commit_title}"
    if outcome == "success":
        return Notification(
            id=f"deploy-success-{run.id}",
            type="queue-completed",
            title="Deploy Succeeded",
            message=message,
            action_tab="overview",
            fire_toast=True,
        )
    return Notification(
        id=f"deploy-failed-{run.id}",
        type="queue-failed",
        title="Deploy Failed",
        message=message,
        action_tab="overview",
        fire_toast=True,
    )


def detect_transition(
    previous_runs: List[DeployRun], new_runs: List[DeployRun]
) -> Optional[Notification]:
    """
    Compare two consecutive polls and return the notification to deliver.

    Parameters
    ----------
    previous_runs : List[DeployRun]
        Runs from the previous poll (index 0 = most recent).
    new_runs : List[DeployRun]
        Runs just fetched from the provider.

    Returns
    -------
    Optional[Notification]
        The success/failure notification, or None when no notifiable
        transition happened.
    """
    if not previous_runs or not new_runs:
        return None

    old_head, new_head = previous_runs[0], new_runs[0]
    if old_head.id != new_head.id:
        return None
    if not isinstance(old_head.state, InProgress):
        return None

    match new_head.state:
        case Completed("success"):
            return _notification(new_head, "success")
        case Completed("failure"):
            return _notification(new_head, "failure")
        case _:
            return None
