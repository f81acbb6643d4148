"""
Notification Model
==================
Pydantic models exchanged with the notification sink.

Notification fields:
    id          — stable identifier; embeds the run id so re-delivery is suppressed
    type        — "queue-completed" | "queue-failed" | ...
    title       — short headline
    message     — "#<runNumber>: <commit title>"
    actionTab   — dashboard tab the notification links to
    fireToast   — whether a toast should be shown on arrival

StoredNotification adds the arrival timestamp kept by the notification
center.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Notification(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: str
    title: str
    message: str
    action_tab: Optional[str] = Field(None, alias="actionTab")
    fire_toast: bool = Field(False, alias="fireToast")


class StoredNotification(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: str
    title: str
    message: str
    timestamp: datetime
    action_tab: Optional[str] = Field(None, alias="actionTab")


class Toast(BaseModel):
    message: str
    type: str = "info"          # info / error
    duration_ms: int = 5000
