"""
Deploy Run Model
================
Pydantic model for one execution of the deploy pipeline, plus the
RunState sum type every renderer matches on.

Fields (serialized camelCase, matching the provider payload):
    id             — opaque run identifier, compared for equality across polls
    status         — "queued" | "in_progress" | "completed"
    conclusion     — terminal outcome once completed (success/failure/cancelled/...)
    runNumber      — monotonically increasing, display only
    createdAt      — ISO-8601 creation timestamp
    updatedAt      — ISO-8601 last update timestamp
    commitMessage  — head commit message, first line is displayed
    htmlUrl        — link to the run logs
    name           — workflow name

RunState:
    Queued | InProgress | Completed(conclusion)
"""
from dataclasses import dataclass
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.constants import ACTIVE_STATUSES, PENDING_STATUS_ALIASES


@dataclass(frozen=True)
class Queued:
    pass


@dataclass(frozen=True)
class InProgress:
    pass


@dataclass(frozen=True)
class Completed:
    conclusion: Optional[str] = None


RunState = Union[Queued, InProgress, Completed]


class DeployRun(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Union[int, str]
    status: Literal["queued", "in_progress", "completed"]
    conclusion: Optional[str] = None
    run_number: int = Field(0, alias="runNumber")
    created_at: str = Field("", alias="createdAt")
    updated_at: str = Field("", alias="updatedAt")
    commit_message: str = Field("", alias="commitMessage")
    html_url: str = Field("", alias="htmlUrl")
    name: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        if isinstance(v, str) and v.lower() in PENDING_STATUS_ALIASES:
            return "queued"
        return v

    @field_validator("commit_message", mode="before")
    @classmethod
    def coerce_commit_message(cls, v):
        return v or ""

    @property
    def state(self) -> RunState:
        if self.status == "queued":
            return Queued()
        if self.status == "in_progress":
            return InProgress()
        return Completed(self.conclusion)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def commit_title(self) -> str:
        """First line of the commit message."""
        return self.commit_message.split("\n")[0]

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)
