from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, Field

from finsync.models.fields import Timestamp


class SyncState(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    COMPLETED = "completed"
    FAILED = "failed"


class SyncStatus(BaseModel):
    """Backend view of synchronization, rebuilt on every poll."""

    last_sync: Timestamp = Field(default=None, validation_alias=AliasChoices("lastSync", "last_sync"))
    is_healthy: bool = Field(default=True, validation_alias=AliasChoices("isHealthy", "is_healthy"))
    is_running: bool = Field(default=False, validation_alias=AliasChoices("isRunning", "is_running"))
    next_auto_sync: Timestamp = Field(
        default=None, validation_alias=AliasChoices("nextAutoSync", "next_auto_sync")
    )
    last_error: Optional[str] = Field(default=None, validation_alias=AliasChoices("lastError", "last_error"))


class SyncEventKind(str, Enum):
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    RESULT_CLEARED = "result_cleared"
    STATUS_REFRESHED = "status_refreshed"
    INVESTMENT_SYNCED = "investment_synced"
    INVESTMENT_FAILED = "investment_failed"


@dataclass
class SyncEvent:
    kind: SyncEventKind
    attempt: int
    message: Optional[str] = None
    status: Optional[SyncStatus] = None
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "attempt": self.attempt,
            "message": self.message,
            "at": self.at.isoformat(),
        }


@dataclass
class SyncResult:
    success: bool
    message: str


@dataclass
class SyncContext:
    """Client-side sync state owned by the orchestrator."""

    state: SyncState = SyncState.IDLE
    attempt: int = 0
    last_result: Optional[str] = None
    status: Optional[SyncStatus] = None
    investment_result: Optional[str] = None

    @property
    def is_loading(self) -> bool:
        return self.state == SyncState.SYNCING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "is_loading": self.is_loading,
            "attempt": self.attempt,
            "last_result": self.last_result,
            "investment_result": self.investment_result,
            "status": self.status.model_dump(mode="json") if self.status else None,
        }
