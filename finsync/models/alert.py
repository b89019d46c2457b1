from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from finsync.models.fields import Identifier, OptionalAmount, Timestamp


class Severity(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @classmethod
    def _missing_(cls, value):
        if value == "danger":
            return cls.ERROR
        return cls.INFO


class AlertKind(str, Enum):
    LARGE_TRANSACTION = "large_transaction"
    LOW_BALANCE = "low_balance"
    RECURRING_PAYMENT = "recurring_payment"
    BUDGET_EXCEEDED = "budget_exceeded"
    INSIGHT = "insight"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower().replace("-", "_")
            for member in cls:
                if member.value == normalized:
                    return member
        return cls.INSIGHT


class Alert(BaseModel):
    """Backend-sourced alert; only the read flag is ever written back."""

    id: Identifier
    kind: AlertKind = Field(default=AlertKind.INSIGHT, validation_alias=AliasChoices("type", "kind"))
    severity: Severity = Severity.INFO
    title: str = ""
    message: str = ""
    amount: OptionalAmount = None
    date: Timestamp = None
    is_read: bool = Field(default=False, validation_alias=AliasChoices("isRead", "read", "is_read"))

    @field_validator("kind", mode="before")
    @classmethod
    def _kind(cls, value):
        return AlertKind(value) if value is not None else AlertKind.INSIGHT

    @field_validator("severity", mode="before")
    @classmethod
    def _severity(cls, value):
        return Severity(value) if value is not None else Severity.INFO


class AlertFilter(str, Enum):
    ALL = "all"
    UNREAD = "unread"
    READ = "read"


@dataclass
class InsightAction:
    label: str
    action: str


@dataclass
class Insight:
    """A derived, non-persistent observation; recomputed on every load."""

    id: str
    severity: Severity
    title: str
    description: str
    amount: Optional[float] = None
    count: Optional[int] = None
    action: Optional[InsightAction] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["severity"] = self.severity.value
        # Remove None values for cleaner JSON responses
        return {k: v for k, v in data.items() if v is not None}
