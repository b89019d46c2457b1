from datetime import date
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, computed_field

from finsync.models.fields import Amount, CalendarDate, Identifier


class BudgetLine(BaseModel):
    """
    One budget category for the current period. Only `budgeted` and `spent` are stored;
    remaining and percentage are always derived so they can never go stale.
    """

    category: str
    budgeted: Amount = Field(default=0.0, validation_alias=AliasChoices("budgeted", "amount"))
    spent: Amount = 0.0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def remaining(self) -> float:
        return self.budgeted - self.spent

    @computed_field  # type: ignore[prop-decorator]
    @property
    def percentage(self) -> float:
        if self.budgeted == 0:
            return 0.0
        return self.spent / self.budgeted * 100


class BudgetUpdate(BaseModel):
    category: str
    amount: float = Field(ge=0)
    month: Optional[str] = None
    year: Optional[int] = None


class SavingsGoal(BaseModel):
    id: Identifier
    name: str = ""
    target_amount: Amount = Field(default=0.0, validation_alias=AliasChoices("targetAmount", "target_amount"))
    current_amount: Amount = Field(default=0.0, validation_alias=AliasChoices("currentAmount", "current_amount"))
    target_date: CalendarDate = Field(default=None, validation_alias=AliasChoices("targetDate", "target_date"))
    category: str = ""
    priority: str = "medium"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def progress(self) -> float:
        """Uncapped, so a goal that overshoots its target still reads above 100."""
        if self.target_amount <= 0:
            return 0.0
        return self.current_amount / self.target_amount * 100

    @computed_field  # type: ignore[prop-decorator]
    @property
    def display_progress(self) -> float:
        return min(self.progress, 100.0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_exceeded(self) -> bool:
        return self.progress > 100

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_completed(self) -> bool:
        return self.progress >= 100


class SavingsGoalCreate(BaseModel):
    name: str
    target_amount: float = Field(gt=0)
    current_amount: float = Field(default=0.0, ge=0)
    target_date: Optional[date] = None
    category: str = "General"
    priority: str = "medium"

    def to_payload(self) -> dict:
        return {
            "name": self.name,
            "targetAmount": self.target_amount,
            "currentAmount": self.current_amount,
            "targetDate": self.target_date.isoformat() if self.target_date else None,
            "category": self.category,
            "priority": self.priority,
        }


class SavingsGoalUpdate(BaseModel):
    """Partial update; only the fields that were set are relayed."""

    name: Optional[str] = None
    target_amount: Optional[float] = Field(default=None, gt=0)
    current_amount: Optional[float] = Field(default=None, ge=0)
    target_date: Optional[date] = None
    category: Optional[str] = None
    priority: Optional[str] = None

    def to_payload(self) -> dict:
        keys = {
            "name": "name",
            "target_amount": "targetAmount",
            "current_amount": "currentAmount",
            "target_date": "targetDate",
            "category": "category",
            "priority": "priority",
        }
        fields = self.model_dump(mode="json", exclude_none=True)
        return {keys[name]: value for name, value in fields.items()}
