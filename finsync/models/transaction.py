from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from finsync.models.fields import Amount, CalendarDate, Identifier

UNCATEGORIZED = "Uncategorized"


class Transaction(BaseModel):
    """A backend transaction. amount > 0 is money out (spending), amount < 0 is money in."""

    id: Identifier = Field(validation_alias=AliasChoices("id", "transaction_id", "transactionId"))
    account_id: Identifier = Field(default="", validation_alias=AliasChoices("account_id", "accountId"))
    date: CalendarDate = None
    name: str = ""
    merchant_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("merchant_name", "merchantName")
    )
    amount: Amount = 0.0
    category: str = UNCATEGORIZED
    pending: bool = False

    @field_validator("category", mode="before")
    @classmethod
    def _category_or_default(cls, value):
        if isinstance(value, str) and value.strip():
            return value.strip()
        return UNCATEGORIZED

    @field_validator("name", mode="before")
    @classmethod
    def _name_or_blank(cls, value):
        return value if isinstance(value, str) else ""

    @field_validator("pending", mode="before")
    @classmethod
    def _pending_flag(cls, value):
        return bool(value)

    @property
    def is_spending(self) -> bool:
        return self.amount > 0

    @property
    def is_income(self) -> bool:
        return self.amount < 0

    @property
    def merchant(self) -> str:
        return self.merchant_name or self.name or "Unknown"


class TransactionPage(BaseModel):
    transactions: List[Transaction] = Field(default_factory=list)
    total: int = 0


@dataclass
class TransactionQuery:
    """Filter selections for GET /api/transactions."""

    range: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    categories: List[str] = field(default_factory=list)
    accounts: List[str] = field(default_factory=list)
    search: Optional[str] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    sort_field: Optional[str] = None
    sort_direction: Optional[str] = None
    page: int = 1
    limit: int = 1000

    def to_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page": self.page, "limit": self.limit}
        if self.range:
            params["range"] = self.range
        if self.start_date:
            params["startDate"] = self.start_date.isoformat()
        if self.end_date:
            params["endDate"] = self.end_date.isoformat()
        if self.categories:
            params["categories"] = ",".join(self.categories)
        if self.accounts:
            params["accounts"] = ",".join(self.accounts)
        if self.search:
            params["search"] = self.search
        if self.min_amount is not None:
            params["minAmount"] = self.min_amount
        if self.max_amount is not None:
            params["maxAmount"] = self.max_amount
        if self.sort_field:
            params["sortField"] = self.sort_field
        if self.sort_direction:
            params["sortDirection"] = self.sort_direction
        return params
