from enum import Enum
from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator

from finsync.models.fields import Amount, Identifier, OptionalAmount, Timestamp


class AccountType(str, Enum):
    DEPOSITORY = "depository"
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT = "credit"
    INVESTMENT = "investment"
    LOAN = "loan"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return cls.OTHER

    @property
    def is_debt(self) -> bool:
        return self in (AccountType.CREDIT, AccountType.LOAN)


class Account(BaseModel):
    id: Identifier = Field(validation_alias=AliasChoices("id", "account_id", "accountId"))
    name: str = ""
    type: AccountType = AccountType.OTHER
    subtype: Optional[str] = None
    # credit and loan balances arrive negative (debt)
    balance: Amount = 0.0
    last_updated: Timestamp = Field(
        default=None, validation_alias=AliasChoices("lastUpdated", "last_updated")
    )
    credit_limit: OptionalAmount = Field(
        default=None, validation_alias=AliasChoices("creditLimit", "credit_limit")
    )
    institution_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("institutionName", "institution_name")
    )

    @field_validator("name", mode="before")
    @classmethod
    def _name_or_blank(cls, value):
        return value if isinstance(value, str) else ""

    @field_validator("type", mode="before")
    @classmethod
    def _type_or_other(cls, value):
        return AccountType(value) if value is not None else AccountType.OTHER


class Bank(BaseModel):
    id: Union[int, str]
    name: str = Field(default="", validation_alias=AliasChoices("name", "institution_name"))
    status: Optional[str] = None
    last_updated: Timestamp = Field(
        default=None, validation_alias=AliasChoices("lastUpdated", "last_updated", "updated_at")
    )
    account_count: int = Field(default=0, validation_alias=AliasChoices("accountCount", "account_count"))


class UnhealthyBank(BaseModel):
    name: str
    error: str = ""


class BankHealthReport(BaseModel):
    healthy: List[str] = Field(default_factory=list)
    unhealthy: List[UnhealthyBank] = Field(default_factory=list)

    @property
    def all_healthy(self) -> bool:
        return not self.unhealthy
