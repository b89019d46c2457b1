from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from finsync.models.fields import Amount


class Holding(BaseModel):
    symbol: str = ""
    company_name: str = Field(default="", validation_alias=AliasChoices("companyName", "company_name"))
    quantity: Amount = 0.0
    market_price: Amount = Field(default=0.0, validation_alias=AliasChoices("marketPrice", "market_price"))
    market_value: Amount = Field(default=0.0, validation_alias=AliasChoices("marketValue", "market_value"))
    day_change: Amount = Field(default=0.0, validation_alias=AliasChoices("dayChange", "day_change"))
    cost_basis: Amount = Field(default=0.0, validation_alias=AliasChoices("costBasis", "cost_basis"))
    account_id: str = Field(default="", validation_alias=AliasChoices("accountId", "account_id"))
    sector: Optional[str] = None
    security_type: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("securityType", "security_type")
    )
