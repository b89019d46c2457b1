"""
Shared field coercions for records coming back from the aggregation backend.
Numeric fields never fail validation: anything missing or unusable becomes 0.0.
"""
import math
from datetime import date, datetime, timezone
from typing import Annotated, Any, Optional

from pydantic import BeforeValidator


def coerce_amount(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def coerce_optional_amount(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    number = coerce_amount(value)
    return number if number > 0 else None


def coerce_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def coerce_date(value: Any) -> Optional[date]:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, str) and len(value.strip()) == 10:
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            return None
    parsed = coerce_timestamp(value)
    return parsed.date() if parsed else None


Amount = Annotated[float, BeforeValidator(coerce_amount)]
OptionalAmount = Annotated[Optional[float], BeforeValidator(coerce_optional_amount)]
Timestamp = Annotated[Optional[datetime], BeforeValidator(coerce_timestamp)]
CalendarDate = Annotated[Optional[date], BeforeValidator(coerce_date)]


def coerce_identifier(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


Identifier = Annotated[str, BeforeValidator(coerce_identifier)]
