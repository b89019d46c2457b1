"""
Account Health
Maps an account's last-synced timestamp to a health state and a relative-age label.
Both use the same breakpoints so the badge and the age text always agree.
"""
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from finsync.models.account import Account

HEALTHY_HOURS = 24
STALE_HOURS = 72


class AccountHealth(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    ERROR = "error"


HEALTH_LABELS = {
    AccountHealth.HEALTHY: "Healthy",
    AccountHealth.WARNING: "Needs Sync",
    AccountHealth.ERROR: "Connection Issue",
}


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def age_in_hours(last_updated: Optional[datetime], now: datetime) -> float:
    """Hours since last_updated. Unknown timestamps are infinitely old; future ones are zero."""
    if last_updated is None:
        return math.inf
    delta = _as_utc(now) - _as_utc(last_updated)
    return max(delta.total_seconds() / 3600, 0.0)


def classify(last_updated: Optional[datetime], now: datetime) -> AccountHealth:
    age = age_in_hours(last_updated, now)
    if age < HEALTHY_HOURS:
        return AccountHealth.HEALTHY
    if age < STALE_HOURS:
        return AccountHealth.WARNING
    return AccountHealth.ERROR


def format_relative_time(last_updated: Optional[datetime], now: datetime) -> str:
    if last_updated is None:
        return "Unknown"
    age = age_in_hours(last_updated, now)
    if age < 1:
        return "Just now"
    if age < HEALTHY_HOURS:
        return f"{math.floor(age)}h ago"
    if age < STALE_HOURS:
        return f"{math.floor(age / 24)}d ago"
    return _as_utc(last_updated).date().isoformat()


def account_health_report(accounts: List[Account], now: datetime) -> List[Dict[str, Any]]:
    report = []
    for account in accounts:
        health = classify(account.last_updated, now)
        report.append({
            "account_id": account.id,
            "name": account.name,
            "status": health.value,
            "label": HEALTH_LABELS[health],
            "last_updated": format_relative_time(account.last_updated, now),
        })
    return report
