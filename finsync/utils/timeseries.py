"""
Daily series for the dashboard: net worth reconstructed from current balances,
and a cash-flow projection built from recent history.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Any, Dict, List

from finsync.models.account import Account
from finsync.models.transaction import Transaction
from finsync.utils.aggregator import DateWindow

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.6


@dataclass
class NetWorthPoint:
    date: date
    net_worth: float
    assets: float
    liabilities: float

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data


@dataclass
class ForecastPoint:
    date: date
    projected_income: float
    projected_expenses: float
    projected_balance: float
    confidence: float

    @property
    def confidence_label(self) -> str:
        return confidence_label(self.confidence)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        data["confidence_label"] = self.confidence_label
        return data


def confidence_label(confidence: float) -> str:
    if confidence >= HIGH_CONFIDENCE:
        return "high"
    if confidence >= MEDIUM_CONFIDENCE:
        return "medium"
    return "low"


def net_worth_series(
    accounts: List[Account],
    transactions: List[Transaction],
    window: DateWindow,
) -> List[NetWorthPoint]:
    """
    End-of-day balances for each day in the window, walking backwards from today's balances.
    A transaction moves its account's balance by -amount (positive amount is money out), so
    undoing it adds the amount back. Transactions on unknown accounts are ignored.
    """
    balances = {a.id: a.balance for a in accounts}
    is_debt = {a.id: a.type.is_debt for a in accounts}

    flows: Dict[date, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for t in transactions:
        if t.date is not None and t.date > window.start and t.account_id in balances:
            flows[t.date][t.account_id] += t.amount

    # unwind everything dated after the window first
    for day in sorted(d for d in flows if d > window.end):
        for account_id, amount in flows[day].items():
            balances[account_id] += amount

    points: List[NetWorthPoint] = []
    day = window.end
    while day >= window.start:
        assets = sum(b for acc_id, b in balances.items() if not is_debt[acc_id])
        liabilities = sum(abs(b) for acc_id, b in balances.items() if is_debt[acc_id])
        points.append(NetWorthPoint(
            date=day,
            net_worth=round(sum(balances.values()), 2),
            assets=round(assets, 2),
            liabilities=round(liabilities, 2),
        ))
        for account_id, amount in flows.get(day, {}).items():
            balances[account_id] += amount
        day -= timedelta(days=1)

    points.reverse()
    return points


def history_coverage(transactions: List[Transaction], history: DateWindow) -> float:
    """Share of days in the history window that have at least one transaction."""
    active_days = {t.date for t in transactions if history.contains(t.date)}
    return len(active_days) / history.days


def project_cash_flow(
    current_balance: float,
    transactions: List[Transaction],
    history: DateWindow,
    days: int = 30,
) -> List[ForecastPoint]:
    """
    Project daily income and expenses forward from the history window's daily averages.
    Confidence starts at the history coverage and decays linearly to half of it at the horizon.
    """
    income = sum(abs(t.amount) for t in transactions if history.contains(t.date) and t.is_income)
    expenses = sum(t.amount for t in transactions if history.contains(t.date) and t.is_spending)
    daily_income = income / history.days
    daily_expenses = expenses / history.days
    coverage = history_coverage(transactions, history)

    points: List[ForecastPoint] = []
    balance = current_balance
    for offset in range(1, max(days, 0) + 1):
        balance += daily_income - daily_expenses
        decay = 1 - (offset - 1) / (2 * days)
        points.append(ForecastPoint(
            date=history.end + timedelta(days=offset),
            projected_income=round(daily_income, 2),
            projected_expenses=round(daily_expenses, 2),
            projected_balance=round(balance, 2),
            confidence=round(coverage * decay, 4),
        ))
    return points
