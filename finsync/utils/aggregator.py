from __future__ import annotations

import calendar
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

from finsync.models.account import Account, AccountType
from finsync.models.budget import BudgetLine
from finsync.models.investment import Holding
from finsync.models.transaction import Transaction
from finsync.utils.health import AccountHealth, age_in_hours, classify


@dataclass
class AccountBalances:
    """Balances by bucket. credit_balance and loan_balance are shown as absolute amounts."""

    total_balance: float = 0.0
    checking_balance: float = 0.0
    savings_balance: float = 0.0
    credit_balance: float = 0.0
    investment_balance: float = 0.0
    loan_balance: float = 0.0
    other_balance: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {k: round(v, 2) for k, v in asdict(self).items()}


@dataclass
class PercentageChange:
    value: Optional[float]
    label: str
    direction: str  # "positive" | "negative" | "neutral"

    @property
    def is_new(self) -> bool:
        return self.label == "New"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SpendingGroup:
    key: str
    amount: float
    percentage: float
    transaction_count: int
    average: float
    last_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["last_date"] = self.last_date.isoformat() if self.last_date else None
        return data


@dataclass
class DateWindow:
    """Inclusive calendar window."""

    start: date
    end: date

    @classmethod
    def last_n_days(cls, days: int, today: date) -> "DateWindow":
        days = max(days, 1)
        return cls(start=today - timedelta(days=days - 1), end=today)

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, day: Optional[date]) -> bool:
        return day is not None and self.start <= day <= self.end

    def previous(self) -> "DateWindow":
        end = self.start - timedelta(days=1)
        return DateWindow(start=end - timedelta(days=self.days - 1), end=end)


@dataclass
class CashFlowSummary:
    total_income: float
    total_expenses: float
    net_cash_flow: float
    daily_average: float
    trend: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BudgetSummary:
    total_budgeted: float
    total_spent: float
    total_remaining: float
    over_budget: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AccountStats:
    total_accounts: int
    total_balance: float
    healthy_accounts: int
    average_balance: float
    unique_account_types: int
    last_synced_hours: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AllocationSlice:
    name: str
    value: float
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PortfolioSummary:
    total_value: float
    total_cost_basis: float
    total_day_change: float
    total_day_change_percent: float
    holdings_count: int
    allocation: List[AllocationSlice] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["allocation"] = [s.to_dict() for s in self.allocation]
        return data


# Balances

def account_bucket(account: Account) -> str:
    """Depository accounts are split by name: 'saving' means savings, anything else checking."""
    if account.type == AccountType.DEPOSITORY:
        name = account.name.lower()
        if "checking" in name:
            return "checking"
        if "saving" in name:
            return "savings"
        return "checking"
    if account.type == AccountType.CHECKING:
        return "checking"
    if account.type == AccountType.SAVINGS:
        return "savings"
    return account.type.value


def aggregate_balances(accounts: Iterable[Account]) -> AccountBalances:
    balances = AccountBalances()
    for account in accounts:
        balance = account.balance
        # signed sum: debt types already carry a negative balance
        balances.total_balance += balance
        bucket = account_bucket(account)
        if bucket == "checking":
            balances.checking_balance += balance
        elif bucket == "savings":
            balances.savings_balance += balance
        elif bucket == "credit":
            balances.credit_balance += abs(balance)
        elif bucket == "investment":
            balances.investment_balance += balance
        elif bucket == "loan":
            balances.loan_balance += abs(balance)
        else:
            balances.other_balance += balance
    return balances


def credit_utilization(account: Account, default_limit: float) -> float:
    """|balance| / limit. Accounts without a usable limit fall back to default_limit."""
    limit = account.credit_limit or default_limit
    if not limit or limit <= 0:
        return 0.0
    return abs(account.balance) / limit


def account_stats(accounts: List[Account], now: datetime) -> AccountStats:
    total = aggregate_balances(accounts).total_balance
    ages = [age_in_hours(a.last_updated, now) for a in accounts if a.last_updated is not None]
    return AccountStats(
        total_accounts=len(accounts),
        total_balance=round(total, 2),
        healthy_accounts=sum(1 for a in accounts if classify(a.last_updated, now) == AccountHealth.HEALTHY),
        average_balance=round(total / len(accounts), 2) if accounts else 0.0,
        unique_account_types=len({a.type for a in accounts}),
        last_synced_hours=round(min(ages), 2) if ages else None,
    )


def account_distribution(accounts: List[Account]) -> List[Dict[str, Any]]:
    by_type: Dict[str, List[Account]] = defaultdict(list)
    for account in accounts:
        by_type[account.type.value].append(account)

    magnitudes = {t: abs(sum(a.balance for a in items)) for t, items in by_type.items()}
    grand_total = sum(magnitudes.values())
    distribution = [
        {
            "type": account_type,
            "count": len(by_type[account_type]),
            "balance": round(magnitude, 2),
            "percentage": magnitude / grand_total * 100 if grand_total > 0 else 0.0,
        }
        for account_type, magnitude in magnitudes.items()
        if magnitude > 0
    ]
    return sorted(distribution, key=lambda item: item["balance"], reverse=True)


# Period-over-period

def percentage_change(current: float, previous: float) -> PercentageChange:
    if previous == 0 and current == 0:
        return PercentageChange(value=0.0, label="0%", direction="neutral")
    if previous == 0:
        return PercentageChange(
            value=None,
            label="New",
            direction="positive" if current > 0 else "negative",
        )
    if current == 0:
        return PercentageChange(value=-100.0, label="-100%", direction="negative")

    value = (current - previous) / abs(previous) * 100
    if value == 0:
        return PercentageChange(value=0.0, label="0%", direction="neutral")
    return PercentageChange(
        value=value,
        label=f"{value:+.1f}%",
        direction="positive" if value > 0 else "negative",
    )


# Category / merchant rollups

def _rollup(
    transactions: Iterable[Transaction],
    window: DateWindow,
    key: Callable[[Transaction], str],
) -> List[SpendingGroup]:
    grouped: Dict[str, List[Transaction]] = defaultdict(list)
    for t in transactions:
        if window.contains(t.date):
            grouped[key(t)].append(t)

    totals = {k: sum(t.amount for t in items) for k, items in grouped.items()}
    # groups that net to an inflow are not spending
    spending = {k: v for k, v in totals.items() if v > 0}
    window_total = sum(spending.values())

    groups = [
        SpendingGroup(
            key=k,
            amount=round(amount, 2),
            percentage=amount / window_total * 100 if window_total > 0 else 0.0,
            transaction_count=len(grouped[k]),
            average=round(amount / len(grouped[k]), 2),
            last_date=max(t.date for t in grouped[k]),
        )
        for k, amount in spending.items()
    ]
    return sorted(groups, key=lambda g: g.amount, reverse=True)


def rollup_by_category(transactions: Iterable[Transaction], window: DateWindow) -> List[SpendingGroup]:
    return _rollup(transactions, window, key=lambda t: t.category)


def rollup_by_merchant(transactions: Iterable[Transaction], window: DateWindow) -> List[SpendingGroup]:
    return _rollup(transactions, window, key=lambda t: t.merchant)


def cash_flow_summary(transactions: Iterable[Transaction], window: DateWindow) -> CashFlowSummary:
    income = 0.0
    expenses = 0.0
    for t in transactions:
        if not window.contains(t.date):
            continue
        if t.is_spending:
            expenses += t.amount
        elif t.is_income:
            income += abs(t.amount)

    net = income - expenses
    trend = "neutral"
    if net > 0:
        trend = "positive"
    elif net < 0:
        trend = "negative"
    return CashFlowSummary(
        total_income=round(income, 2),
        total_expenses=round(expenses, 2),
        net_cash_flow=round(net, 2),
        daily_average=round(net / window.days, 2),
        trend=trend,
    )


def period_comparison(transactions: List[Transaction], window: DateWindow) -> Dict[str, Any]:
    current = cash_flow_summary(transactions, window)
    previous = cash_flow_summary(transactions, window.previous())
    return {
        "current": current.to_dict(),
        "previous": previous.to_dict(),
        "spending_change": percentage_change(current.total_expenses, previous.total_expenses).to_dict(),
        "income_change": percentage_change(current.total_income, previous.total_income).to_dict(),
    }


# Budgets

def current_budget_period(today: date) -> DateWindow:
    last_day = calendar.monthrange(today.year, today.month)[1]
    return DateWindow(start=today.replace(day=1), end=today.replace(day=last_day))


def _category_key(category: str) -> str:
    return category.strip().lower()


def rollup_budgets(
    lines: Iterable[BudgetLine],
    transactions: Iterable[Transaction],
    period: DateWindow,
) -> List[BudgetLine]:
    """Recompute `spent` for every line from the period's transactions; stored values are ignored."""
    spent_by_category: Dict[str, float] = defaultdict(float)
    for t in transactions:
        if period.contains(t.date):
            spent_by_category[_category_key(t.category)] += t.amount

    return [
        line.model_copy(update={"spent": round(spent_by_category.get(_category_key(line.category), 0.0), 2)})
        for line in lines
    ]


def budget_status(percentage: float) -> str:
    if percentage > 100:
        return "over"
    if percentage > 80:
        return "warning"
    return "ok"


def budget_summary(lines: List[BudgetLine]) -> BudgetSummary:
    total_budgeted = sum(line.budgeted for line in lines)
    total_spent = sum(line.spent for line in lines)
    return BudgetSummary(
        total_budgeted=round(total_budgeted, 2),
        total_spent=round(total_spent, 2),
        total_remaining=round(total_budgeted - total_spent, 2),
        over_budget=[line.category for line in lines if budget_status(line.percentage) == "over"],
    )


# Portfolio

def portfolio_allocation(holdings: Iterable[Holding], by: str = "sector") -> List[AllocationSlice]:
    values: Dict[str, float] = defaultdict(float)
    for holding in holdings:
        name = getattr(holding, by, None) or "Other"
        values[name] += holding.market_value

    positive = {k: v for k, v in values.items() if v > 0}
    total = sum(positive.values())
    slices = [
        AllocationSlice(name=name, value=round(value, 2), percentage=value / total * 100 if total > 0 else 0.0)
        for name, value in positive.items()
    ]
    return sorted(slices, key=lambda s: s.value, reverse=True)


def portfolio_summary(holdings: List[Holding]) -> PortfolioSummary:
    total_value = sum(h.market_value for h in holdings)
    total_day_change = sum(h.day_change for h in holdings)
    opening_value = total_value - total_day_change
    return PortfolioSummary(
        total_value=round(total_value, 2),
        total_cost_basis=round(sum(h.cost_basis for h in holdings), 2),
        total_day_change=round(total_day_change, 2),
        total_day_change_percent=total_day_change / opening_value * 100 if opening_value > 0 else 0.0,
        holdings_count=len(holdings),
        allocation=portfolio_allocation(holdings),
    )
