from datetime import date

import pytest

from finsync.models.budget import BudgetLine
from finsync.models.investment import Holding
from finsync.models.transaction import Transaction
from finsync.utils.aggregator import (
    DateWindow,
    account_distribution,
    account_stats,
    aggregate_balances,
    budget_status,
    budget_summary,
    cash_flow_summary,
    credit_utilization,
    current_budget_period,
    percentage_change,
    period_comparison,
    portfolio_summary,
    rollup_budgets,
    rollup_by_category,
    rollup_by_merchant,
)
from conftest import NOW, hours_ago, make_account

JUNE = DateWindow(start=date(2025, 6, 1), end=date(2025, 6, 30))

sample_transactions = [
    {"id": "t1", "account_id": "a1", "date": "2025-06-02", "name": "Loblaws", "amount": 120.0, "category": "Food"},
    {"id": "t2", "account_id": "a1", "date": "2025-06-03", "name": "Metro", "amount": 80.0, "category": "food"},
    {"id": "t3", "account_id": "a1", "date": "2025-06-05", "name": "Landlord", "amount": 1500.0, "category": "Rent"},
    {"id": "t4", "account_id": "a1", "date": "2025-06-06", "name": "Payroll", "amount": -3000.0, "category": "Income"},
    {"id": "t5", "account_id": "a1", "date": "2025-06-07", "merchant_name": "Loblaws", "name": "LOBLAWS #123",
     "amount": 40.0, "category": "Food"},
    {"id": "t6", "account_id": "a1", "date": "2025-05-20", "name": "Loblaws", "amount": 999.0, "category": "Food"},
    {"id": "t7", "account_id": "a1", "date": "2025-06-08", "name": "Refund", "amount": -25.0, "category": "Shopping"},
]


def transactions():
    return [Transaction.model_validate(t) for t in sample_transactions]


def test_balance_aggregation_is_sign_consistent():
    accounts = [
        make_account("a1", "depository", 100, name="Everyday Checking"),
        make_account("a2", "credit", -50, creditLimit=200),
        make_account("a3", "investment", 300),
    ]
    balances = aggregate_balances(accounts)
    assert balances.total_balance == 350
    assert balances.credit_balance == 50
    assert balances.checking_balance == 100
    assert balances.investment_balance == 300
    assert credit_utilization(accounts[1], default_limit=1000) == 0.25


def test_depository_split_by_name():
    accounts = [
        make_account("a1", "depository", 10, name="High Interest SAVINGS"),
        make_account("a2", "depository", 20, name="Joint"),
        make_account("a3", "loan", -500, name="Car loan"),
    ]
    balances = aggregate_balances(accounts)
    assert balances.savings_balance == 10
    assert balances.checking_balance == 20
    assert balances.loan_balance == 500
    assert balances.total_balance == -470


def test_missing_credit_limit_uses_default():
    card = make_account("c1", "credit", -900)
    assert credit_utilization(card, default_limit=1000) == 0.9


def test_nan_balance_is_zero():
    account = make_account("a1", "checking", float("nan"))
    assert account.balance == 0.0
    assert aggregate_balances([account]).total_balance == 0.0


@pytest.mark.parametrize("current, previous, label, direction", [
    (0, 0, "0%", "neutral"),
    (50, 0, "New", "positive"),
    (-50, 0, "New", "negative"),
    (0, 80, "-100%", "negative"),
    (150, 100, "+50.0%", "positive"),
    (75, 100, "-25.0%", "negative"),
    (-50, -100, "+50.0%", "positive"),
])
def test_percentage_change(current, previous, label, direction):
    change = percentage_change(current, previous)
    assert change.label == label
    assert change.direction == direction


def test_percentage_change_values():
    assert percentage_change(50, 0).value is None
    assert percentage_change(50, 0).is_new
    assert percentage_change(0, 80).value == -100.0
    assert percentage_change(150, 100).value == pytest.approx(50.0)


def test_category_rollup():
    groups = rollup_by_category(transactions(), JUNE)
    assert [g.key for g in groups] == ["Rent", "Food", "food"]
    assert groups[0].amount == 1500
    assert groups[1].amount == 160
    assert groups[1].transaction_count == 2
    assert sum(g.percentage for g in groups) == pytest.approx(100.0)
    # income and refunds net to inflows and are not spending groups
    assert "Income" not in {g.key for g in groups}
    assert "Shopping" not in {g.key for g in groups}


def test_merchant_rollup_prefers_merchant_name():
    groups = {g.key: g for g in rollup_by_merchant(transactions(), JUNE)}
    assert groups["Loblaws"].amount == 160
    assert groups["Loblaws"].average == 80
    assert groups["Loblaws"].last_date == date(2025, 6, 7)


def test_cash_flow_summary():
    summary = cash_flow_summary(transactions(), JUNE)
    assert summary.total_income == 3025
    assert summary.total_expenses == 1740
    assert summary.net_cash_flow == 1285
    assert summary.trend == "positive"


def test_period_comparison_against_previous_window():
    window = DateWindow(start=date(2025, 6, 1), end=date(2025, 6, 30))
    comparison = period_comparison(transactions(), window)
    assert comparison["previous"]["total_expenses"] == 999
    assert comparison["income_change"]["label"] == "New"


def test_budget_rollup_recomputes_spent():
    lines = [
        BudgetLine(category="Food", budgeted=200, spent=5),
        BudgetLine(category="Rent", budgeted=1500, spent=0),
        BudgetLine(category="Travel", budgeted=0, spent=40),
    ]
    rolled = rollup_budgets(lines, transactions(), current_budget_period(date(2025, 6, 15)))

    food, rent, travel = rolled
    assert food.spent == 240  # both "Food" and "food", May excluded
    assert rent.spent == 1500
    assert travel.spent == 0
    for line in rolled:
        assert line.remaining == line.budgeted - line.spent
        expected = line.spent / line.budgeted * 100 if line.budgeted else 0.0
        assert line.percentage == expected
    assert budget_status(food.percentage) == "over"
    assert budget_status(rent.percentage) == "warning"
    assert budget_status(travel.percentage) == "ok"


def test_budget_summary():
    lines = [BudgetLine(category="Food", budgeted=200, spent=240), BudgetLine(category="Fun", budgeted=100, spent=10)]
    summary = budget_summary(lines)
    assert summary.total_budgeted == 300
    assert summary.total_spent == 250
    assert summary.total_remaining == 50
    assert summary.over_budget == ["Food"]


def test_current_budget_period():
    period = current_budget_period(date(2024, 2, 10))
    assert period.start == date(2024, 2, 1)
    assert period.end == date(2024, 2, 29)


def test_account_stats_and_distribution():
    accounts = [
        make_account("a1", "checking", 1000, last_updated=hours_ago(2)),
        make_account("a2", "savings", 3000, last_updated=hours_ago(48)),
        make_account("a3", "credit", -1000, last_updated=hours_ago(100)),
    ]
    stats = account_stats(accounts, NOW)
    assert stats.total_accounts == 3
    assert stats.total_balance == 3000
    assert stats.healthy_accounts == 1
    assert stats.average_balance == 1000
    assert stats.unique_account_types == 3
    assert stats.last_synced_hours == 2

    distribution = account_distribution(accounts)
    assert [d["type"] for d in distribution] == ["savings", "checking", "credit"]
    assert distribution[0]["percentage"] == pytest.approx(60.0)


def test_empty_inputs_are_total():
    assert aggregate_balances([]).total_balance == 0
    assert account_stats([], NOW).average_balance == 0
    assert rollup_by_category([], JUNE) == []
    assert budget_summary([]).over_budget == []
    assert portfolio_summary([]).total_day_change_percent == 0


def test_portfolio_summary():
    holdings = [
        Holding.model_validate({"symbol": "AAPL", "marketValue": 600, "dayChange": 20, "costBasis": 500, "sector": "Tech"}),
        Holding.model_validate({"symbol": "XOM", "marketValue": 400, "dayChange": -10, "costBasis": 450, "sector": "Energy"}),
        Holding.model_validate({"symbol": "CASH", "marketValue": "NaN"}),
    ]
    summary = portfolio_summary(holdings)
    assert summary.total_value == 1000
    assert summary.total_cost_basis == 950
    assert summary.total_day_change == 10
    assert summary.total_day_change_percent == pytest.approx(10 / 990 * 100)
    assert [s.name for s in summary.allocation] == ["Tech", "Energy"]
