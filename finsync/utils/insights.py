"""
Account Insights
Ordered list of independent rules over a shared facts object. Every applicable rule fires;
a rule that raises is logged and skipped so one bad input never blanks the whole list.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from finsync.core.config import Settings
from finsync.models.account import Account, AccountType
from finsync.models.alert import Insight, InsightAction, Severity
from finsync.utils.aggregator import AccountBalances, aggregate_balances, credit_utilization
from finsync.utils.health import STALE_HOURS, age_in_hours

logger = logging.getLogger(__name__)


@dataclass
class InsightFacts:
    accounts: List[Account]
    balances: AccountBalances
    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    # placeholders until real limit / spending data is available
    default_credit_limit: float = 1000.0
    utilization_threshold: float = 0.8
    monthly_expense_estimate: float = 3000.0
    emergency_fund_months: int = 6

    @classmethod
    def from_accounts(
        cls,
        accounts: List[Account],
        now: Optional[datetime] = None,
        settings: Optional[Settings] = None,
    ) -> "InsightFacts":
        facts = cls(
            accounts=list(accounts),
            balances=aggregate_balances(accounts),
            now=now or datetime.now(timezone.utc),
        )
        if settings is not None:
            facts.default_credit_limit = settings.DEFAULT_CREDIT_LIMIT
            facts.utilization_threshold = settings.CREDIT_UTILIZATION_THRESHOLD
            facts.monthly_expense_estimate = settings.MONTHLY_EXPENSE_ESTIMATE
            facts.emergency_fund_months = settings.EMERGENCY_FUND_MONTHS
        return facts

    @property
    def emergency_fund_target(self) -> float:
        return self.monthly_expense_estimate * self.emergency_fund_months


@dataclass(frozen=True)
class InsightRule:
    id: str
    applies: Callable[[InsightFacts], bool]
    produce: Callable[[InsightFacts], Insight]


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


# Stale accounts

def _stale_accounts(facts: InsightFacts) -> List[Account]:
    return [a for a in facts.accounts if age_in_hours(a.last_updated, facts.now) > STALE_HOURS]


def _stale_insight(facts: InsightFacts) -> Insight:
    count = len(_stale_accounts(facts))
    verb = "haven't" if count != 1 else "hasn't"
    return Insight(
        id="stale-accounts",
        severity=Severity.WARNING,
        title="Accounts Need Sync",
        description=f"{_plural(count, 'account')} {verb} been updated in over 3 days. "
                    f"Consider refreshing your connection.",
        count=count,
        action=InsightAction(label="Sync Accounts", action="sync"),
    )


# Credit utilization

def _high_utilization_accounts(facts: InsightFacts) -> List[Account]:
    return [
        a for a in facts.accounts
        if a.type == AccountType.CREDIT
        and credit_utilization(a, facts.default_credit_limit) > facts.utilization_threshold
    ]


def _utilization_insight(facts: InsightFacts) -> Insight:
    count = len(_high_utilization_accounts(facts))
    threshold = round(facts.utilization_threshold * 100)
    return Insight(
        id="high-credit-utilization",
        severity=Severity.ERROR,
        title="High Credit Utilization",
        description=f"{_plural(count, 'credit account')} {'have' if count != 1 else 'has'} "
                    f"utilization above {threshold}%. Consider paying down balances.",
        count=count,
    )


# Net worth

def _net_worth_insight(facts: InsightFacts) -> Insight:
    total = round(facts.balances.total_balance, 2)
    return Insight(
        id="positive-net-worth",
        severity=Severity.SUCCESS,
        title="Positive Net Worth",
        description=f"Your total account balance is ${total:,.2f}. Great job managing your finances!",
        amount=total,
    )


# Emergency fund

def _emergency_fund_insight(facts: InsightFacts) -> Insight:
    target = facts.emergency_fund_target
    return Insight(
        id="emergency-fund",
        severity=Severity.INFO,
        title="Build Emergency Fund",
        description=f"Consider increasing your savings to reach the recommended "
                    f"{facts.emergency_fund_months}-month emergency fund target of ${target:,.2f}.",
        amount=target,
    )


def _diversification_insight(facts: InsightFacts) -> Insight:
    return Insight(
        id="diversification",
        severity=Severity.INFO,
        title="Consider Account Diversification",
        description="All your accounts are the same type. Consider diversifying with different "
                    "account types for better financial management.",
        count=len(facts.accounts),
    )


DEFAULT_RULES: Sequence[InsightRule] = (
    InsightRule(
        id="stale-accounts",
        applies=lambda f: bool(_stale_accounts(f)),
        produce=_stale_insight,
    ),
    InsightRule(
        id="high-credit-utilization",
        applies=lambda f: bool(_high_utilization_accounts(f)),
        produce=_utilization_insight,
    ),
    InsightRule(
        id="positive-net-worth",
        applies=lambda f: bool(f.accounts) and f.balances.total_balance > 0,
        produce=_net_worth_insight,
    ),
    InsightRule(
        id="emergency-fund",
        applies=lambda f: bool(f.accounts) and f.balances.savings_balance < f.emergency_fund_target,
        produce=_emergency_fund_insight,
    ),
    InsightRule(
        id="diversification",
        applies=lambda f: len(f.accounts) > 1 and len({a.type for a in f.accounts}) == 1,
        produce=_diversification_insight,
    ),
)


def generate_insights(facts: InsightFacts, rules: Sequence[InsightRule] = DEFAULT_RULES) -> List[Insight]:
    """Evaluate rules in order. No accounts means nothing to say."""
    if not facts.accounts:
        return []

    insights: List[Insight] = []
    for rule in rules:
        try:
            if rule.applies(facts):
                insights.append(rule.produce(facts))
        except Exception:
            logger.exception(f"Insight rule {rule.id} failed; skipping")
    return insights
