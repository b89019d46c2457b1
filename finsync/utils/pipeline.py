"""
Dashboard Load Pipeline
Fetch -> aggregate/classify -> derive insights, as one snapshot.
Collections are fetched concurrently; a collection that fails to load becomes empty and adds
a user-facing message, so the rest of the dashboard still renders.
"""
import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from finsync.core.config import Settings
from finsync.core.errors import GatewayError
from finsync.models.account import Account
from finsync.models.alert import Insight
from finsync.models.budget import BudgetLine
from finsync.models.transaction import Transaction, TransactionPage, TransactionQuery
from finsync.utils.aggregator import (
    AccountBalances,
    AccountStats,
    BudgetSummary,
    DateWindow,
    account_stats,
    budget_status,
    budget_summary,
    current_budget_period,
    rollup_budgets,
)
from finsync.utils.health import account_health_report
from finsync.utils.insights import InsightFacts, generate_insights

logger = logging.getLogger(__name__)


@dataclass
class DashboardSnapshot:
    generated_at: datetime
    accounts: List[Account] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)
    budgets: List[BudgetLine] = field(default_factory=list)
    balances: AccountBalances = field(default_factory=AccountBalances)
    account_health: List[Dict[str, Any]] = field(default_factory=list)
    stats: Optional[AccountStats] = None
    insights: List[Insight] = field(default_factory=list)
    budget_summary: Optional[BudgetSummary] = None
    messages: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generated_at": self.generated_at.isoformat(),
            "balances": self.balances.to_dict(),
            "accounts": [a.model_dump(mode="json") for a in self.accounts],
            "account_health": self.account_health,
            "stats": self.stats.to_dict() if self.stats else None,
            "budgets": [
                {**b.model_dump(mode="json"), "status": budget_status(b.percentage)}
                for b in self.budgets
            ],
            "budget_summary": self.budget_summary.to_dict() if self.budget_summary else None,
            "insights": [i.to_dict() for i in self.insights],
            "transaction_count": len(self.transactions),
            "messages": self.messages,
        }


class DashboardLoader:
    def __init__(self, gateway, settings: Settings) -> None:
        self._gateway = gateway
        self._settings = settings
        self._snapshot: Optional[DashboardSnapshot] = None

    @property
    def cached(self) -> Optional[DashboardSnapshot]:
        return self._snapshot

    def invalidate(self) -> None:
        if self._snapshot is not None:
            logger.info("Dashboard snapshot invalidated")
        self._snapshot = None

    def transaction_query(self, today: date) -> TransactionQuery:
        window = DateWindow.last_n_days(self._settings.TRANSACTION_WINDOW_DAYS, today)
        return TransactionQuery(
            start_date=window.start,
            end_date=window.end,
            limit=self._settings.TRANSACTION_PAGE_LIMIT,
        )

    async def load(self, force: bool = False, now: Optional[datetime] = None) -> DashboardSnapshot:
        if self._snapshot is not None and not force:
            return self._snapshot

        now = now or datetime.now(timezone.utc)
        today = now.date()
        period = current_budget_period(today)

        accounts, page, budgets = await asyncio.gather(
            self._gateway.get_accounts(),
            self._fetch_transactions(self.transaction_query(today)),
            self._gateway.get_budget(month=f"{today.month:02d}", year=today.year),
            return_exceptions=True,
        )

        messages: List[str] = []
        accounts = self._collect(accounts, "accounts", messages)
        page = self._collect(page, "transactions", messages)
        transactions = page.transactions if page else []
        if page and len(transactions) < page.total:
            logger.warning(f"Loaded {len(transactions)} of {page.total} transactions; spending totals are partial")
            messages.append(f"Showing {len(transactions)} of {page.total} transactions")
        budgets = self._collect(budgets, "budgets", messages)

        budgets = rollup_budgets(budgets, transactions, period)
        facts = InsightFacts.from_accounts(accounts, now=now, settings=self._settings)

        snapshot = DashboardSnapshot(
            generated_at=now,
            accounts=accounts,
            transactions=transactions,
            budgets=budgets,
            balances=facts.balances,
            account_health=account_health_report(accounts, now),
            stats=account_stats(accounts, now),
            insights=generate_insights(facts),
            budget_summary=budget_summary(budgets),
            messages=messages,
        )
        self._snapshot = snapshot
        return snapshot

    async def _fetch_transactions(self, query: TransactionQuery) -> TransactionPage:
        """Follow pages until the reported total is covered or the page cap is reached."""
        page = await self._gateway.get_transactions(query)
        transactions = list(page.transactions)
        while len(transactions) < page.total and query.page < self._settings.TRANSACTION_MAX_PAGES:
            query = replace(query, page=query.page + 1)
            next_page = await self._gateway.get_transactions(query)
            if not next_page.transactions:
                break
            transactions.extend(next_page.transactions)
        return TransactionPage(transactions=transactions, total=page.total)

    @staticmethod
    def _collect(result: Any, label: str, messages: List[str]) -> Any:
        if isinstance(result, GatewayError):
            logger.error(f"Failed to load {label}: {result}")
            messages.append(f"Failed to load {label}")
            return []
        if isinstance(result, BaseException):
            raise result
        return result
