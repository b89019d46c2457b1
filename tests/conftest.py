import asyncio
import inspect
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from finsync.core.config import Settings
from finsync.models.account import Account, BankHealthReport
from finsync.models.budget import SavingsGoal
from finsync.models.sync import SyncStatus
from finsync.models.transaction import TransactionPage

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def hours_ago(hours: float) -> str:
    return (NOW - timedelta(hours=hours)).isoformat()


def make_account(id, type, balance, name=None, last_updated=None, **extra) -> Account:
    return Account.model_validate({
        "id": id,
        "name": name or f"{type} account",
        "type": type,
        "balance": balance,
        "lastUpdated": last_updated or NOW.isoformat(),
        **extra,
    })


class FakeGateway:
    """In-memory stand-in for BackendGateway. Records every call by method name."""

    def __init__(self) -> None:
        self.calls: List[Tuple[Any, ...]] = []
        self.accounts: List[Account] = []
        self.transactions = []
        self.budgets = []
        self.goals: List[SavingsGoal] = []
        self.alerts = []
        self.holdings = []
        self.banks = []
        self.health = BankHealthReport()
        self.status = SyncStatus(isHealthy=True)
        self.sync_response: Dict[str, Any] = {"success": True, "transactionCount": 0}
        self.investment_response: Dict[str, Any] = {"success": True}
        self.mark_read_result = True
        self.update_budget_result = True
        self.goal_write_result = True
        self.page_size: Optional[int] = None
        self.transactions_total: Optional[int] = None
        self.errors: Dict[str, BaseException] = {}
        self.hang: set = set()
        self._pending: Dict[str, asyncio.Future] = {}

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def release(self, name: str, result: Any) -> None:
        """Resolve a call that was configured to hang."""
        self.hang.discard(name)
        future = self._pending.pop(name)
        future.set_result(result)

    async def _call(self, name: str, result: Any, *args: Any) -> Any:
        self.calls.append((name,) + args)
        if name in self.errors:
            raise self.errors[name]
        if name in self.hang:
            future = asyncio.get_running_loop().create_future()
            self._pending[name] = future
            return await future
        return result

    async def get_accounts(self):
        return await self._call("get_accounts", list(self.accounts))

    async def get_transactions(self, query=None):
        records = list(self.transactions)
        if self.page_size and query is not None:
            start = (query.page - 1) * self.page_size
            records = records[start:start + self.page_size]
        total = len(self.transactions) if self.transactions_total is None else self.transactions_total
        page = TransactionPage(transactions=records, total=total)
        return await self._call("get_transactions", page, query)

    async def get_investments(self):
        return await self._call("get_investments", list(self.holdings))

    async def get_connected_banks(self):
        return await self._call("get_connected_banks", list(self.banks))

    async def health_check(self):
        return await self._call("health_check", self.health)

    async def remove_bank(self, bank_id):
        return await self._call("remove_bank", True, bank_id)

    async def create_link_token(self):
        return await self._call("create_link_token", "link-sandbox-123")

    async def exchange_public_token(self, public_token, institution=None):
        return await self._call("exchange_public_token", True, public_token)

    async def sync_all(self):
        return await self._call("sync_all", dict(self.sync_response))

    async def sync_investments(self):
        return await self._call("sync_investments", dict(self.investment_response))

    async def get_sync_status(self):
        return await self._call("get_sync_status", self.status)

    async def get_budget(self, month=None, year=None):
        return await self._call("get_budget", list(self.budgets), month, year)

    async def update_budget(self, updates):
        return await self._call("update_budget", self.update_budget_result, updates)

    async def delete_budget(self, category, month=None, year=None):
        return await self._call("delete_budget", self.update_budget_result, category, month, year)

    async def get_savings_goals(self):
        return await self._call("get_savings_goals", list(self.goals))

    async def create_savings_goal(self, goal):
        created = SavingsGoal.model_validate({"id": len(self.goals) + 1, **goal.to_payload()})
        self.goals.append(created)
        return await self._call("create_savings_goal", created, goal)

    async def update_savings_goal(self, goal_id, updates):
        return await self._call("update_savings_goal", self.goal_write_result, goal_id, updates)

    async def delete_savings_goal(self, goal_id):
        return await self._call("delete_savings_goal", self.goal_write_result, goal_id)

    async def get_alerts(self):
        return await self._call("get_alerts", list(self.alerts))

    async def mark_alert_read(self, alert_id):
        return await self._call("mark_alert_read", self.mark_read_result, alert_id)

    async def aclose(self):
        self.calls.append(("aclose",))


@dataclass
class _Job:
    due: float
    interval: Optional[float]
    func: Callable
    args: Tuple[Any, ...]


class FakeScheduler:
    """Same interface as SyncScheduler, driven by a manual clock in seconds."""

    def __init__(self) -> None:
        self.now = 0.0
        self.jobs: Dict[str, _Job] = {}
        self.fired: List[str] = []
        self.running = False

    def start(self) -> None:
        self.running = True

    def shutdown(self) -> None:
        self.running = False

    def every(self, job_id, seconds, func, *args) -> None:
        self.jobs[job_id] = _Job(self.now + seconds, seconds, func, args)

    def once(self, job_id, seconds, func, *args) -> None:
        self.jobs[job_id] = _Job(self.now + seconds, None, func, args)

    def cancel(self, job_id) -> bool:
        return self.jobs.pop(job_id, None) is not None

    def has_job(self, job_id) -> bool:
        return job_id in self.jobs

    def job_ids(self) -> List[str]:
        return list(self.jobs)

    def get_status(self) -> dict:
        return {
            "running": self.running,
            "jobs": [{"id": job_id, "next_run": job.due} for job_id, job in self.jobs.items()],
        }

    async def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due jobs in time order."""
        target = self.now + seconds
        while True:
            due = [(job.due, job_id) for job_id, job in self.jobs.items() if job.due <= target]
            if not due:
                break
            due_at, job_id = min(due)
            job = self.jobs[job_id]
            self.now = due_at
            if job.interval is None:
                del self.jobs[job_id]
            else:
                job.due += job.interval
            self.fired.append(job_id)
            outcome = job.func(*job.args)
            if inspect.isawaitable(outcome):
                await outcome
            await asyncio.sleep(0)
        self.now = target


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def test_settings():
    return Settings(
        AUTO_SYNC_ENABLED=False,
        AUTO_SYNC_INTERVAL_SECONDS=300,
        SYNC_TIMEOUT_SECONDS=10,
        STATUS_REFRESH_DELAY_SECONDS=5,
        SYNC_RESULT_CLEAR_SECONDS=3,
    )
