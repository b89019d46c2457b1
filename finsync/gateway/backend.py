"""
Backend Gateway
Thin async client over the aggregation backend's JSON API.
Every failure surfaces as GatewayError; callers decide whether it is a no-op or a message.
"""
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from finsync.core.config import Settings
from finsync.core.errors import GatewayError
from finsync.models.account import Account, Bank, BankHealthReport
from finsync.models.alert import Alert
from finsync.models.budget import BudgetLine, BudgetUpdate, SavingsGoal, SavingsGoalCreate, SavingsGoalUpdate
from finsync.models.investment import Holding
from finsync.models.sync import SyncStatus
from finsync.models.transaction import Transaction, TransactionPage, TransactionQuery

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class BackendGateway:
    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "BackendGateway":
        return cls(settings.BACKEND_BASE_URL, timeout=settings.BACKEND_TIMEOUT_SECONDS)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.error(f"{method} {path} failed with status {status_code}")
            raise GatewayError(f"{method} {path} failed", status_code=status_code) from e
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e!r}")
            raise GatewayError(f"{method} {path} failed: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise GatewayError(f"{method} {path} returned invalid JSON") from e

    # Parsing helpers

    @staticmethod
    def _parse_list(model: Type[ModelT], items: Any, label: str) -> List[ModelT]:
        """Validate each record on its own; a malformed record is skipped, not fatal."""
        if not isinstance(items, list):
            logger.warning(f"Expected a list of {label}, got {type(items).__name__}")
            return []
        parsed: List[ModelT] = []
        for item in items:
            try:
                parsed.append(model.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed {label} record: {e.error_count()} error(s)")
        return parsed

    @staticmethod
    def _unwrap(payload: Any, key: str) -> Any:
        if isinstance(payload, dict):
            return payload.get(key, [])
        return payload

    @staticmethod
    def _success(payload: Any) -> bool:
        return isinstance(payload, dict) and bool(payload.get("success"))

    # Accounts & transactions

    async def get_accounts(self) -> List[Account]:
        payload = await self._request("GET", "/api/accounts")
        return self._parse_list(Account, self._unwrap(payload, "accounts"), "account")

    async def get_transactions(self, query: Optional[TransactionQuery] = None) -> TransactionPage:
        query = query or TransactionQuery()
        payload = await self._request("GET", "/api/transactions", params=query.to_params())
        if isinstance(payload, list):
            payload = {"transactions": payload, "total": len(payload)}
        if not isinstance(payload, dict):
            return TransactionPage()
        transactions = self._parse_list(Transaction, payload.get("transactions", []), "transaction")
        total = payload.get("total")
        return TransactionPage(
            transactions=transactions,
            total=total if isinstance(total, int) else len(transactions),
        )

    async def get_investments(self) -> List[Holding]:
        payload = await self._request("GET", "/api/investments")
        return self._parse_list(Holding, self._unwrap(payload, "investments"), "holding")

    # Banks

    async def get_connected_banks(self) -> List[Bank]:
        payload = await self._request("GET", "/api/transactions/connected_banks")
        return self._parse_list(Bank, self._unwrap(payload, "banks"), "bank")

    async def health_check(self) -> BankHealthReport:
        payload = await self._request("GET", "/api/transactions/health_check")
        try:
            return BankHealthReport.model_validate(payload or {})
        except ValidationError as e:
            raise GatewayError("health_check returned an unexpected shape") from e

    async def remove_bank(self, bank_id: str) -> bool:
        payload = await self._request("DELETE", f"/api/transactions/banks/{bank_id}")
        return self._success(payload)

    async def create_link_token(self) -> str:
        payload = await self._request("POST", "/api/link/token/create")
        token = payload.get("link_token") if isinstance(payload, dict) else None
        if not token:
            raise GatewayError("link token response did not include link_token")
        return token

    async def exchange_public_token(self, public_token: str, institution: Optional[Dict[str, Any]] = None) -> bool:
        payload = await self._request(
            "POST",
            "/api/token/exchange",
            json={"public_token": public_token, "institution": institution or {}},
        )
        return self._success(payload)

    # Sync

    async def sync_all(self) -> Dict[str, Any]:
        """Full sync trigger. The backend accepts and runs it asynchronously."""
        payload = await self._request("POST", "/api/transactions/sync")
        return payload if isinstance(payload, dict) else {"success": False}

    async def sync_investments(self) -> Dict[str, Any]:
        payload = await self._request("POST", "/api/investments/sync")
        return payload if isinstance(payload, dict) else {"success": False}

    async def get_sync_status(self) -> SyncStatus:
        payload = await self._request("GET", "/api/sync/status")
        try:
            return SyncStatus.model_validate(payload or {})
        except ValidationError as e:
            raise GatewayError("sync status returned an unexpected shape") from e

    # Budgets & goals

    async def get_budget(self, month: Optional[str] = None, year: Optional[int] = None) -> List[BudgetLine]:
        params: Dict[str, Any] = {}
        if month:
            params["month"] = month
        if year:
            params["year"] = year
        payload = await self._request("GET", "/api/budget", params=params)
        return self._parse_list(BudgetLine, self._unwrap(payload, "budgets"), "budget")

    async def update_budget(self, updates: List[BudgetUpdate]) -> bool:
        payload = await self._request(
            "PUT",
            "/api/budget",
            json={"budgets": [u.model_dump(exclude_none=True) for u in updates]},
        )
        return self._success(payload)

    async def delete_budget(self, category: str, month: Optional[str] = None, year: Optional[int] = None) -> bool:
        params: Dict[str, Any] = {}
        if month:
            params["month"] = month
        if year:
            params["year"] = year
        payload = await self._request("DELETE", f"/api/budget/{category}", params=params)
        return payload is None or self._success(payload)

    async def get_savings_goals(self) -> List[SavingsGoal]:
        payload = await self._request("GET", "/api/savings-goals")
        return self._parse_list(SavingsGoal, self._unwrap(payload, "goals"), "savings goal")

    async def create_savings_goal(self, goal: SavingsGoalCreate) -> SavingsGoal:
        payload = await self._request("POST", "/api/savings-goals", json=goal.to_payload())
        created = payload.get("goal", payload) if isinstance(payload, dict) else None
        try:
            return SavingsGoal.model_validate(created)
        except ValidationError as e:
            raise GatewayError("savings goal response had an unexpected shape") from e

    async def update_savings_goal(self, goal_id: str, updates: SavingsGoalUpdate) -> bool:
        payload = await self._request("PUT", f"/api/savings-goals/{goal_id}", json=updates.to_payload())
        return payload is None or self._success(payload)

    async def delete_savings_goal(self, goal_id: str) -> bool:
        payload = await self._request("DELETE", f"/api/savings-goals/{goal_id}")
        return payload is None or self._success(payload)

    # Alerts

    async def get_alerts(self) -> List[Alert]:
        payload = await self._request("GET", "/api/transactions/alerts")
        return self._parse_list(Alert, self._unwrap(payload, "alerts"), "alert")

    async def mark_alert_read(self, alert_id: str) -> bool:
        payload = await self._request("PATCH", f"/api/alerts/{alert_id}/read")
        # an empty 2xx body counts as accepted
        return payload is None or self._success(payload)
