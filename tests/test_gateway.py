import json

import httpx
import pytest

from finsync.core.errors import GatewayError
from finsync.gateway.backend import BackendGateway
from finsync.models.budget import BudgetUpdate, SavingsGoalCreate, SavingsGoalUpdate
from finsync.models.transaction import TransactionQuery

BASE_URL = "http://backend.test"


def make_gateway(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)
    return BackendGateway(BASE_URL, client=client)


def respond(payload, status_code=200):
    def handler(request):
        return httpx.Response(status_code, json=payload)
    return handler


@pytest.mark.asyncio
async def test_accounts_skip_malformed_records():
    gateway = make_gateway(respond([
        {"id": 1, "name": "Chequing", "type": "depository", "balance": "125.50", "lastUpdated": "2025-06-01T10:00:00Z"},
        {"name": "no id"},
        {"account_id": "c-9", "type": "CREDIT", "balance": None, "credit_limit": 2000},
    ]))

    accounts = await gateway.get_accounts()

    assert [a.id for a in accounts] == ["1", "c-9"]
    assert accounts[0].balance == 125.5
    assert accounts[0].last_updated.tzinfo is not None
    assert accounts[1].balance == 0.0
    assert accounts[1].credit_limit == 2000
    assert accounts[1].type.is_debt


@pytest.mark.asyncio
async def test_transactions_query_params():
    seen = {}

    def handler(request):
        seen.update(request.url.params)
        return httpx.Response(200, json={
            "transactions": [{"transaction_id": "t1", "account_id": "a1", "date": "2025-06-02", "amount": 12}],
            "total": 40,
        })

    gateway = make_gateway(handler)
    query = TransactionQuery(range="30d", categories=["Food", "Rent"], min_amount=5, sort_field="date", limit=50)

    page = await gateway.get_transactions(query)

    assert seen["categories"] == "Food,Rent"
    assert seen["minAmount"] == "5"
    assert seen["sortField"] == "date"
    assert seen["limit"] == "50"
    assert page.total == 40
    assert page.transactions[0].category == "Uncategorized"


@pytest.mark.asyncio
async def test_http_error_carries_status_code():
    gateway = make_gateway(respond({"error": "boom"}, status_code=503))

    with pytest.raises(GatewayError) as exc_info:
        await gateway.get_connected_banks()
    assert exc_info.value.status_code == 503
    assert "status 503" in str(exc_info.value)


@pytest.mark.asyncio
async def test_transport_error_becomes_gateway_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    gateway = make_gateway(handler)
    with pytest.raises(GatewayError):
        await gateway.sync_all()


@pytest.mark.asyncio
async def test_invalid_json_becomes_gateway_error():
    gateway = make_gateway(lambda request: httpx.Response(200, content=b"<html>"))
    with pytest.raises(GatewayError):
        await gateway.get_accounts()


@pytest.mark.asyncio
async def test_health_check_shape():
    gateway = make_gateway(respond({"healthy": ["TD"], "unhealthy": [{"name": "RBC", "error": "ITEM_LOGIN_REQUIRED"}]}))
    report = await gateway.health_check()
    assert report.healthy == ["TD"]
    assert report.unhealthy[0].name == "RBC"
    assert not report.all_healthy


@pytest.mark.asyncio
async def test_sync_endpoints():
    paths = []

    def handler(request):
        paths.append((request.method, request.url.path))
        if request.url.path == "/api/sync/status":
            return httpx.Response(200, json={"lastSync": "2025-06-15T11:00:00Z", "isRunning": False})
        return httpx.Response(200, json={"success": True, "transactionCount": 7})

    gateway = make_gateway(handler)
    assert (await gateway.sync_all())["transactionCount"] == 7
    assert (await gateway.sync_investments())["success"]
    status = await gateway.get_sync_status()

    assert status.last_sync.hour == 11
    assert paths == [
        ("POST", "/api/transactions/sync"),
        ("POST", "/api/investments/sync"),
        ("GET", "/api/sync/status"),
    ]


@pytest.mark.asyncio
async def test_budget_update_payload():
    body = {}

    def handler(request):
        body.update(json.loads(request.content))
        return httpx.Response(200, json={"success": True})

    gateway = make_gateway(handler)
    assert await gateway.update_budget([BudgetUpdate(category="Food", amount=400)])
    assert body == {"budgets": [{"category": "Food", "amount": 400.0}]}


@pytest.mark.asyncio
async def test_create_savings_goal_unwraps_response():
    def handler(request):
        sent = json.loads(request.content)
        return httpx.Response(201, json={"goal": {"id": 5, **sent}})

    gateway = make_gateway(handler)
    goal = await gateway.create_savings_goal(SavingsGoalCreate(name="Trip", target_amount=2000, current_amount=2500))

    assert goal.id == "5"
    assert goal.progress == 125
    assert goal.display_progress == 100
    assert goal.is_exceeded


@pytest.mark.asyncio
async def test_savings_goal_update_and_delete():
    requests = []

    def handler(request):
        requests.append((request.method, request.url.path, request.content))
        if request.method == "PUT":
            return httpx.Response(200, json={"success": True})
        return httpx.Response(204)

    gateway = make_gateway(handler)

    assert await gateway.update_savings_goal("5", SavingsGoalUpdate(current_amount=300, priority="high"))
    assert await gateway.delete_savings_goal("5")

    method, path, body = requests[0]
    assert (method, path) == ("PUT", "/api/savings-goals/5")
    assert json.loads(body) == {"currentAmount": 300, "priority": "high"}
    assert requests[1][:2] == ("DELETE", "/api/savings-goals/5")


@pytest.mark.asyncio
async def test_delete_budget_sends_period():
    def handler(request):
        assert request.method == "DELETE"
        assert request.url.path == "/api/budget/Food"
        assert request.url.params["month"] == "06"
        assert request.url.params["year"] == "2025"
        return httpx.Response(200, json={"success": False})

    gateway = make_gateway(handler)

    assert not await gateway.delete_budget("Food", month="06", year=2025)


@pytest.mark.asyncio
async def test_link_token_and_alert_read():
    def handler(request):
        if request.url.path == "/api/link/token/create":
            return httpx.Response(200, json={"link_token": "link-abc"})
        if request.url.path == "/api/alerts/9/read":
            return httpx.Response(204)
        return httpx.Response(404)

    gateway = make_gateway(handler)
    assert await gateway.create_link_token() == "link-abc"
    assert await gateway.mark_alert_read("9")


@pytest.mark.asyncio
async def test_missing_link_token_is_an_error():
    gateway = make_gateway(respond({}))
    with pytest.raises(GatewayError):
        await gateway.create_link_token()
