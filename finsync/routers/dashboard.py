"""
Dashboard Router
Read-only views over the cached dashboard snapshot
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query

from finsync.core.errors import GatewayError
from finsync.routers.deps import bad_gateway, get_gateway, get_loader, get_settings
from finsync.utils.aggregator import (
    DateWindow,
    account_distribution,
    period_comparison,
    portfolio_summary,
    rollup_by_category,
    rollup_by_merchant,
)
from finsync.utils.timeseries import net_worth_series, project_cash_flow

router = APIRouter()


@router.get("/overview")
async def overview(refresh: bool = False, loader=Depends(get_loader)):
    """Balances, account health, stats, budgets and insights in one payload."""
    snapshot = await loader.load(force=refresh)
    data = snapshot.to_dict()
    data["distribution"] = account_distribution(snapshot.accounts)
    return data


@router.get("/spending")
async def spending(
    days: int = Query(30, ge=1, le=365),
    limit: int = Query(10, ge=1, le=100),
    loader=Depends(get_loader),
):
    snapshot = await loader.load()
    window = DateWindow.last_n_days(days, datetime.now(timezone.utc).date())
    return {
        "window": {"start": window.start.isoformat(), "end": window.end.isoformat(), "days": window.days},
        "categories": [g.to_dict() for g in rollup_by_category(snapshot.transactions, window)],
        "merchants": [g.to_dict() for g in rollup_by_merchant(snapshot.transactions, window)[:limit]],
        "comparison": period_comparison(snapshot.transactions, window),
        "messages": snapshot.messages,
    }


@router.get("/net-worth")
async def net_worth(days: int = Query(30, ge=1, le=365), loader=Depends(get_loader)):
    snapshot = await loader.load()
    window = DateWindow.last_n_days(days, datetime.now(timezone.utc).date())
    series = net_worth_series(snapshot.accounts, snapshot.transactions, window)
    return {"points": [p.to_dict() for p in series], "messages": snapshot.messages}


@router.get("/forecast")
async def forecast(
    days: int = Query(30, ge=1, le=180),
    loader=Depends(get_loader),
    settings=Depends(get_settings),
):
    snapshot = await loader.load()
    history = DateWindow.last_n_days(settings.TRANSACTION_WINDOW_DAYS, datetime.now(timezone.utc).date())
    points = project_cash_flow(snapshot.balances.total_balance, snapshot.transactions, history, days=days)
    return {"points": [p.to_dict() for p in points], "messages": snapshot.messages}


@router.get("/investments")
async def investments(gateway=Depends(get_gateway)):
    try:
        holdings = await gateway.get_investments()
    except GatewayError as e:
        raise bad_gateway(e)
    return {
        "holdings": [h.model_dump(mode="json") for h in holdings],
        "summary": portfolio_summary(holdings).to_dict(),
    }
