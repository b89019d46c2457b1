"""
Budget Router
Budget lines and savings goals, relayed to the backend
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from finsync.core.errors import GatewayError
from finsync.models.budget import BudgetUpdate, SavingsGoalCreate, SavingsGoalUpdate
from finsync.routers.deps import bad_gateway, get_gateway, get_loader
from finsync.utils.aggregator import budget_status

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/budget")
async def get_budget(refresh: bool = False, loader=Depends(get_loader)):
    """Budget lines with `spent` recomputed from this month's transactions."""
    snapshot = await loader.load(force=refresh)
    return {
        "budgets": [
            {**line.model_dump(mode="json"), "status": budget_status(line.percentage)}
            for line in snapshot.budgets
        ],
        "summary": snapshot.budget_summary.to_dict() if snapshot.budget_summary else None,
        "messages": snapshot.messages,
    }


@router.put("/budget")
async def update_budget(
    updates: List[BudgetUpdate],
    gateway=Depends(get_gateway),
    loader=Depends(get_loader),
):
    try:
        accepted = await gateway.update_budget(updates)
    except GatewayError as e:
        raise bad_gateway(e)
    if not accepted:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Budget update was rejected")
    loader.invalidate()
    logger.info(f"Updated {len(updates)} budget line(s)")
    return {"success": True}


@router.delete("/budget/{category}")
async def delete_budget(
    category: str,
    month: Optional[str] = Query(None, pattern=r"^(0[1-9]|1[0-2])$"),
    year: Optional[int] = None,
    gateway=Depends(get_gateway),
    loader=Depends(get_loader),
):
    try:
        accepted = await gateway.delete_budget(category, month=month, year=year)
    except GatewayError as e:
        raise bad_gateway(e)
    if not accepted:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Budget delete was rejected")
    loader.invalidate()
    logger.info(f"Deleted budget line {category}")
    return {"success": True}


@router.get("/savings-goals")
async def get_savings_goals(gateway=Depends(get_gateway)):
    try:
        goals = await gateway.get_savings_goals()
    except GatewayError as e:
        raise bad_gateway(e)
    return {"goals": [g.model_dump(mode="json") for g in goals]}


@router.post("/savings-goals", status_code=status.HTTP_201_CREATED)
async def create_savings_goal(goal: SavingsGoalCreate, gateway=Depends(get_gateway), loader=Depends(get_loader)):
    try:
        created = await gateway.create_savings_goal(goal)
    except GatewayError as e:
        raise bad_gateway(e)
    loader.invalidate()
    return created.model_dump(mode="json")


@router.put("/savings-goals/{goal_id}")
async def update_savings_goal(
    goal_id: str,
    updates: SavingsGoalUpdate,
    gateway=Depends(get_gateway),
    loader=Depends(get_loader),
):
    try:
        accepted = await gateway.update_savings_goal(goal_id, updates)
    except GatewayError as e:
        raise bad_gateway(e)
    if not accepted:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Savings goal update was rejected")
    loader.invalidate()
    return {"success": True}


@router.delete("/savings-goals/{goal_id}")
async def delete_savings_goal(goal_id: str, gateway=Depends(get_gateway), loader=Depends(get_loader)):
    try:
        accepted = await gateway.delete_savings_goal(goal_id)
    except GatewayError as e:
        raise bad_gateway(e)
    if not accepted:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Savings goal delete was rejected")
    loader.invalidate()
    logger.info(f"Deleted savings goal {goal_id}")
    return {"success": True}
