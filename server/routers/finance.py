"""Financial metrics, category totals and cash-flow forecast routes."""

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query

from core.container import container
from middleware.auth import current_user_id
from services.finance import FinanceService

router = APIRouter(prefix="/api/finance", tags=["finance"])


@router.get("/metrics")
async def get_metrics(
    start_date: date = Query(alias="startDate"),
    end_date: date = Query(alias="endDate"),
    user_id: str = Depends(current_user_id),
    finance: FinanceService = Depends(lambda: container.finance_service())
):
    return {"success": True, "data": await finance.metrics(user_id, start_date, end_date)}


@router.get("/forecast")
async def get_forecast(
    months: int = Query(default=3, ge=1, le=12),
    user_id: str = Depends(current_user_id),
    finance: FinanceService = Depends(lambda: container.finance_service())
):
    return {"success": True, "data": await finance.forecast(user_id, months)}


@router.get("/categories")
async def get_categories(
    type: Literal["income", "expense"] = Query(),
    start_date: date = Query(alias="startDate"),
    end_date: date = Query(alias="endDate"),
    user_id: str = Depends(current_user_id),
    finance: FinanceService = Depends(lambda: container.finance_service())
):
    categories = await finance.categories(user_id, type, start_date, end_date)
    return {"success": True, "data": {"categories": categories}}
