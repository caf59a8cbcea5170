"""Dashboard routes, all served through the read-through cache."""

from fastapi import APIRouter, Depends, Query

from core.container import container
from middleware.auth import current_user_id
from services.dashboard import DEFAULT_TREND_METRICS, DashboardService

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("")
async def get_dashboard(
    user_id: str = Depends(current_user_id),
    dashboard: DashboardService = Depends(lambda: container.dashboard_service())
):
    return {"success": True, "data": await dashboard.get_dashboard_data(user_id)}


@router.get("/metrics")
async def get_key_metrics(
    user_id: str = Depends(current_user_id),
    dashboard: DashboardService = Depends(lambda: container.dashboard_service())
):
    return {"success": True, "data": await dashboard.calculate_key_metrics(user_id)}


@router.get("/trends")
async def get_trends(
    metrics: str = Query(default=",".join(DEFAULT_TREND_METRICS)),
    user_id: str = Depends(current_user_id),
    dashboard: DashboardService = Depends(lambda: container.dashboard_service())
):
    names = [m.strip() for m in metrics.split(",") if m.strip()]
    return {"success": True, "data": await dashboard.get_metric_trends(user_id, names)}


@router.get("/insights")
async def get_insights(
    user_id: str = Depends(current_user_id),
    dashboard: DashboardService = Depends(lambda: container.dashboard_service())
):
    return {"success": True, "data": await dashboard.generate_insights(user_id)}


@router.post("/refresh")
async def refresh_dashboard(
    user_id: str = Depends(current_user_id),
    dashboard: DashboardService = Depends(lambda: container.dashboard_service())
):
    """Drop cached figures and recompute them."""
    return {"success": True, "data": await dashboard.refresh_metrics(user_id)}
