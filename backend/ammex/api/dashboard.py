"""
Dashboard and Analytics API Endpoints

Daily metrics, inventory alerts and sales analytics for staff.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ammex.api.responses import success
from ammex.core.auth import require_sales, require_staff
from ammex.domain.user import User
from ammex.services.dashboard_service import DashboardService

router = APIRouter()
analytics_router = APIRouter()


def get_dashboard_service() -> DashboardService:
    return DashboardService()


@router.get("/")
def daily_dashboard(
    user: User = Depends(require_staff),
    dashboard: DashboardService = Depends(get_dashboard_service)
):
    return success(dashboard.daily_metrics())


@router.get("/inventory-alerts")
def inventory_alerts(
    severity: str = Query("all", description="critical, high, medium or all"),
    user: User = Depends(require_staff),
    dashboard: DashboardService = Depends(get_dashboard_service)
):
    alerts = dashboard.inventory_alerts(severity)
    return success(alerts, count=len(alerts))


@router.get("/role-metrics")
def role_metrics(
    user: User = Depends(require_staff),
    dashboard: DashboardService = Depends(get_dashboard_service)
):
    return success(dashboard.role_metrics(user.role))


@analytics_router.get("/sales")
def sales_analytics(
    start_date: Optional[date] = Query(None, description="Start date (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="End date (YYYY-MM-DD)"),
    group_by: str = Query("month", description="day, week or month"),
    limit: int = Query(10, ge=1, le=100, description="Number of top products/customers"),
    user: User = Depends(require_sales),
    dashboard: DashboardService = Depends(get_dashboard_service)
):
    return success(dashboard.sales_analytics(start_date, end_date, group_by, limit))


@analytics_router.get("/cart-insights")
def cart_insights(
    user: User = Depends(require_sales),
    dashboard: DashboardService = Depends(get_dashboard_service)
):
    return success(dashboard.cart_insights())
