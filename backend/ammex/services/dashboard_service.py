"""
Dashboard Service

Daily KPIs (today vs yesterday), inventory alerts and sales analytics for
the back-office dashboards.

Author: Ammex Dev Team
Date: 2025-03-18
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ammex.core.auth import ROLE_ADMIN, ROLE_SALES, ROLE_WAREHOUSE, canonical_role
from ammex.core.config import settings
from ammex.core.exceptions import ValidationFailed
from ammex.domain.base import to_jsonable
from ammex.repositories.dashboard_repository import DashboardRepository
from ammex.services.notification_service import stock_severity

SEVERITIES = ("critical", "high", "medium", "all")


def growth_percent(current, previous) -> float:
    """Percentage change rounded to 2 decimals, 0 when there is no baseline"""
    current = Decimal(str(current or 0))
    previous = Decimal(str(previous or 0))
    if previous == 0:
        return 0.0
    return round(float((current - previous) / previous * 100), 2)


class DashboardService:

    def __init__(self, repo: DashboardRepository = None):
        self.repo = repo or DashboardRepository()

    def daily_metrics(self, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or date.today()
        current = self.repo.sales_for_day(today)
        previous = self.repo.sales_for_day(today - timedelta(days=1))
        inventory = self.repo.inventory_metrics()
        customers = self.repo.customer_metrics(today)

        return to_jsonable({
            "date": today,
            "sales": {
                "today": current,
                "yesterday": previous,
                "growth": {
                    "totalSales": growth_percent(current["total_sales"], previous["total_sales"]),
                    "totalOrders": growth_percent(current["total_orders"], previous["total_orders"]),
                    "avgOrderValue": growth_percent(current["avg_order_value"], previous["avg_order_value"]),
                    "uniqueCustomers": growth_percent(current["unique_customers"], previous["unique_customers"]),
                },
            },
            "pendingOrders": self.repo.pending_orders(),
            "pendingPayments": self.repo.pending_payments(),
            "inventory": inventory,
            "customers": customers,
        })

    def inventory_alerts(self, severity: str = "all") -> List[Dict[str, Any]]:
        severity = (severity or "all").lower()
        if severity not in SEVERITIES:
            raise ValidationFailed(f"severity must be one of: {', '.join(SEVERITIES)}")

        alerts = []
        for row in self.repo.inventory_alert_rows():
            level = stock_severity(row["quantity"], row["min_level"] or 0)
            if severity != "all" and level.lower() != severity:
                continue
            alerts.append({
                **row,
                "severity": level,
                "reorder_amount": max(0, (row["min_level"] or 0) - row["quantity"]),
            })
        return to_jsonable(alerts)

    def sales_analytics(self, start_date: Optional[date], end_date: Optional[date],
                        group_by: str = "month", limit: int = 10) -> Dict[str, Any]:
        if group_by not in ("day", "week", "month"):
            raise ValidationFailed("group_by must be 'day', 'week', or 'month'")

        end = end_date or date.today()
        start = start_date or end - timedelta(days=365)
        if start > end:
            raise ValidationFailed("start_date must be on or before end_date")

        return to_jsonable({
            "range": {"startDate": start, "endDate": end, "groupBy": group_by},
            "trend": self.repo.sales_trend(start, end, group_by),
            "topProducts": self.repo.top_products(start, end, limit),
            "topCustomers": self.repo.top_customers(start, end, limit),
        })

    def cart_insights(self) -> Dict[str, Any]:
        return to_jsonable({
            **self.repo.cart_insights(settings.ABANDONED_CART_DAYS),
            "abandonedAfterDays": settings.ABANDONED_CART_DAYS,
        })

    def role_metrics(self, role: str) -> Dict[str, Any]:
        """Metric cards for a staff role's landing page"""
        role = canonical_role(role)
        today = date.today()

        if role == ROLE_WAREHOUSE:
            return to_jsonable({
                "role": role,
                "inventory": self.repo.inventory_metrics(),
                "alerts": self.inventory_alerts("all")[:10],
            })

        sales = self.repo.sales_for_day(today)
        payload = {
            "role": role,
            "salesToday": sales,
            "pendingOrders": self.repo.pending_orders(),
            "invoiceStatus": self.repo.invoice_status_counts(),
            "outstanding": self.repo.outstanding_balance(),
        }
        if role == ROLE_ADMIN:
            payload["pendingPayments"] = self.repo.pending_payments()
            payload["inventory"] = self.repo.inventory_metrics()
            payload["carts"] = self.repo.cart_insights(settings.ABANDONED_CART_DAYS)
        elif role == ROLE_SALES:
            payload["customers"] = self.repo.customer_metrics(today)
        return to_jsonable(payload)
