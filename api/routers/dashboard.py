"""
Dashboard API Endpoints.

Aggregated statistics and the caller's notification feed.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_session
from api.models import DashboardStatsResponse, NotificationResponse
from api.routers.sales import parse_scope
from services.session_service import SalesSession

router = APIRouter()


@router.get(
    "/stats",
    response_model=DashboardStatsResponse,
    summary="Dashboard Statistics",
    description="Totals, conversion rate, status funnel, 7-day trend and top sellers."
)
def get_stats(
    scope: Optional[str] = Query(None, description="own or all (defaults by role)"),
    session: SalesSession = Depends(get_session),
):
    stats = session.aggregate(parse_scope(scope, session))
    return DashboardStatsResponse.from_domain(stats)


@router.get(
    "/notifications",
    response_model=List[NotificationResponse],
    summary="Notifications",
    description="Most recent notifications for the caller, newest first."
)
def list_notifications(
    limit: int = Query(20, ge=1, le=50, description="Maximum number of notifications to return"),
    session: SalesSession = Depends(get_session),
):
    return [NotificationResponse.from_domain(n) for n in session.notifier.recent(limit)]
