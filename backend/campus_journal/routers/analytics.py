# analytics router — personal dashboard, mood colors and export (consent + opt-in),
# plus the public anonymized campus statistics

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from campus_journal.models.analytics import (
    AnalyticsDashboardResponse,
    AnalyticsExportResponse,
    CohortStatsResponse,
    ColorAnalyticsResponse,
)
from campus_journal.services import analytics_service
from campus_journal.services.db import Database, get_db
from campus_journal.dependencies import require_analytics

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/analytics", tags=["analytics"])

TIMEFRAME_HELP = "window in days, 7-365"


@router.get("/dashboard", response_model=AnalyticsDashboardResponse)
async def get_dashboard(
    timeframe: Optional[int] = Query(None, description=TIMEFRAME_HELP),
    current_user: dict = Depends(require_analytics),
    db: Database = Depends(get_db),
):
    """summary, insights and recommendations from the caller's recent entries"""
    return await analytics_service.get_dashboard(db, current_user, timeframe)


@router.get("/mood-colors", response_model=ColorAnalyticsResponse)
async def get_mood_colors(
    timeframe: Optional[int] = Query(None, description=TIMEFRAME_HELP),
    current_user: dict = Depends(require_analytics),
    db: Database = Depends(get_db),
):
    return await analytics_service.get_color_analytics(db, current_user, timeframe)


@router.get("/export", response_model=AnalyticsExportResponse)
async def export_analytics(
    timeframe: Optional[int] = Query(None, description=f"{TIMEFRAME_HELP} (default 365)"),
    current_user: dict = Depends(require_analytics),
    db: Database = Depends(get_db),
):
    return await analytics_service.export_analytics(db, current_user, timeframe)


@router.get("/anonymous", response_model=CohortStatsResponse, response_model_exclude_unset=True)
async def get_anonymous_stats(
    timeframe: Optional[int] = Query(None, description=TIMEFRAME_HELP),
    db: Database = Depends(get_db),
):
    """campus-wide statistics from entries shared anonymously. no per-user field is returned."""
    return await analytics_service.get_cohort_stats(db, timeframe)
