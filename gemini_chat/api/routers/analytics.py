import logging
from typing import List, Literal

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response

from gemini_chat.api.deps import get_analytics, get_theme_store
from gemini_chat.models.api_io import (
    ChartData,
    DailyHistoryRow,
    ThemeRequest,
    ThemeResponse,
    TrackTextRequest,
)
from gemini_chat.services.analytics import AnalyticsAggregator
from gemini_chat.services.storage import ThemeStore

router = APIRouter(prefix="/api/analytics", tags=["analytics"])
preferences_router = APIRouter(prefix="/api/preferences", tags=["preferences"])

TimeFilter = Literal["all", "today", "week", "month"]


def _snapshot(analytics: AnalyticsAggregator) -> dict:
    return {
        "stats": analytics.stats.model_dump(by_alias=True),
        "summary": analytics.summary(),
    }


@router.get("")
def get_stats(analytics: AnalyticsAggregator = Depends(get_analytics)):
    """Current counters plus the dashboard summary figures."""
    return _snapshot(analytics)


@router.post("/user-message")
def track_user_message(body: TrackTextRequest, analytics: AnalyticsAggregator = Depends(get_analytics)):
    analytics.record_user_message(body.text)
    return _snapshot(analytics)


@router.post("/ai-response")
def track_ai_response(body: TrackTextRequest, analytics: AnalyticsAggregator = Depends(get_analytics)):
    analytics.record_ai_response(body.text)
    return _snapshot(analytics)


@router.post("/image-upload")
def track_image_upload(analytics: AnalyticsAggregator = Depends(get_analytics)):
    analytics.record_image_upload()
    return _snapshot(analytics)


@router.post("/reset")
def reset_stats(analytics: AnalyticsAggregator = Depends(get_analytics)):
    logging.info("Resetting conversation analytics")
    analytics.reset()
    return _snapshot(analytics)


@router.get("/history", response_model=List[DailyHistoryRow])
def get_daily_history(analytics: AnalyticsAggregator = Depends(get_analytics)):
    """Per-day message counts, newest first."""
    return analytics.daily_history()


@router.get("/charts", response_model=ChartData)
def get_chart_data(
    time_filter: TimeFilter = "all",
    analytics: AnalyticsAggregator = Depends(get_analytics),
):
    return analytics.chart_data(time_filter)


@router.get("/export")
def export_stats(analytics: AnalyticsAggregator = Depends(get_analytics)):
    """Download the analytics report as CSV."""
    return Response(
        content=analytics.export_report(),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{analytics.export_filename()}"'},
    )


@preferences_router.get("/theme", response_model=ThemeResponse)
def get_theme(themes: ThemeStore = Depends(get_theme_store)):
    return ThemeResponse(theme=themes.get())


@preferences_router.put("/theme", response_model=ThemeResponse)
def set_theme(body: ThemeRequest, themes: ThemeStore = Depends(get_theme_store)):
    try:
        return ThemeResponse(theme=themes.set(body.theme))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
