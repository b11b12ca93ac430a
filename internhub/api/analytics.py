# internhub/api/analytics.py
from fastapi import APIRouter, Depends, HTTPException, Query

from internhub.models.analytics import (
    ActivityAnalytics,
    ApplicationAnalytics,
    InternshipAnalytics,
    PerformanceMetrics,
    RoleInsights,
    UserAnalytics,
)
from internhub.api.deps import get_analytics
from internhub.services.aggregation import DATE_RANGES
from internhub.services.analytics import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["analytics"])


def _range(range_key: str = Query("6months", alias="range")) -> str:
    if range_key not in DATE_RANGES:
        raise HTTPException(status_code=400, detail=f"range must be one of {', '.join(DATE_RANGES)}")
    return range_key


@router.get("/users", response_model=UserAnalytics)
async def user_analytics(range_key: str = Depends(_range), service: AnalyticsService = Depends(get_analytics)):
    return await service.user_analytics(range_key)


@router.get("/internships", response_model=InternshipAnalytics)
async def internship_analytics(range_key: str = Depends(_range), service: AnalyticsService = Depends(get_analytics)):
    return await service.internship_analytics(range_key)


@router.get("/applications", response_model=ApplicationAnalytics)
async def application_analytics(range_key: str = Depends(_range), service: AnalyticsService = Depends(get_analytics)):
    return await service.application_analytics(range_key)


@router.get("/activity", response_model=ActivityAnalytics)
async def activity_analytics(range_key: str = Depends(_range), service: AnalyticsService = Depends(get_analytics)):
    return await service.activity_analytics(range_key)


@router.get("/performance", response_model=PerformanceMetrics)
async def performance_metrics(range_key: str = Depends(_range), service: AnalyticsService = Depends(get_analytics)):
    return await service.performance_metrics(range_key)


@router.get("/roles", response_model=RoleInsights)
async def role_insights(range_key: str = Depends(_range), service: AnalyticsService = Depends(get_analytics)):
    return await service.role_insights(range_key)
