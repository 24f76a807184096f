# analytics models — personal stats, dashboard, mood colors and cohort schemas
# every averaged value is rounded to two decimals; "no data" is null, never zero

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from campus_journal.models.journal import EntryContext, Mood

WINDOW_MIN_DAYS = 7
WINDOW_MAX_DAYS = 365
DEFAULT_WINDOW_DAYS = 30
EXPORT_WINDOW_DAYS = 365


class AnalyticsWindow(BaseModel):
    """time window in days, counted back from now"""
    days: int = Field(DEFAULT_WINDOW_DAYS, ge=WINDOW_MIN_DAYS, le=WINDOW_MAX_DAYS)


class MoodTrendPoint(BaseModel):
    date: str
    mood: Optional[int] = None
    stress: Optional[int] = None


# personal mood stats

class MoodStats(BaseModel):
    avg_mood: Optional[float] = Field(None, alias="avgMood")
    avg_stress: Optional[float] = Field(None, alias="avgStress")
    total_entries: int = Field(0, alias="totalEntries")
    mood_trend: list[MoodTrendPoint] = Field(default_factory=list, alias="moodTrend")

    model_config = {"populate_by_name": True}


class MoodStatsResponse(BaseModel):
    stats: MoodStats
    timeframe: int


# dashboard

class AnalyticsSummary(BaseModel):
    total_entries: int = Field(0, alias="totalEntries")
    avg_mood: Optional[float] = Field(None, alias="avgMood")
    avg_stress: Optional[float] = Field(None, alias="avgStress")
    avg_read_time: Optional[float] = Field(None, alias="avgReadTime")

    model_config = {"populate_by_name": True}


class Insights(BaseModel):
    mood_tag_frequency: dict[str, int] = Field(default_factory=dict, alias="moodTagFrequency")
    location_frequency: dict[str, int] = Field(default_factory=dict, alias="locationFrequency")
    time_patterns: dict[str, int] = Field(default_factory=dict, alias="timePatterns")
    mood_trend: list[MoodTrendPoint] = Field(default_factory=list, alias="moodTrend")

    model_config = {"populate_by_name": True}


class Recommendation(BaseModel):
    type: Literal["mood", "stress", "engagement"]
    priority: Literal["high", "medium", "low"]
    message: str
    action: str


class AnalyticsDashboardResponse(BaseModel):
    timeframe: int
    summary: AnalyticsSummary
    insights: Insights
    recommendations: list[Recommendation] = Field(default_factory=list)


# mood colors

class ColorAnalytics(BaseModel):
    color: str
    frequency: int
    avg_intensity: Optional[float] = Field(None, alias="avgIntensity")
    avg_mood_when_used: Optional[float] = Field(None, alias="avgMoodWhenUsed")

    model_config = {"populate_by_name": True}


class ColorAnalyticsResponse(BaseModel):
    color_analytics: list[ColorAnalytics] = Field(default_factory=list, alias="colorAnalytics")
    timeframe: int
    insights: list[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


# anonymized cohort

class CohortTrendPoint(BaseModel):
    date: datetime
    mood: Optional[int] = None
    stress: Optional[int] = None


class CohortStats(BaseModel):
    avg_mood: Optional[float] = Field(None, alias="avgMood")
    avg_stress: Optional[float] = Field(None, alias="avgStress")
    total_entries: int = Field(0, alias="totalEntries")
    mood_trends: list[CohortTrendPoint] = Field(default_factory=list, alias="moodTrends")

    model_config = {"populate_by_name": True}


class CohortStatsResponse(BaseModel):
    """either campusStats + disclaimer, or message + stats=null when nobody shared data"""
    campus_stats: Optional[CohortStats] = Field(None, alias="campusStats")
    message: Optional[str] = None
    stats: Optional[CohortStats] = None
    timeframe: int
    disclaimer: Optional[str] = None

    model_config = {"populate_by_name": True}


# analytics export

class EntryAnalytics(BaseModel):
    edit_count: int = Field(0, alias="editCount")
    read_time: Optional[float] = Field(None, alias="readTime")
    sentiment: Optional[dict] = None

    model_config = {"populate_by_name": True}


class AnalyticsExportEntry(BaseModel):
    date: datetime
    mood: Mood
    context: EntryContext = Field(default_factory=EntryContext)
    analytics: EntryAnalytics = Field(default_factory=EntryAnalytics)


class AnalyticsExportUser(BaseModel):
    id: str
    analytics_opt_in: bool = Field(..., alias="analyticsOptIn")
    data_retention_days: int = Field(..., alias="dataRetentionDays")

    model_config = {"populate_by_name": True}


class AnalyticsExportData(BaseModel):
    user: AnalyticsExportUser
    timeframe: int
    entries: list[AnalyticsExportEntry] = Field(default_factory=list)
    export_timestamp: datetime = Field(..., alias="exportTimestamp")
    format: str = "JSON"
    version: str = "1.0"

    model_config = {"populate_by_name": True}


class AnalyticsExportResponse(BaseModel):
    message: str = "Analytics data export generated"
    data: AnalyticsExportData
