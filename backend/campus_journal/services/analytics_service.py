# analytics service — personal mood statistics, dashboard insights,
# rule-based recommendations, mood-color analytics and anonymized cohort stats
#
# personal queries run filter -> project in the store and group here:
#   1. match the owner's entries inside the window
#   2. project only the fields the summary needs
#   3. group into means (two-decimal rounding) and frequency tables
# cross-user cohort stats are grouped and rounded by an aggregation pipeline,
# so only the aggregate row leaves the store.
# means over an empty window are None, never 0.

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from bson import ObjectId

from campus_journal.errors import storage_errors
from campus_journal.models.analytics import (
    DEFAULT_WINDOW_DAYS,
    EXPORT_WINDOW_DAYS,
    AnalyticsDashboardResponse,
    AnalyticsExportData,
    AnalyticsExportEntry,
    AnalyticsExportResponse,
    AnalyticsExportUser,
    AnalyticsSummary,
    AnalyticsWindow,
    CohortStats,
    CohortStatsResponse,
    ColorAnalytics,
    ColorAnalyticsResponse,
    Insights,
    MoodStats,
    MoodStatsResponse,
    MoodTrendPoint,
    Recommendation,
)
from campus_journal.services.db import Database
from campus_journal.validation import validate_payload

logger = logging.getLogger(__name__)

COHORT_DISCLAIMER = "This data is anonymized and aggregated from users who opted into data sharing."
NO_COHORT_DATA = "No anonymized data available"

# recommendation thresholds
LOW_MOOD_THRESHOLD = 5
HIGH_MOOD_THRESHOLD = 7
HIGH_STRESS_THRESHOLD = 7
MIN_WEEKLY_ENTRIES = 7

# color insights only for colors used at least this often
COLOR_INSIGHT_MIN_FREQUENCY = 3

COLOR_MEANINGS = {
    "blue": "Blue appears frequently in your entries ({n} times), often associated with calm and stability.",
    "red": "Red usage ({n} times) may indicate high energy or stress periods.",
    "green": "Green in your entries ({n} times) often represents growth and balance.",
    "yellow": "Yellow usage ({n} times) may reflect optimism and energy.",
}

PERSONAL_PROJECTION = {
    "_id": 0,
    "entry.mood": 1,
    "entry.context": 1,
    "analytics.readTime": 1,
    "createdAt": 1,
}


# helpers

def resolve_window(days: Optional[int], default: int = DEFAULT_WINDOW_DAYS) -> int:
    """validate a window length in days (7-365), falling back to the default"""
    payload = {"days": default if days is None else days}
    return validate_payload(AnalyticsWindow, payload).days


def _window_start(days: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


def _get(doc: dict, path: str) -> Any:
    """read a dotted path from a nested document"""
    value: Any = doc
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _values(docs: Iterable[dict], path: str) -> list:
    return [v for v in (_get(d, path) for d in docs) if v is not None]


def mean(values: list, digits: int = 2) -> Optional[float]:
    if not values:
        return None
    return round(sum(values) / len(values), digits)


def _frequency(values: Iterable[Any]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for value in values:
        if value:
            counts[value] = counts.get(value, 0) + 1
    return counts


def _trend(docs: list[dict]) -> list[MoodTrendPoint]:
    return [
        MoodTrendPoint(
            date=d["createdAt"].strftime("%Y-%m-%d"),
            mood=_get(d, "entry.mood.scale"),
            stress=_get(d, "entry.context.stressLevel"),
        )
        for d in docs
    ]


async def _entries_in_window(db: Database, user_id: ObjectId, days: int, projection: dict) -> list[dict]:
    query = {"userId": user_id, "createdAt": {"$gte": _window_start(days)}}
    with storage_errors("load journal entries"):
        cursor = db.journal_entries.find(query, projection).sort("createdAt", 1)
        return [doc async for doc in cursor]


# recommendations

def generate_recommendations(
    avg_mood: Optional[float],
    avg_stress: Optional[float],
    total_entries: int,
) -> list[Recommendation]:
    """rule-based suggestions, evaluated independently in mood -> stress -> engagement order"""
    recommendations = []

    if avg_mood is not None:
        if avg_mood < LOW_MOOD_THRESHOLD:
            recommendations.append(Recommendation(
                type="mood",
                priority="high",
                message="Your recent mood scores suggest you might benefit from additional support. "
                        "Consider reaching out to campus counseling services.",
                action="contact_counselor",
            ))
        elif avg_mood > HIGH_MOOD_THRESHOLD:
            recommendations.append(Recommendation(
                type="mood",
                priority="low",
                message="Great job maintaining positive mood levels! Keep up the healthy habits.",
                action="maintain_habits",
            ))

    if avg_stress is not None and avg_stress > HIGH_STRESS_THRESHOLD:
        recommendations.append(Recommendation(
            type="stress",
            priority="high",
            message="Your stress levels have been elevated. "
                    "Consider stress management techniques like deep breathing or meditation.",
            action="stress_management",
        ))

    if total_entries < MIN_WEEKLY_ENTRIES:
        recommendations.append(Recommendation(
            type="engagement",
            priority="medium",
            message="Regular journaling can help improve mental clarity. Try setting a daily reminder.",
            action="increase_frequency",
        ))

    return recommendations


# personal analytics

def summarize_mood(docs: list[dict]) -> MoodStats:
    return MoodStats(
        avgMood=mean(_values(docs, "entry.mood.scale")),
        avgStress=mean(_values(docs, "entry.context.stressLevel")),
        totalEntries=len(docs),
        moodTrend=_trend(docs),
    )


async def get_mood_stats(db: Database, user: dict, days: Optional[int]) -> MoodStatsResponse:
    """mean mood/stress and the chronological trend for the caller's own entries"""
    days = resolve_window(days)
    docs = await _entries_in_window(db, user["_id"], days, PERSONAL_PROJECTION)
    return MoodStatsResponse(stats=summarize_mood(docs), timeframe=days)


def build_dashboard(docs: list[dict], days: int) -> AnalyticsDashboardResponse:
    stats = summarize_mood(docs)
    tags = [tag for d in docs for tag in (_get(d, "entry.mood.tags") or [])]

    summary = AnalyticsSummary(
        totalEntries=stats.total_entries,
        avgMood=stats.avg_mood,
        avgStress=stats.avg_stress,
        avgReadTime=mean(_values(docs, "analytics.readTime"), digits=0),
    )
    insights = Insights(
        moodTagFrequency=_frequency(tags),
        locationFrequency=_frequency(_values(docs, "entry.context.location")),
        timePatterns=_frequency(_values(docs, "entry.context.timeOfDay")),
        moodTrend=stats.mood_trend,
    )
    return AnalyticsDashboardResponse(
        timeframe=days,
        summary=summary,
        insights=insights,
        recommendations=generate_recommendations(stats.avg_mood, stats.avg_stress, stats.total_entries),
    )


async def get_dashboard(db: Database, user: dict, days: Optional[int]) -> AnalyticsDashboardResponse:
    days = resolve_window(days)
    docs = await _entries_in_window(db, user["_id"], days, PERSONAL_PROJECTION)
    return build_dashboard(docs, days)


# mood colors

def summarize_colors(docs: list[dict]) -> list[ColorAnalytics]:
    """one row per color used in the window, most frequent first"""
    groups: dict[str, dict] = {}
    for doc in docs:
        scale = _get(doc, "entry.mood.scale")
        for item in _get(doc, "entry.mood.colors") or []:
            color = item.get("color")
            if not color:
                continue
            group = groups.setdefault(color, {"frequency": 0, "intensity": [], "mood": []})
            group["frequency"] += 1
            if item.get("intensity") is not None:
                group["intensity"].append(item["intensity"])
            if scale is not None:
                group["mood"].append(scale)

    rows = [
        ColorAnalytics(
            color=color,
            frequency=group["frequency"],
            avgIntensity=mean(group["intensity"]),
            avgMoodWhenUsed=mean(group["mood"]),
        )
        for color, group in groups.items()
    ]
    rows.sort(key=lambda r: (-r.frequency, r.color))
    return rows


def color_insights(rows: list[ColorAnalytics]) -> list[str]:
    insights = []
    for row in rows:
        if row.frequency < COLOR_INSIGHT_MIN_FREQUENCY:
            continue
        template = COLOR_MEANINGS.get(row.color.lower())
        if template:
            insights.append(template.format(n=row.frequency))
        elif row.avg_mood_when_used is not None and row.avg_mood_when_used > HIGH_MOOD_THRESHOLD:
            insights.append(f"{row.color} seems to be associated with your positive moods.")
    return insights


async def get_color_analytics(db: Database, user: dict, days: Optional[int]) -> ColorAnalyticsResponse:
    days = resolve_window(days)
    docs = await _entries_in_window(db, user["_id"], days, {"_id": 0, "entry.mood": 1, "createdAt": 1})
    rows = summarize_colors(docs)
    return ColorAnalyticsResponse(colorAnalytics=rows, timeframe=days, insights=color_insights(rows))


# export

async def export_analytics(db: Database, user: dict, days: Optional[int]) -> AnalyticsExportResponse:
    days = resolve_window(days, default=EXPORT_WINDOW_DAYS)
    docs = await _entries_in_window(
        db, user["_id"], days, {"_id": 0, "entry.mood": 1, "entry.context": 1, "analytics": 1, "createdAt": 1},
    )
    privacy = user.get("privacySettings") or {}
    entries = [
        AnalyticsExportEntry(
            date=d["createdAt"],
            mood=_get(d, "entry.mood") or {},
            context=_get(d, "entry.context") or {},
            analytics=d.get("analytics") or {},
        )
        for d in docs
    ]
    return AnalyticsExportResponse(data=AnalyticsExportData(
        user=AnalyticsExportUser(
            id=str(user["_id"]),
            analyticsOptIn=privacy.get("analyticsOptIn", False),
            dataRetentionDays=privacy.get("dataRetentionDays", 0),
        ),
        timeframe=days,
        entries=entries,
        exportTimestamp=datetime.now(timezone.utc),
    ))


# anonymized cohort

def cohort_pipeline(days: int) -> list[dict]:
    """match shared entries in the window, then group, round and project inside the store.
    the single output row carries no _id, userId or content."""
    return [
        {"$match": {"createdAt": {"$gte": _window_start(days)}, "privacy.anonymousSharing": True}},
        {"$sort": {"createdAt": 1}},
        {"$group": {
            "_id": None,
            "avgMood": {"$avg": "$entry.mood.scale"},
            "avgStress": {"$avg": "$entry.context.stressLevel"},
            "totalEntries": {"$sum": 1},
            "moodTrends": {"$push": {
                "date": "$createdAt",
                "mood": "$entry.mood.scale",
                "stress": "$entry.context.stressLevel",
            }},
        }},
        {"$project": {
            "_id": 0,
            "avgMood": {"$round": ["$avgMood", 2]},
            "avgStress": {"$round": ["$avgStress", 2]},
            "totalEntries": 1,
            "moodTrends": 1,
        }},
    ]


async def get_cohort_stats(db: Database, days: Optional[int]) -> CohortStatsResponse:
    """campus-wide stats from entries flagged for anonymous sharing, whatever the
    owners' analytics opt-in"""
    days = resolve_window(days)

    with storage_errors("load anonymized statistics"):
        rows = await db.journal_entries.aggregate(cohort_pipeline(days)).to_list(length=1)

    if not rows:
        return CohortStatsResponse(message=NO_COHORT_DATA, stats=None, timeframe=days)

    return CohortStatsResponse(
        campusStats=CohortStats.model_validate(rows[0]),
        timeframe=days,
        disclaimer=COHORT_DISCLAIMER,
    )
