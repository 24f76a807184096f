# journals router — the owner's structured journal entries and personal mood stats
# every route is consent-gated; entries are only reachable by their owner

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from campus_journal.models.analytics import MoodStatsResponse
from campus_journal.models.journal import (
    JournalCreate,
    JournalCreatedResponse,
    JournalEntryResponse,
    JournalListResponse,
    JournalUpdate,
    JournalUpdatedResponse,
)
from campus_journal.services import analytics_service, anonymization_service, journal_service
from campus_journal.services.broadcast import MoodBroadcaster, get_broadcaster
from campus_journal.services.db import Database, get_db
from campus_journal.dependencies import require_consent

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/journal", tags=["journal"])


@router.get("", response_model=JournalListResponse)
async def list_entries(
    page: int = Query(1),
    limit: int = Query(10),
    start_date: Optional[str] = Query(None, alias="startDate", description="ISO date, inclusive"),
    end_date: Optional[str] = Query(None, alias="endDate", description="ISO date, inclusive"),
    current_user: dict = Depends(require_consent),
    db: Database = Depends(get_db),
):
    """list the caller's entries, newest first"""
    params = {"page": page, "limit": limit, "startDate": start_date, "endDate": end_date}
    return await journal_service.list_entries(db, current_user, params)


@router.post("", response_model=JournalCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_entry(
    body: JournalCreate,
    current_user: dict = Depends(require_consent),
    db: Database = Depends(get_db),
    publisher: MoodBroadcaster = Depends(get_broadcaster),
):
    """write a new entry. shared entries are announced on the campus channel after saving."""
    return await journal_service.create_entry(db, current_user, body, publisher=publisher)


@router.get("/stats/mood", response_model=MoodStatsResponse)
async def get_mood_stats(
    days: Optional[int] = Query(None, description="window in days, 7-365 (default 30)"),
    current_user: dict = Depends(require_consent),
    db: Database = Depends(get_db),
):
    """mean mood and stress plus the daily trend for the caller's own entries"""
    return await analytics_service.get_mood_stats(db, current_user, days)


@router.get("/{entry_id}", response_model=JournalEntryResponse)
async def get_entry(
    entry_id: str,
    current_user: dict = Depends(require_consent),
    db: Database = Depends(get_db),
):
    return await journal_service.get_entry(db, current_user, entry_id)


@router.put("/{entry_id}", response_model=JournalUpdatedResponse)
async def update_entry(
    entry_id: str,
    body: JournalUpdate,
    current_user: dict = Depends(require_consent),
    db: Database = Depends(get_db),
):
    return await journal_service.update_entry(db, current_user, entry_id, body)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(
    entry_id: str,
    current_user: dict = Depends(require_consent),
    db: Database = Depends(get_db),
):
    await journal_service.delete_entry(db, current_user, entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{entry_id}/anonymize", response_model=JournalEntryResponse)
async def anonymize_entry(
    entry_id: str,
    current_user: dict = Depends(require_consent),
    db: Database = Depends(get_db),
):
    """scrub the entry's content in place. safe to repeat."""
    return await anonymization_service.anonymize_entry(db, current_user, entry_id)
