# data export models — everything stored about the caller, for portability requests

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from campus_journal.models.journal import JournalEntryResponse
from campus_journal.models.user import Preferences, PrivacySettings

EXPORT_VERSION = "1.0"


class ExportProfile(BaseModel):
    display_name: str = Field(..., alias="displayName")
    preferences: Preferences
    privacy_settings: PrivacySettings = Field(..., alias="privacySettings")
    consent_version: Optional[str] = Field(None, alias="consentVersion")
    consent_date: Optional[datetime] = Field(None, alias="consentDate")
    account_created: Optional[datetime] = Field(None, alias="accountCreated")

    model_config = {"populate_by_name": True}


class DataExport(BaseModel):
    profile: ExportProfile
    journal_entries: list[JournalEntryResponse] = Field(default_factory=list, alias="journalEntries")
    export_date: datetime = Field(..., alias="exportDate")
    export_version: str = Field(EXPORT_VERSION, alias="exportVersion")

    model_config = {"populate_by_name": True}


class DataExportResponse(BaseModel):
    message: str = "Data export generated"
    data: DataExport
