# journal models — structured entry creation, update and response schemas
# documents in journal_entries use the same camelCase field names as the aliases

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, StrictBool, field_validator

CONTENT_MAX_LENGTH = 5000

MoodTag = Literal[
    "anxious", "calm", "stressed", "happy", "sad", "angry",
    "motivated", "tired", "focused", "overwhelmed", "peaceful", "excited",
]
Location = Literal["campus", "dorm", "library", "outdoors", "home", "other"]
TimeOfDay = Literal["morning", "afternoon", "evening", "night"]


def _unique(values: list) -> list:
    """drop repeated values, keep first-seen order"""
    seen = set()
    result = []
    for v in values:
        if v not in seen:
            seen.add(v)
            result.append(v)
    return result


# entry building blocks

class MoodColor(BaseModel):
    color: str = Field(..., min_length=1, max_length=30)
    intensity: Optional[int] = Field(None, ge=1, le=5)


class Mood(BaseModel):
    scale: int = Field(..., ge=1, le=10, description="mood score 1-10")
    colors: list[MoodColor] = Field(default_factory=list)
    tags: list[MoodTag] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, v: list[str]) -> list[str]:
        return _unique(v)


class EntryContext(BaseModel):
    location: Optional[Location] = None
    time_of_day: Optional[TimeOfDay] = Field(None, alias="timeOfDay")
    stress_level: Optional[int] = Field(None, alias="stressLevel", ge=1, le=10)

    model_config = {"populate_by_name": True}


class Prompts(BaseModel):
    gratitude: list[str] = Field(default_factory=list)
    challenges: list[str] = Field(default_factory=list)
    goals: list[str] = Field(default_factory=list)
    reflections: list[str] = Field(default_factory=list)


class SharingChoice(BaseModel):
    """sharing flags a user may set. isPrivate is always forced true on create"""
    share_with_counselor: StrictBool = Field(False, alias="shareWithCounselor")
    anonymous_sharing: StrictBool = Field(False, alias="anonymousSharing")

    model_config = {"populate_by_name": True}


class EntryPrivacy(BaseModel):
    is_private: bool = Field(True, alias="isPrivate")
    share_with_counselor: bool = Field(False, alias="shareWithCounselor")
    anonymous_sharing: bool = Field(False, alias="anonymousSharing")

    model_config = {"populate_by_name": True}


# requests

class JournalCreate(BaseModel):
    """payload for a new journal entry"""
    content: str = Field(..., min_length=1, max_length=CONTENT_MAX_LENGTH, description="journal entry text")
    mood: Mood
    context: EntryContext = Field(default_factory=EntryContext)
    prompts: Prompts = Field(default_factory=Prompts)
    privacy: SharingChoice = Field(default_factory=SharingChoice)

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Content is required")
        return v


class MoodUpdate(BaseModel):
    scale: int = Field(None, ge=1, le=10)
    colors: list[MoodColor] = Field(None)
    tags: list[MoodTag] = Field(None)

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, v: list[str]) -> list[str]:
        return _unique(v)


class PromptsUpdate(BaseModel):
    gratitude: list[str] = Field(None)
    challenges: list[str] = Field(None)
    goals: list[str] = Field(None)
    reflections: list[str] = Field(None)


class SharingUpdate(BaseModel):
    share_with_counselor: StrictBool = Field(None, alias="shareWithCounselor")
    anonymous_sharing: StrictBool = Field(None, alias="anonymousSharing")

    model_config = {"populate_by_name": True}


class JournalUpdate(BaseModel):
    """partial edit, each provided section is merged into the stored one"""
    content: str = Field(None, min_length=1, max_length=CONTENT_MAX_LENGTH)
    mood: Optional[MoodUpdate] = None
    context: Optional[EntryContext] = None
    prompts: Optional[PromptsUpdate] = None
    privacy: Optional[SharingUpdate] = None


class JournalListQuery(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=50)
    start_date: Optional[datetime] = Field(None, alias="startDate")
    end_date: Optional[datetime] = Field(None, alias="endDate")

    model_config = {"populate_by_name": True}


# responses

class EntryBody(BaseModel):
    content: str
    mood: Mood
    prompts: Prompts = Field(default_factory=Prompts)
    context: EntryContext = Field(default_factory=EntryContext)


class JournalEntryResponse(BaseModel):
    """a stored entry as returned to its owner (analytics sub-document omitted)"""
    id: str
    entry: EntryBody
    privacy: EntryPrivacy = Field(default_factory=EntryPrivacy)
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    model_config = {"populate_by_name": True}


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class JournalListResponse(BaseModel):
    entries: list[JournalEntryResponse]
    pagination: Pagination


class CreatedEntry(BaseModel):
    id: str
    created_at: datetime = Field(..., alias="createdAt")
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")
    mood: Mood
    context: EntryContext

    model_config = {"populate_by_name": True}


class JournalCreatedResponse(BaseModel):
    message: str = "Journal entry created successfully"
    entry: CreatedEntry


class UpdatedEntry(BaseModel):
    id: str
    updated_at: datetime = Field(..., alias="updatedAt")
    edit_count: int = Field(..., alias="editCount")

    model_config = {"populate_by_name": True}


class JournalUpdatedResponse(BaseModel):
    message: str = "Journal entry updated successfully"
    entry: UpdatedEntry


class MessageResponse(BaseModel):
    message: str
