# user models — consent, privacy settings, preferences and profile schemas
# field aliases match the camelCase documents stored in the users collection

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, StrictBool, StrictInt, StrictStr

RETENTION_MIN_DAYS = 30
RETENTION_MAX_DAYS = 1095
DISPLAY_NAME_MAX_LENGTH = 50
DEFAULT_DISPLAY_NAME = "Anonymous User"

ColorTheme = Literal["calming", "energizing", "balanced", "custom"]
ReminderFrequency = Literal["daily", "weekly", "custom", "none"]
AccountStatus = Literal["active", "suspended", "deleted"]


# privacy settings

class PrivacySettings(BaseModel):
    data_retention_days: int = Field(365, alias="dataRetentionDays")
    analytics_opt_in: bool = Field(False, alias="analyticsOptIn")
    share_anonymized_data: bool = Field(False, alias="shareAnonymizedData")

    model_config = {"populate_by_name": True}


class PrivacySettingsUpdate(BaseModel):
    """partial update. only the fields present in the payload are applied.
    fields default to None but an explicit null is still a type error."""
    data_retention_days: StrictInt = Field(
        None, alias="dataRetentionDays", ge=RETENTION_MIN_DAYS, le=RETENTION_MAX_DAYS,
        description="days a journal entry is kept before automatic purge",
    )
    analytics_opt_in: StrictBool = Field(None, alias="analyticsOptIn")
    share_anonymized_data: StrictBool = Field(None, alias="shareAnonymizedData")

    model_config = {"populate_by_name": True}


# consent

class ConsentCreate(BaseModel):
    """consent submission, overwrites every privacy setting"""
    consent_version: StrictStr = Field(..., alias="consentVersion", min_length=1)
    analytics_opt_in: StrictBool = Field(..., alias="analyticsOptIn")
    share_anonymized_data: StrictBool = Field(..., alias="shareAnonymizedData")
    data_retention_days: StrictInt = Field(
        ..., alias="dataRetentionDays", ge=RETENTION_MIN_DAYS, le=RETENTION_MAX_DAYS,
    )

    model_config = {"populate_by_name": True}


class ConsentResponse(BaseModel):
    id: str
    consent_version: str = Field(..., alias="consentVersion")
    consent_date: datetime = Field(..., alias="consentDate")
    privacy_settings: PrivacySettings = Field(..., alias="privacySettings")

    model_config = {"populate_by_name": True}


# preferences

class Preferences(BaseModel):
    color_theme: ColorTheme = Field("calming", alias="colorTheme")
    reminder_frequency: ReminderFrequency = Field("daily", alias="reminderFrequency")
    journal_prompts: bool = Field(True, alias="journalPrompts")

    model_config = {"populate_by_name": True}


class PreferencesUpdate(BaseModel):
    color_theme: ColorTheme = Field(None, alias="colorTheme")
    reminder_frequency: ReminderFrequency = Field(None, alias="reminderFrequency")
    journal_prompts: StrictBool = Field(None, alias="journalPrompts")

    model_config = {"populate_by_name": True}


class SettingsResponse(BaseModel):
    preferences: Preferences
    privacy_settings: PrivacySettings = Field(..., alias="privacySettings")

    model_config = {"populate_by_name": True}


# profile

class ProfileUpdate(BaseModel):
    display_name: StrictStr = Field(None, alias="displayName", min_length=1, max_length=DISPLAY_NAME_MAX_LENGTH)
    preferences: Optional[PreferencesUpdate] = None

    model_config = {"populate_by_name": True}


class ProfileResponse(BaseModel):
    """profile view. never includes email or the identity provider subject"""
    id: str
    display_name: str = Field(DEFAULT_DISPLAY_NAME, alias="displayName")
    preferences: Preferences = Field(default_factory=Preferences)
    privacy_settings: PrivacySettings = Field(default_factory=PrivacySettings, alias="privacySettings")
    consent_version: Optional[str] = Field(None, alias="consentVersion")
    consent_date: Optional[datetime] = Field(None, alias="consentDate")
    last_active: Optional[datetime] = Field(None, alias="lastActive")
    account_status: AccountStatus = Field("active", alias="accountStatus")

    model_config = {"populate_by_name": True}
