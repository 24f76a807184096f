# users router — preferences and privacy settings for the current user

import logging
from fastapi import APIRouter, Depends

from campus_journal.models.user import (
    Preferences,
    PreferencesUpdate,
    PrivacySettings,
    PrivacySettingsUpdate,
    SettingsResponse,
)
from campus_journal.services import privacy_service, user_service
from campus_journal.services.db import Database, get_db
from campus_journal.dependencies import require_consent

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/user", tags=["user"])


@router.get("/preferences", response_model=SettingsResponse)
async def get_preferences(current_user: dict = Depends(require_consent)):
    """ui preferences together with privacy settings"""
    return user_service.get_settings(current_user)


@router.put("/preferences", response_model=Preferences)
async def update_preferences(
    body: PreferencesUpdate,
    current_user: dict = Depends(require_consent),
    db: Database = Depends(get_db),
):
    return await user_service.update_preferences(db, current_user, body)


@router.get("/privacy", response_model=PrivacySettings)
async def get_privacy_settings(current_user: dict = Depends(require_consent)):
    return privacy_service.get_privacy_settings(current_user)


@router.put("/privacy", response_model=PrivacySettings)
async def update_privacy_settings(
    body: PrivacySettingsUpdate,
    current_user: dict = Depends(require_consent),
    db: Database = Depends(get_db),
):
    """partial update, fields left out of the body keep their values"""
    return await privacy_service.update_privacy_settings(db, current_user, body)
