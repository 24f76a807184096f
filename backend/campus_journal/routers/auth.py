# auth router — consent, profile, account anonymization and data export
# identity itself is verified upstream; these routes act on the verified subject

import logging
from fastapi import APIRouter, Depends

from campus_journal.models.export import DataExportResponse
from campus_journal.models.journal import MessageResponse
from campus_journal.models.user import ConsentCreate, ConsentResponse, ProfileResponse, ProfileUpdate
from campus_journal.services import anonymization_service, consent_service, user_service
from campus_journal.services.db import Database, get_db
from campus_journal.dependencies import get_identity, require_consent

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/consent", response_model=ConsentResponse)
async def record_consent(
    body: ConsentCreate,
    identity: dict = Depends(get_identity),
    db: Database = Depends(get_db),
):
    """accept a policy version and set all privacy settings. the only way to (re)grant consent."""
    return await consent_service.record_consent(db, identity, body)


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(current_user: dict = Depends(require_consent)):
    return user_service.get_profile(current_user)


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    body: ProfileUpdate,
    current_user: dict = Depends(require_consent),
    db: Database = Depends(get_db),
):
    return await user_service.update_profile(db, current_user, body)


@router.delete("/account", response_model=MessageResponse)
async def delete_account(
    current_user: dict = Depends(require_consent),
    db: Database = Depends(get_db),
):
    """anonymize the account instead of deleting it. journal entries are left to expire."""
    await anonymization_service.anonymize_account(db, current_user)
    return MessageResponse(message="Account successfully anonymized and scheduled for deletion")


@router.post("/data-export", response_model=DataExportResponse)
async def export_data(
    current_user: dict = Depends(require_consent),
    db: Database = Depends(get_db),
):
    """export the profile and every journal entry of the caller"""
    return await user_service.export_user_data(db, current_user)
