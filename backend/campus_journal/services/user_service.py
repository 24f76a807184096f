# user service — lazy account creation, activity tracking, profile,
# preferences and the full personal data export

import logging
from datetime import datetime, timezone

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from campus_journal.config import settings
from campus_journal.errors import AuthenticationError, NotFoundError, storage_errors
from campus_journal.models.export import DataExport, DataExportResponse, ExportProfile
from campus_journal.models.user import (
    DEFAULT_DISPLAY_NAME,
    Preferences,
    PreferencesUpdate,
    PrivacySettings,
    ProfileResponse,
    ProfileUpdate,
    SettingsResponse,
)
from campus_journal.services.db import Database
from campus_journal.services.identity_service import hash_email
from campus_journal.services.journal_service import doc_to_entry
from campus_journal.validation import validate_payload

logger = logging.getLogger(__name__)


def new_user_document(identity: dict, now: datetime) -> dict:
    """a fresh user with default settings and no consent on record"""
    display_name = (identity.get("name") or DEFAULT_DISPLAY_NAME)[:50]
    return {
        "_id": ObjectId(),
        "authSubject": identity["sub"],
        "email": hash_email(identity.get("email")),
        "displayName": display_name,
        "privacySettings": PrivacySettings(dataRetentionDays=settings.DEFAULT_RETENTION_DAYS).model_dump(by_alias=True),
        "preferences": Preferences().model_dump(by_alias=True),
        "consentVersion": None,
        "consentDate": None,
        "lastActive": now,
        "accountStatus": "active",
        "createdAt": now,
        "updatedAt": now,
    }


async def touch_last_active(db: Database, user: dict, now: datetime) -> None:
    """record activity. non-critical, a failure is logged, never surfaced"""
    try:
        await db.users.update_one({"_id": user["_id"]}, {"$set": {"lastActive": now}})
        user["lastActive"] = now
    except Exception as e:
        logger.warning(f"Could not update last active for user {user['_id']}: {e}")


async def get_or_create_user(db: Database, identity: dict) -> dict:
    """resolve the verified identity to a user document, creating it on first sight"""
    subject = identity["sub"]
    now = datetime.now(timezone.utc)

    with storage_errors("load user"):
        user = await db.users.find_one({"authSubject": subject})

    created = False
    if user is None:
        doc = new_user_document(identity, now)
        with storage_errors("create user"):
            try:
                await db.users.insert_one(doc)
                user, created = doc, True
                logger.info(f"Created user {doc['_id']} on first authentication")
            except DuplicateKeyError:
                # created concurrently by another request, treat it as an existing user
                user = await db.users.find_one({"authSubject": subject})
        if user is None:
            raise AuthenticationError("Account could not be loaded")

    if not created:
        if user.get("accountStatus", "active") != "active":
            raise AuthenticationError("Account is no longer active")
        await touch_last_active(db, user, now)

    user["id"] = str(user["_id"])
    return user


# preferences

def get_settings(user: dict) -> SettingsResponse:
    return SettingsResponse(
        preferences=user.get("preferences") or {},
        privacySettings=user.get("privacySettings") or {},
    )


async def update_preferences(db: Database, user: dict, body) -> Preferences:
    """partial update of ui preferences"""
    body = validate_payload(PreferencesUpdate, body)
    changes = body.model_dump(by_alias=True, exclude_unset=True)
    current = dict(user.get("preferences") or {})

    if changes:
        set_fields = {f"preferences.{key}": value for key, value in changes.items()}
        set_fields["updatedAt"] = datetime.now(timezone.utc)
        with storage_errors("update preferences"):
            await db.users.update_one({"_id": user["_id"]}, {"$set": set_fields})
        current.update(changes)

    return Preferences.model_validate(current)


# profile

def get_profile(user: dict) -> ProfileResponse:
    return ProfileResponse(
        id=str(user["_id"]),
        displayName=user.get("displayName", DEFAULT_DISPLAY_NAME),
        preferences=user.get("preferences") or {},
        privacySettings=user.get("privacySettings") or {},
        consentVersion=user.get("consentVersion"),
        consentDate=user.get("consentDate"),
        lastActive=user.get("lastActive"),
        accountStatus=user.get("accountStatus", "active"),
    )


async def update_profile(db: Database, user: dict, body) -> ProfileResponse:
    body = validate_payload(ProfileUpdate, body)
    changes = body.model_dump(by_alias=True, exclude_unset=True)

    set_fields = {}
    if "displayName" in changes:
        set_fields["displayName"] = changes["displayName"]
    for key, value in (changes.get("preferences") or {}).items():
        set_fields[f"preferences.{key}"] = value

    if set_fields:
        set_fields["updatedAt"] = datetime.now(timezone.utc)
        with storage_errors("update profile"):
            await db.users.update_one({"_id": user["_id"]}, {"$set": set_fields})

        if "displayName" in set_fields:
            user["displayName"] = set_fields["displayName"]
        preferences = dict(user.get("preferences") or {})
        preferences.update(changes.get("preferences") or {})
        user["preferences"] = preferences

    return get_profile(user)


# export

async def export_user_data(db: Database, user: dict) -> DataExportResponse:
    """everything stored for the caller: profile plus every journal entry"""
    with storage_errors("export user data"):
        stored = await db.users.find_one({"_id": user["_id"]})
        if not stored:
            raise NotFoundError("User not found")
        cursor = db.journal_entries.find({"userId": user["_id"]}, {"analytics": 0}).sort("createdAt", -1)
        entries = [doc_to_entry(doc) async for doc in cursor]

    profile = ExportProfile(
        displayName=stored.get("displayName", DEFAULT_DISPLAY_NAME),
        preferences=stored.get("preferences") or {},
        privacySettings=stored.get("privacySettings") or {},
        consentVersion=stored.get("consentVersion"),
        consentDate=stored.get("consentDate"),
        accountCreated=stored.get("createdAt"),
    )
    logger.info(f"Data export generated for user {user['_id']} ({len(entries)} entries)")
    return DataExportResponse(
        data=DataExport(profile=profile, journalEntries=entries, exportDate=datetime.now(timezone.utc)),
    )
