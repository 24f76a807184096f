# privacy settings manager — read and partial update of retention and sharing opt-ins

import logging
from datetime import datetime, timezone

from campus_journal.errors import storage_errors
from campus_journal.models.user import PrivacySettings, PrivacySettingsUpdate
from campus_journal.services.db import Database
from campus_journal.validation import validate_payload

logger = logging.getLogger(__name__)


def get_privacy_settings(user: dict) -> PrivacySettings:
    return PrivacySettings.model_validate(user.get("privacySettings") or {})


async def update_privacy_settings(db: Database, user: dict, body) -> PrivacySettings:
    """apply only the fields present in body. every invalid field is reported at once
    and nothing is written when any field fails.

    a new dataRetentionDays only affects entries created afterwards; existing
    entries keep the expiry computed when they were written."""
    body = validate_payload(PrivacySettingsUpdate, body)
    changes = body.model_dump(by_alias=True, exclude_unset=True)
    current = get_privacy_settings(user).model_dump(by_alias=True)

    if changes:
        set_fields = {f"privacySettings.{key}": value for key, value in changes.items()}
        set_fields["updatedAt"] = datetime.now(timezone.utc)
        with storage_errors("update privacy settings"):
            await db.users.update_one({"_id": user["_id"]}, {"$set": set_fields})
        current.update(changes)
        user["privacySettings"] = current
        logger.info(f"Privacy settings updated for user {user['_id']}: {sorted(changes)}")

    return PrivacySettings.model_validate(current)
