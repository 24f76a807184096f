# consent service — the gate every data-bearing request passes, and the recorder
# that is the only way to (re)grant consent

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from pymongo.errors import DuplicateKeyError

from campus_journal.config import settings
from campus_journal.errors import AuthenticationError, ConsentRequiredError, storage_errors
from campus_journal.models.user import ConsentCreate, ConsentResponse, PrivacySettings
from campus_journal.services.db import Database
from campus_journal.services.user_service import new_user_document
from campus_journal.validation import validate_payload

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # naive datetimes from the driver are utc
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def check_consent(user: dict, now: Optional[datetime] = None) -> None:
    """raise ConsentRequiredError unless the user accepted the policy within the max consent age.
    pure check, reads nothing from the store and writes nothing."""
    consent_date = user.get("consentDate")
    if not consent_date:
        raise ConsentRequiredError("Privacy consent required")

    now = now or datetime.now(timezone.utc)
    if now - _as_utc(consent_date) > timedelta(days=settings.CONSENT_MAX_AGE_DAYS):
        raise ConsentRequiredError("Privacy consent expired")


def has_valid_consent(user: dict, now: Optional[datetime] = None) -> bool:
    try:
        check_consent(user, now)
    except ConsentRequiredError:
        return False
    return True


async def record_consent(db: Database, identity: dict, body) -> ConsentResponse:
    """store an accepted policy version. creates the user if needed; otherwise
    resets consentDate and overwrites all three privacy settings."""
    body = validate_payload(ConsentCreate, body)
    now = datetime.now(timezone.utc)
    subject = identity["sub"]
    privacy = PrivacySettings(
        dataRetentionDays=body.data_retention_days,
        analyticsOptIn=body.analytics_opt_in,
        shareAnonymizedData=body.share_anonymized_data,
    ).model_dump(by_alias=True)

    with storage_errors("record consent"):
        user = await db.users.find_one({"authSubject": subject})

        if user is None:
            doc = new_user_document(identity, now)
            doc.update({
                "consentVersion": body.consent_version,
                "consentDate": now,
                "privacySettings": privacy,
            })
            try:
                await db.users.insert_one(doc)
                logger.info(f"Consent {body.consent_version} recorded for new user {doc['_id']}")
                return _consent_response(doc)
            except DuplicateKeyError:
                # created concurrently by another request, fall through to overwrite
                user = await db.users.find_one({"authSubject": subject})

        if user.get("accountStatus", "active") != "active":
            raise AuthenticationError("Account is no longer active")

        update = {
            "consentVersion": body.consent_version,
            "consentDate": now,
            "privacySettings": privacy,
            "updatedAt": now,
        }
        await db.users.update_one({"_id": user["_id"]}, {"$set": update})

    user.update(update)
    logger.info(f"Consent {body.consent_version} recorded for user {user['_id']}")
    return _consent_response(user)


def _consent_response(user: dict) -> ConsentResponse:
    return ConsentResponse(
        id=str(user["_id"]),
        consentVersion=user["consentVersion"],
        consentDate=user["consentDate"],
        privacySettings=user["privacySettings"],
    )
