# anonymization engine — irreversible in-place scrubbing instead of deletion
#
# account anonymization leaves the user's journal entries alone; they expire on
# their own schedule or are anonymized one by one.

import logging
from datetime import datetime, timezone

from campus_journal.errors import NotFoundError, storage_errors
from campus_journal.models.journal import JournalEntryResponse
from campus_journal.models.user import DEFAULT_DISPLAY_NAME
from campus_journal.services.db import Database
from campus_journal.services.journal_service import HIDDEN_FIELDS, doc_to_entry, owner_filter

logger = logging.getLogger(__name__)

ANONYMIZED_EMAIL = "anonymized@privacy.local"
CONTENT_PLACEHOLDER = "[Content removed for privacy]"


async def anonymize_account(db: Database, user: dict) -> None:
    """scrub identifying fields and mark the account deleted. the record itself stays."""
    now = datetime.now(timezone.utc)
    with storage_errors("anonymize account"):
        result = await db.users.update_one(
            {"_id": user["_id"]},
            {"$set": {
                "email": ANONYMIZED_EMAIL,
                "displayName": DEFAULT_DISPLAY_NAME,
                "accountStatus": "deleted",
                "updatedAt": now,
            }},
        )
    if result.matched_count == 0:
        raise NotFoundError("User not found")
    logger.info(f"Account anonymized: {user['_id']}")


async def anonymize_entry(db: Database, user: dict, entry_id: str) -> JournalEntryResponse:
    """replace the content with a placeholder, force the entry private and unshared with counselors.
    writes the same fixed values every time, so repeating it changes nothing."""
    query = owner_filter(user, entry_id)
    with storage_errors("anonymize journal entry"):
        result = await db.journal_entries.update_one(
            query,
            {"$set": {
                "entry.content": CONTENT_PLACEHOLDER,
                "privacy.isPrivate": True,
                "privacy.shareWithCounselor": False,
            }},
        )
        if result.matched_count == 0:
            raise NotFoundError("Journal entry not found")
        doc = await db.journal_entries.find_one(query, HIDDEN_FIELDS)

    logger.info(f"Journal entry anonymized: {entry_id} by user {user['_id']}")
    return doc_to_entry(doc)
