# retention scheduler — stamps each new journal entry with its purge time
# the ttl index on journal_entries.expiresAt does the actual deletion

import logging
from datetime import datetime, timedelta
from typing import Optional

from bson import ObjectId

from campus_journal.services.db import Database

logger = logging.getLogger(__name__)


def expiry_for(created_at: datetime, retention_days: int) -> datetime:
    return created_at + timedelta(days=retention_days)


async def compute_expiry(db: Database, user_id: ObjectId, created_at: datetime) -> Optional[datetime]:
    """read the owner's current retention setting and return created_at + retention.
    runs once per entry, at creation. any failure returns None so the entry is
    still saved, just without an expiry."""
    try:
        owner = await db.users.find_one({"_id": user_id}, {"privacySettings.dataRetentionDays": 1})
        if owner is None:
            logger.warning(f"Owner {user_id} not found, entry saved without expiry")
            return None

        days = (owner.get("privacySettings") or {}).get("dataRetentionDays")
        if not days:
            logger.warning(f"Owner {user_id} has no retention setting, entry saved without expiry")
            return None

        return expiry_for(created_at, int(days))
    except Exception as e:
        logger.warning(f"Could not compute expiry for user {user_id}: {e}")
        return None
