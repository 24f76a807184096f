# journal entry store — create, list, read, edit and delete entries for their owner
# entries are only ever addressed together with the owner's userId

import logging
import math
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId

from campus_journal.errors import NotFoundError, storage_errors
from campus_journal.models.journal import (
    CreatedEntry,
    EntryBody,
    JournalCreate,
    JournalCreatedResponse,
    JournalEntryResponse,
    JournalListQuery,
    JournalListResponse,
    JournalUpdate,
    JournalUpdatedResponse,
    Pagination,
    UpdatedEntry,
)
from campus_journal.services import retention_service
from campus_journal.services.broadcast import COHORT_CHANNEL, Publisher
from campus_journal.services.db import Database
from campus_journal.validation import validate_payload

logger = logging.getLogger(__name__)

# never returned to the owner through the entry endpoints
HIDDEN_FIELDS = {"analytics": 0}


def owner_filter(user: dict, entry_id: str) -> dict:
    """query matching one entry of this user; malformed ids are simply not found"""
    try:
        oid = ObjectId(entry_id)
    except (InvalidId, TypeError):
        raise NotFoundError("Journal entry not found")
    return {"_id": oid, "userId": user["_id"]}


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def doc_to_entry(doc: dict) -> JournalEntryResponse:
    """convert a journal_entries document to the owner-facing response model"""
    entry = doc.get("entry") or {}
    return JournalEntryResponse(
        id=str(doc["_id"]),
        entry=EntryBody(
            content=entry.get("content", ""),
            mood=entry.get("mood") or {},
            prompts=entry.get("prompts") or {},
            context=entry.get("context") or {},
        ),
        privacy=doc.get("privacy") or {},
        expiresAt=doc.get("expiresAt"),
        createdAt=doc.get("createdAt"),
        updatedAt=doc.get("updatedAt"),
    )


def _announce(publisher: Optional[Publisher], doc: dict) -> None:
    """best-effort cohort notification. the entry is already saved, so failures only get logged"""
    if publisher is None:
        return
    try:
        publisher.publish(COHORT_CHANNEL, "anonymous-journal-update", {
            "mood": doc["entry"]["mood"]["scale"],
            "timestamp": doc["createdAt"].isoformat(),
            "location": doc["entry"]["context"].get("location"),
        })
    except Exception as e:
        logger.warning(f"Could not broadcast anonymous journal update: {e}")


async def create_entry(
    db: Database,
    user: dict,
    body,
    publisher: Optional[Publisher] = None,
) -> JournalCreatedResponse:
    """persist a new entry. expiry comes from the owner's current retention setting"""
    body = validate_payload(JournalCreate, body)
    now = datetime.now(timezone.utc)

    doc = {
        "_id": ObjectId(),
        "userId": user["_id"],
        "entry": {
            "content": body.content,
            "mood": body.mood.model_dump(exclude_none=True),
            "prompts": body.prompts.model_dump(),
            "context": body.context.model_dump(by_alias=True, exclude_none=True),
        },
        "privacy": {
            "isPrivate": True,
            "shareWithCounselor": body.privacy.share_with_counselor,
            "anonymousSharing": body.privacy.anonymous_sharing,
        },
        "analytics": {"editCount": 0, "readTime": None, "sentiment": None},
        "createdAt": now,
        "updatedAt": now,
    }

    expires_at = await retention_service.compute_expiry(db, user["_id"], now)
    if expires_at is not None:
        doc["expiresAt"] = expires_at

    with storage_errors("save journal entry"):
        await db.journal_entries.insert_one(doc)
    logger.info(f"Journal entry created: {doc['_id']} by user {user['_id']}")

    if doc["privacy"]["anonymousSharing"]:
        _announce(publisher, doc)

    return JournalCreatedResponse(entry=CreatedEntry(
        id=str(doc["_id"]),
        createdAt=now,
        expiresAt=expires_at,
        mood=doc["entry"]["mood"],
        context=doc["entry"]["context"],
    ))


async def list_entries(db: Database, user: dict, params) -> JournalListResponse:
    """newest-first page of the user's entries, optionally bounded by createdAt"""
    params = validate_payload(JournalListQuery, params)

    query: dict = {"userId": user["_id"]}
    if params.start_date or params.end_date:
        query["createdAt"] = {}
        if params.start_date:
            query["createdAt"]["$gte"] = _as_utc(params.start_date)
        if params.end_date:
            query["createdAt"]["$lte"] = _as_utc(params.end_date)

    skip = (params.page - 1) * params.limit
    with storage_errors("load journal entries"):
        total = await db.journal_entries.count_documents(query)
        cursor = db.journal_entries.find(query, HIDDEN_FIELDS).sort("createdAt", -1).skip(skip).limit(params.limit)
        entries = [doc_to_entry(doc) async for doc in cursor]

    return JournalListResponse(
        entries=entries,
        pagination=Pagination(
            page=params.page,
            limit=params.limit,
            total=total,
            pages=math.ceil(total / params.limit),
        ),
    )


async def get_entry(db: Database, user: dict, entry_id: str) -> JournalEntryResponse:
    query = owner_filter(user, entry_id)
    with storage_errors("load journal entry"):
        doc = await db.journal_entries.find_one(query, HIDDEN_FIELDS)
    if not doc:
        raise NotFoundError("Journal entry not found")
    return doc_to_entry(doc)


async def update_entry(db: Database, user: dict, entry_id: str, body) -> JournalUpdatedResponse:
    """merge the provided sections into the stored entry and bump editCount.
    userId and expiresAt are never touched; concurrent edits are last-write-wins."""
    body = validate_payload(JournalUpdate, body)
    changes = body.model_dump(by_alias=True, exclude_unset=True)
    query = owner_filter(user, entry_id)

    with storage_errors("load journal entry"):
        current = await db.journal_entries.find_one(query)
    if not current:
        raise NotFoundError("Journal entry not found")

    stored = current.get("entry") or {}
    set_fields = {}
    if "content" in changes:
        set_fields["entry.content"] = changes["content"]
    for section in ("mood", "context", "prompts"):
        if changes.get(section) is not None:
            set_fields[f"entry.{section}"] = {**(stored.get(section) or {}), **changes[section]}
    if changes.get("privacy") is not None:
        set_fields["privacy"] = {**(current.get("privacy") or {}), **changes["privacy"]}

    now = datetime.now(timezone.utc)
    set_fields["updatedAt"] = now

    with storage_errors("update journal entry"):
        result = await db.journal_entries.update_one(query, {"$set": set_fields, "$inc": {"analytics.editCount": 1}})
    if result.matched_count == 0:
        # deleted between the read and the write
        raise NotFoundError("Journal entry not found")

    edit_count = (current.get("analytics") or {}).get("editCount", 0) + 1
    logger.info(f"Journal entry edited: {entry_id} by user {user['_id']}")
    return JournalUpdatedResponse(entry=UpdatedEntry(id=entry_id, updatedAt=now, editCount=edit_count))


async def delete_entry(db: Database, user: dict, entry_id: str) -> None:
    query = owner_filter(user, entry_id)
    with storage_errors("delete journal entry"):
        result = await db.journal_entries.delete_one(query)
    if result.deleted_count == 0:
        raise NotFoundError("Journal entry not found")
    logger.info(f"Journal entry deleted: {entry_id} by user {user['_id']}")
