# shared fixtures for backend api tests
# provides mock db, test users and entries, identity overrides, and httpx test client

import copy
from datetime import datetime, timezone, timedelta

import pytest
import pytest_asyncio
from unittest.mock import MagicMock
from bson import ObjectId

from httpx import AsyncClient, ASGITransport

from campus_journal.main import app
from campus_journal.services.db import get_db
from campus_journal.services.broadcast import get_broadcaster
from campus_journal.dependencies import get_identity


# test ids (fixed so values match however this module is imported)
USER_OID = ObjectId("64b0c0ffee00000000000001")
OTHER_USER_OID = ObjectId("64b0c0ffee00000000000002")
ENTRY_OID = ObjectId("64b0c0ffee0000000000e001")
ENTRY_2_OID = ObjectId("64b0c0ffee0000000000e002")
OTHER_ENTRY_OID = ObjectId("64b0c0ffee0000000000e003")
USER_ID = str(USER_OID)
OTHER_USER_ID = str(OTHER_USER_OID)
ENTRY_ID = str(ENTRY_OID)
ENTRY_2_ID = str(ENTRY_2_OID)
OTHER_ENTRY_ID = str(OTHER_ENTRY_OID)

USER_SUBJECT = "auth0|student-001"
OTHER_SUBJECT = "auth0|student-002"
NEW_SUBJECT = "auth0|student-new"

USER_IDENTITY = {"sub": USER_SUBJECT, "email": "sam.taylor@university.edu"}
OTHER_IDENTITY = {"sub": OTHER_SUBJECT, "email": "riley.park@university.edu"}
NEW_IDENTITY = {"sub": NEW_SUBJECT, "email": "new.student@university.edu", "name": "New Student"}


def days_ago(days: float) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


# user documents (as they'd appear from mongodb)

def make_user(oid, subject, consent_date=None, **privacy):
    settings = {"dataRetentionDays": 365, "analyticsOptIn": True, "shareAnonymizedData": False}
    settings.update(privacy)
    return {
        "_id": oid,
        "authSubject": subject,
        "email": "$2b$12$hashedemailplaceholderhashedemailplaceholder000000000",
        "displayName": "Anonymous User",
        "privacySettings": settings,
        "preferences": {"colorTheme": "calming", "reminderFrequency": "daily", "journalPrompts": True},
        "consentVersion": "1.0" if consent_date else None,
        "consentDate": consent_date,
        "lastActive": days_ago(1),
        "accountStatus": "active",
        "createdAt": days_ago(60),
        "updatedAt": days_ago(60),
    }


def make_entry(oid, user_oid, created_at, scale=6, stress=4, content="Studied for my chemistry midterm.",
               colors=None, location="library", anonymous=False, expires_at=None):
    doc = {
        "_id": oid,
        "userId": user_oid,
        "entry": {
            "content": content,
            "mood": {"scale": scale, "colors": colors or [], "tags": ["focused"]},
            "prompts": {"gratitude": ["my roommate"], "challenges": [], "goals": [], "reflections": []},
            "context": {"location": location, "timeOfDay": "evening", "stressLevel": stress},
        },
        "privacy": {"isPrivate": True, "shareWithCounselor": False, "anonymousSharing": anonymous},
        "analytics": {"editCount": 0, "readTime": 120, "sentiment": None},
        "createdAt": created_at,
        "updatedAt": created_at,
    }
    if expires_at is not None:
        doc["expiresAt"] = expires_at
    return doc


def default_users():
    return [
        make_user(USER_OID, USER_SUBJECT, consent_date=days_ago(10)),
        make_user(OTHER_USER_OID, OTHER_SUBJECT, consent_date=days_ago(20)),
    ]


def default_entries():
    return [
        make_entry(ENTRY_OID, USER_OID, days_ago(2), scale=6, stress=4,
                   colors=[{"color": "blue", "intensity": 3}], expires_at=days_ago(2) + timedelta(days=365)),
        make_entry(ENTRY_2_OID, USER_OID, days_ago(1), scale=8, stress=2, location="dorm",
                   colors=[{"color": "blue", "intensity": 4}, {"color": "yellow", "intensity": 5}],
                   expires_at=days_ago(1) + timedelta(days=365)),
        make_entry(OTHER_ENTRY_OID, OTHER_USER_OID, days_ago(3), scale=3, stress=9,
                   content="Riley's private entry.", anonymous=True),
    ]


# async cursor mock

class AsyncCursorMock:
    """mock for motor's async cursor — supports async for and chained methods"""

    def __init__(self, data=None):
        self._data = data or []
        self._index = 0

    def sort(self, key, direction=1):
        self._data = sorted(self._data, key=lambda d: _get(d, key), reverse=direction == -1)
        return self

    def skip(self, n):
        self._data = self._data[n:]
        return self

    def limit(self, n):
        if n:
            self._data = self._data[:n]
        return self

    def __aiter__(self):
        self._index = 0
        return self

    async def __anext__(self):
        if self._index >= len(self._data):
            raise StopAsyncIteration
        item = self._data[self._index]
        self._index += 1
        return item

    async def to_list(self, length=None):
        if length is not None:
            return self._data[:length]
        return self._data


_MISSING = object()


def _get(doc, path, default=None):
    """dotted path lookup"""
    value = doc
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return default
        value = value[part]
    return value


def _set(doc, path, value):
    parts = path.split(".")
    for part in parts[:-1]:
        doc = doc.setdefault(part, {})
    doc[parts[-1]] = value


def _unset(doc, path):
    parts = path.split(".")
    for part in parts[:-1]:
        doc = doc.get(part)
        if not isinstance(doc, dict):
            return
    doc.pop(parts[-1], None)


def _project(doc, projection):
    doc = copy.deepcopy(doc)
    if not projection:
        return doc
    include = {k for k, v in projection.items() if v and k != "_id"}
    if include:
        result = {}
        if projection.get("_id", 1):
            result["_id"] = doc["_id"]
        for path in include:
            value = _get(doc, path, _MISSING)
            if value is not _MISSING:
                _set(result, path, value)
        return result
    for path, flag in projection.items():
        if not flag:
            _unset(doc, path)
    return doc


def _eval(doc, expr):
    """evaluate an aggregation expression: "$path" refs, $round, literal sub-documents"""
    if isinstance(expr, str) and expr.startswith("$"):
        return _get(doc, expr[1:], _MISSING)
    if isinstance(expr, dict):
        if "$round" in expr:
            value, digits = (_eval(doc, e) for e in expr["$round"])
            return None if value in (None, _MISSING) else round(value, digits)
        result = {}
        for key, sub in expr.items():
            value = _eval(doc, sub)
            if value is not _MISSING:
                result[key] = value
        return result
    return expr


def _numbers(values):
    return [v for v in values if isinstance(v, (int, float)) and not isinstance(v, bool)]


def _group_stage(docs, spec):
    groups = {}
    for doc in docs:
        key = _eval(doc, spec["_id"])
        groups.setdefault(repr(key), (key, []))[1].append(doc)

    rows = []
    for key, members in groups.values():
        row = {"_id": key}
        for field, accumulator in spec.items():
            if field == "_id":
                continue
            (op, arg), = accumulator.items()
            values = [_eval(d, arg) for d in members]
            if op == "$sum":
                row[field] = sum(_numbers(values))
            elif op == "$avg":
                nums = _numbers(values)
                row[field] = sum(nums) / len(nums) if nums else None
            elif op == "$push":
                row[field] = [v for v in values if v is not _MISSING]
            else:
                raise NotImplementedError(f"accumulator {op}")
        rows.append(row)
    return rows


def _project_stage(doc, spec):
    result = {}
    if spec.get("_id", 1) and "_id" in doc:
        result["_id"] = doc["_id"]
    for field, expr in spec.items():
        if field == "_id":
            continue
        if expr == 1 or expr is True:
            value = _get(doc, field, _MISSING)
            if value is not _MISSING:
                result[field] = value
        else:
            result[field] = _eval(doc, expr)
    return result


class MockCollection:
    """mock for a motor collection with async methods"""

    def __init__(self, data=None):
        self._data = data or []
        self.inserted = []
        self.indexes = []
        self.pipelines = []

    def find(self, query=None, projection=None):
        results = [_project(d, projection) for d in self._data if self._matches(d, query or {})]
        return AsyncCursorMock(results)

    async def find_one(self, query=None, projection=None):
        for doc in self._data:
            if self._matches(doc, query or {}):
                return _project(doc, projection)
        return None

    async def insert_one(self, doc):
        oid = doc.get("_id", ObjectId())
        doc["_id"] = oid
        self._data.append(copy.deepcopy(doc))
        self.inserted.append(doc)
        result = MagicMock()
        result.inserted_id = oid
        return result

    async def count_documents(self, query=None):
        return len([d for d in self._data if self._matches(d, query or {})])

    async def update_one(self, query, update, upsert=False):
        result = MagicMock()
        result.matched_count = 0
        result.modified_count = 0
        for doc in self._data:
            if self._matches(doc, query):
                before = copy.deepcopy(doc)
                for key, val in update.get("$set", {}).items():
                    _set(doc, key, val)
                for key, val in update.get("$inc", {}).items():
                    _set(doc, key, (_get(doc, key) or 0) + val)
                result.matched_count = 1
                result.modified_count = int(doc != before)
                break
        return result

    async def delete_one(self, query):
        result = MagicMock()
        result.deleted_count = 0
        for i, doc in enumerate(self._data):
            if self._matches(doc, query):
                del self._data[i]
                result.deleted_count = 1
                break
        return result

    async def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))
        return "mock_index"

    def aggregate(self, pipeline):
        """run the pipeline stages the services use against the stored documents"""
        self.pipelines.append(pipeline)
        docs = [copy.deepcopy(d) for d in self._data]
        for stage in pipeline:
            (op, spec), = stage.items()
            if op == "$match":
                docs = [d for d in docs if self._matches(d, spec)]
            elif op == "$sort":
                for key, direction in reversed(list(spec.items())):
                    docs.sort(key=lambda d: _get(d, key), reverse=direction == -1)
            elif op == "$group":
                docs = _group_stage(docs, spec)
            elif op == "$project":
                docs = [_project_stage(d, spec) for d in docs]
            elif op == "$count":
                docs = [{spec: len(docs)}] if docs else []
            else:
                raise NotImplementedError(f"stage {op}")
        return AsyncCursorMock(docs)

    def get(self, oid):
        """test helper: the stored document with this _id"""
        for doc in self._data:
            if doc["_id"] == oid:
                return doc
        return None

    def _matches(self, doc, query):
        """basic mongodb query matching for tests, dotted paths included"""
        for key, value in query.items():
            doc_val = _get(doc, key, _MISSING)
            if isinstance(value, dict) and any(k.startswith("$") for k in value):
                for op, operand in value.items():
                    if op == "$exists":
                        if (doc_val is not _MISSING) != bool(operand):
                            return False
                    elif op == "$ne":
                        if doc_val is not _MISSING and doc_val == operand:
                            return False
                    elif op == "$in":
                        if doc_val is _MISSING or doc_val not in operand:
                            return False
                    elif doc_val is _MISSING or doc_val is None:
                        return False
                    elif op == "$gte" and not doc_val >= operand:
                        return False
                    elif op == "$gt" and not doc_val > operand:
                        return False
                    elif op == "$lte" and not doc_val <= operand:
                        return False
                    elif op == "$lt" and not doc_val < operand:
                        return False
            elif doc_val is _MISSING or doc_val != value:
                return False
        return True


class MockDatabase:
    """mock database that mimics the Database class"""

    def __init__(self, users=None, entries=None):
        self.users = MockCollection(default_users() if users is None else users)
        self.journal_entries = MockCollection(default_entries() if entries is None else entries)

    async def connect(self):
        pass

    async def ensure_indexes(self):
        pass

    async def close(self):
        pass


class RecordingPublisher:
    """stand-in for the broadcaster that records every publish call"""

    def __init__(self):
        self.events = []

    def publish(self, channel, event, data, exclude=None):
        self.events.append((channel, event, data))


@pytest.fixture
def mock_db():
    """create a fresh mock database for each test"""
    return MockDatabase()


@pytest.fixture
def publisher():
    return RecordingPublisher()


def _override(mock_db, publisher, identity=None):
    async def override_get_db():
        return mock_db

    async def override_get_broadcaster():
        return publisher

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_broadcaster] = override_get_broadcaster
    if identity is not None:
        async def override_get_identity():
            return dict(identity)

        app.dependency_overrides[get_identity] = override_get_identity


@pytest_asyncio.fixture
async def client(mock_db, publisher):
    """httpx async test client with mocked storage, identity comes from real tokens"""
    _override(mock_db, publisher)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def user_client(mock_db, publisher):
    """client authenticated as a consented student with analytics enabled"""
    _override(mock_db, publisher, USER_IDENTITY)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def new_user_client(mock_db, publisher):
    """client authenticated as a student the store has never seen"""
    _override(mock_db, publisher, NEW_IDENTITY)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
