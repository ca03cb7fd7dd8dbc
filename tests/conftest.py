import copy
import os
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
import pytest_asyncio
from structlog.testing import capture_logs
from httpx import AsyncClient, ASGITransport
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from app.core.auth import create_access_token
from app.db.mongo import create_indexes
from app.models.expense import ExpenseSplit, GroupExpense
from app.models.group import ExpenseGroup
from app.utils.expense_validation import build_equal_splits

_MISSING = object()

# Real database for repository tests against the driver
TEST_MONGODB_URI = os.getenv("MONGODB_URI")
TEST_MONGODB_DB = "settle_test"


# ===== IN-MEMORY MOTOR DATABASE =====
# Implements the subset of the Motor API the repositories use, so service
# tests run without a MongoDB server. Transactions snapshot every collection
# on entry and restore it if the block raises.

def _matches(doc: dict, query: dict) -> bool:
    for key, cond in query.items():
        if key == "$or":
            if not any(_matches(doc, sub) for sub in cond):
                return False
            continue

        value = doc.get(key, _MISSING)
        if isinstance(value, list) and not isinstance(cond, list):
            if cond not in value:
                return False
        elif value is _MISSING or value != cond:
            return False
    return True


def _apply_update(doc: dict, update: dict, inserting: bool) -> None:
    for op, fields in update.items():
        if op == "$set":
            doc.update(copy.deepcopy(fields))
        elif op == "$inc":
            for key, delta in fields.items():
                doc[key] = doc.get(key, 0) + delta
        elif op == "$setOnInsert":
            if inserting:
                doc.update(copy.deepcopy(fields))
        elif op == "$addToSet":
            for key, item in fields.items():
                values = doc.setdefault(key, [])
                if item not in values:
                    values.append(item)
        else:
            raise NotImplementedError(op)


def _upsert_seed(query: dict) -> dict:
    return {
        key: cond for key, cond in query.items()
        if not key.startswith("$") and not isinstance(cond, dict)
    }


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        keys = key if isinstance(key, list) else [(key, direction)]
        for field, order in reversed(keys):
            self._docs.sort(key=lambda doc: doc.get(field), reverse=order < 0)
        return self

    async def to_list(self, length=None):
        return self._docs[:length] if length else list(self._docs)


class FakeCollection:
    def __init__(self, name: str):
        self.name = name
        self.docs: dict = {}
        self.indexes: list = []

    def _find_raw(self, query):
        return [doc for doc in self.docs.values() if _matches(doc, query)]

    def find(self, query=None, session=None):
        return FakeCursor([copy.deepcopy(doc) for doc in self._find_raw(query or {})])

    async def find_one(self, query=None, session=None):
        found = self._find_raw(query or {})
        return copy.deepcopy(found[0]) if found else None

    async def insert_one(self, document, session=None):
        if document["_id"] in self.docs:
            raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name}")
        self.docs[document["_id"]] = copy.deepcopy(document)
        return SimpleNamespace(inserted_id=document["_id"])

    async def replace_one(self, query, replacement, upsert=False, session=None):
        found = self._find_raw(query)
        if found:
            doc_id = found[0]["_id"]
            self.docs[doc_id] = copy.deepcopy({**replacement, "_id": doc_id})
            return SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)
        if not upsert:
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)
        new_doc = {**_upsert_seed(query), **copy.deepcopy(replacement)}
        await self.insert_one(new_doc)
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=new_doc["_id"])

    async def find_one_and_update(self, query, update, upsert=False, return_document=False, session=None):
        found = self._find_raw(query)
        if found:
            before = copy.deepcopy(found[0])
            _apply_update(found[0], update, inserting=False)
            return copy.deepcopy(found[0]) if return_document else before
        if not upsert:
            return None
        new_doc = _upsert_seed(query)
        _apply_update(new_doc, update, inserting=True)
        await self.insert_one(new_doc)
        return copy.deepcopy(new_doc) if return_document else None

    async def delete_one(self, query, session=None):
        found = self._find_raw(query)
        if found:
            del self.docs[found[0]["_id"]]
            return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def create_index(self, keys, **kwargs):
        self.indexes.append(keys)


class FakeTransaction:
    def __init__(self, db):
        self.db = db

    async def __aenter__(self):
        self._snapshot = self.db.snapshot()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.db.restore(self._snapshot)
        return False


class FakeSession:
    def __init__(self, db):
        self.db = db

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def start_transaction(self):
        return FakeTransaction(self.db)


class FakeClient:
    def __init__(self, db):
        self.db = db

    async def start_session(self):
        return FakeSession(self.db)


class FakeDatabase:
    def __init__(self):
        self.collections: dict = {}
        self.client = FakeClient(self)

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]

    def snapshot(self) -> dict:
        return {name: copy.deepcopy(col.docs) for name, col in self.collections.items()}

    def restore(self, snapshot: dict) -> None:
        for name, col in self.collections.items():
            col.docs = snapshot.get(name, {})


# ===== FIXTURES =====

@pytest_asyncio.fixture
async def test_db() -> AsyncIOMotorDatabase:
    """Test MongoDB database with the production indexes. Needs MONGODB_URI."""
    if not TEST_MONGODB_URI:
        pytest.skip("MONGODB_URI not set")

    client = AsyncIOMotorClient(TEST_MONGODB_URI)
    await client.drop_database(TEST_MONGODB_DB)
    db = client[TEST_MONGODB_DB]
    await create_indexes(db)

    yield db

    await client.drop_database(TEST_MONGODB_DB)
    client.close()


@pytest.fixture
def fake_db():
    """Fresh in-memory database per test."""
    return FakeDatabase()


@pytest.fixture
def log_events():
    """Structured log events emitted during the test."""
    with capture_logs() as events:
        yield events


@pytest.fixture
def group():
    return ExpenseGroup(
        id="g1",
        name="Goa Trip",
        owner_id="alice",
        member_ids=["alice", "bob", "carol"]
    )


@pytest_asyncio.fixture
async def stored_group(fake_db, group):
    await fake_db["expenseGroups"].insert_one(group.to_document())
    return group


@pytest.fixture
def make_expense():
    """Build expenses with strictly increasing dates (later calls are newer)."""
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make(paid_by, amount_cents, split_between=None, splits=None, group_id="g1"):
        counter["n"] += 1
        if splits is not None:
            split_details = [
                ExpenseSplit(user_id=user_id, amount_cents=amount)
                for user_id, amount in splits.items()
            ]
        else:
            split_details = build_equal_splits(amount_cents, split_between, paid_by)
        return GroupExpense(
            group_id=group_id,
            paid_by=paid_by,
            amount_cents=amount_cents,
            description=f"Expense {counter['n']}",
            category="food",
            split_details=split_details,
            date=base + timedelta(hours=counter["n"])
        )

    return _make


@pytest.fixture
def add_expense(fake_db, make_expense):
    """Build an expense and store it."""

    async def _add(*args, **kwargs):
        expense = make_expense(*args, **kwargs)
        await fake_db["groupExpenses"].insert_one(expense.to_document())
        return expense

    return _add


@pytest_asyncio.fixture
async def api_client(fake_db):
    """HTTP client against the app with the database swapped for fake_db."""
    from app.main import app
    from app.db.mongo import get_db

    app.dependency_overrides[get_db] = lambda: fake_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user_id: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers
