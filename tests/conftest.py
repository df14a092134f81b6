"""
Pytest fixtures for mongo-facade tests.

Replaces pymongo.AsyncMongoClient with an in-memory fake that speaks the
subset of the async driver API the facade uses and raises real
pymongo.errors exceptions, so no server is needed.
"""

from __future__ import annotations

import copy
from types import SimpleNamespace
from typing import Any

import pytest
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import BulkWriteError, DuplicateKeyError, ServerSelectionTimeoutError


def _matches(doc: dict[str, Any], filter: dict[str, Any]) -> bool:
    """Check if document matches filter."""
    for key, value in filter.items():
        if key == "$and":
            if not all(_matches(doc, f) for f in value):
                return False
            continue
        if key == "$or":
            if not any(_matches(doc, f) for f in value):
                return False
            continue

        doc_value = doc.get(key)
        if isinstance(value, dict) and value and all(k.startswith("$") for k in value):
            for op, op_value in value.items():
                if op == "$eq" and doc_value != op_value:
                    return False
                if op == "$ne" and doc_value == op_value:
                    return False
                if op == "$gt" and (doc_value is None or doc_value <= op_value):
                    return False
                if op == "$gte" and (doc_value is None or doc_value < op_value):
                    return False
                if op == "$lt" and (doc_value is None or doc_value >= op_value):
                    return False
                if op == "$in" and doc_value not in op_value:
                    return False
        elif key not in doc or doc_value != value:
            return False
    return True


def _apply_update(doc: dict[str, Any], update: dict[str, Any], inserting: bool = False) -> bool:
    """Apply update operators to document."""
    before = copy.deepcopy(doc)
    for op, fields in update.items():
        if op == "$set" or (op == "$setOnInsert" and inserting):
            doc.update(fields)
        elif op == "$unset":
            for key in fields:
                doc.pop(key, None)
        elif op == "$inc":
            for key, value in fields.items():
                doc[key] = doc.get(key, 0) + value
        elif op == "$push":
            for key, value in fields.items():
                doc.setdefault(key, []).append(value)
    return doc != before


def _project(doc: dict[str, Any], projection: dict[str, Any] | None) -> dict[str, Any]:
    if not projection:
        return copy.deepcopy(doc)
    result = {key: doc[key] for key, include in projection.items() if include and key in doc}
    if "_id" in doc and projection.get("_id", 1):
        result["_id"] = doc["_id"]
    return copy.deepcopy(result)


class FakeCursor:
    def __init__(self, docs: list[dict[str, Any]]) -> None:
        self._docs = docs

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        return self._docs if length is None else self._docs[:length]


class FakeCollection:
    """In-memory stand-in for pymongo's AsyncCollection."""

    def __init__(self, database: FakeDatabase, name: str) -> None:
        self.database = database
        self.name = name

    @property
    def docs(self) -> list[dict[str, Any]]:
        return self.database.server.data.setdefault(self.database.name, {}).setdefault(
            self.name, []
        )

    def _check_duplicate(self, doc: dict[str, Any]) -> None:
        if any(existing["_id"] == doc["_id"] for existing in self.docs):
            raise DuplicateKeyError(
                f"E11000 duplicate key error collection: {self.name} dup key: {{ _id: {doc['_id']!r} }}",
                11000,
            )

    async def insert_one(self, document: dict[str, Any]) -> SimpleNamespace:
        self.database.server.calls.append(("insert_one", self.name))
        self._check_duplicate(document)
        self.docs.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"], acknowledged=True)

    async def insert_many(
        self, documents: list[dict[str, Any]], ordered: bool = True
    ) -> SimpleNamespace:
        self.database.server.calls.append(("insert_many", self.name))
        inserted = 0
        write_errors = []
        for index, doc in enumerate(documents):
            try:
                self._check_duplicate(doc)
            except DuplicateKeyError as e:
                write_errors.append({"index": index, "code": 11000, "errmsg": str(e)})
                if ordered:
                    break
                continue
            self.docs.append(copy.deepcopy(doc))
            inserted += 1
        if write_errors:
            raise BulkWriteError(
                {
                    "writeErrors": write_errors,
                    "writeConcernErrors": [],
                    "nInserted": inserted,
                    "nUpserted": 0,
                    "nMatched": 0,
                    "nModified": 0,
                    "nRemoved": 0,
                    "upserted": [],
                }
            )
        return SimpleNamespace(inserted_ids=[d["_id"] for d in documents], acknowledged=True)

    async def find_one(
        self, filter: dict[str, Any], projection: dict[str, Any] | None = None
    ) -> dict[str, Any] | None:
        self.database.server.calls.append(("find_one", self.name))
        for doc in self.docs:
            if _matches(doc, filter):
                return _project(doc, projection)
        return None

    def find(
        self,
        filter: dict[str, Any],
        projection: dict[str, Any] | None = None,
        sort: list[tuple[str, int]] | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> FakeCursor:
        self.database.server.calls.append(("find", self.name))
        results = [_project(doc, projection) for doc in self.docs if _matches(doc, filter)]
        for field, direction in reversed(sort or []):
            results.sort(key=lambda d: d.get(field), reverse=direction == -1)
        if skip:
            results = results[skip:]
        if limit:
            results = results[:limit]
        return FakeCursor(results)

    async def count_documents(self, filter: dict[str, Any]) -> int:
        return sum(1 for doc in self.docs if _matches(doc, filter))

    def _upsert(self, filter: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
        new_doc = {
            key: value
            for key, value in filter.items()
            if not key.startswith("$") and not isinstance(value, dict)
        }
        _apply_update(new_doc, update, inserting=True)
        new_doc.setdefault("_id", ObjectId())
        self.docs.append(new_doc)
        return new_doc

    async def _update(
        self, filter: dict[str, Any], update: dict[str, Any], upsert: bool, many: bool
    ) -> SimpleNamespace:
        matched = modified = 0
        upserted_id = None
        for doc in self.docs:
            if _matches(doc, filter):
                matched += 1
                if _apply_update(doc, update):
                    modified += 1
                if not many:
                    break
        if matched == 0 and upsert:
            upserted_id = self._upsert(filter, update)["_id"]
        return SimpleNamespace(
            matched_count=matched,
            modified_count=modified,
            upserted_id=upserted_id,
            acknowledged=True,
        )

    async def update_one(
        self, filter: dict[str, Any], update: dict[str, Any], upsert: bool = False
    ) -> SimpleNamespace:
        self.database.server.calls.append(("update_one", self.name))
        return await self._update(filter, update, upsert, many=False)

    async def update_many(
        self, filter: dict[str, Any], update: dict[str, Any], upsert: bool = False
    ) -> SimpleNamespace:
        self.database.server.calls.append(("update_many", self.name))
        return await self._update(filter, update, upsert, many=True)

    async def find_one_and_update(
        self,
        filter: dict[str, Any],
        update: dict[str, Any],
        projection: dict[str, Any] | None = None,
        upsert: bool = False,
        return_document: bool = ReturnDocument.BEFORE,
    ) -> dict[str, Any] | None:
        self.database.server.calls.append(("find_one_and_update", self.name))
        for doc in self.docs:
            if _matches(doc, filter):
                before = _project(doc, projection)
                _apply_update(doc, update)
                return _project(doc, projection) if return_document else before
        if upsert:
            new_doc = self._upsert(filter, update)
            return _project(new_doc, projection) if return_document else None
        return None

    async def _delete(self, filter: dict[str, Any], many: bool) -> SimpleNamespace:
        kept, deleted = [], 0
        for doc in self.docs:
            if _matches(doc, filter) and (many or deleted == 0):
                deleted += 1
            else:
                kept.append(doc)
        self.docs[:] = kept
        return SimpleNamespace(deleted_count=deleted, acknowledged=True)

    async def delete_one(self, filter: dict[str, Any]) -> SimpleNamespace:
        self.database.server.calls.append(("delete_one", self.name))
        return await self._delete(filter, many=False)

    async def delete_many(self, filter: dict[str, Any]) -> SimpleNamespace:
        self.database.server.calls.append(("delete_many", self.name))
        return await self._delete(filter, many=True)


class FakeDatabase:
    def __init__(self, server: FakeServer, name: str) -> None:
        self.server = server
        self.name = name

    def __getitem__(self, name: str) -> FakeCollection:
        return FakeCollection(self, name)

    async def command(self, command: str) -> dict[str, Any]:
        if not self.server.reachable:
            raise ServerSelectionTimeoutError("localhost:27017: [Errno 111] Connection refused")
        return {"ok": 1.0}


class FakeAsyncMongoClient:
    """In-memory stand-in for pymongo.AsyncMongoClient."""

    def __init__(self, server: FakeServer, uri: str, **options: Any) -> None:
        self.server = server
        self.uri = uri
        self.options = options
        self.close_count = 0
        self.admin = FakeDatabase(server, "admin")

    def __getitem__(self, name: str) -> FakeDatabase:
        return FakeDatabase(self.server, name)

    async def close(self) -> None:
        self.close_count += 1


class FakeServer:
    """Shared state behind every fake client created during a test."""

    def __init__(self) -> None:
        self.data: dict[str, dict[str, list[dict[str, Any]]]] = {}
        self.clients: list[FakeAsyncMongoClient] = []
        self.calls: list[tuple[str, str]] = []
        self.reachable = True

    def client(self, uri: str, **options: Any) -> FakeAsyncMongoClient:
        client = FakeAsyncMongoClient(self, uri, **options)
        self.clients.append(client)
        return client

    def documents(self, database: str, collection: str) -> list[dict[str, Any]]:
        return self.data.get(database, {}).get(collection, [])


@pytest.fixture
def server(monkeypatch: pytest.MonkeyPatch) -> FakeServer:
    """Install the fake driver in place of pymongo.AsyncMongoClient."""
    server = FakeServer()
    monkeypatch.setattr("mongo_facade.client.AsyncMongoClient", server.client)
    return server


@pytest.fixture
async def client(server: FakeServer):
    """Create a connected StoreClient."""
    from mongo_facade import StoreClient

    client = StoreClient("mongodb://localhost:27017/usersdb")
    await client.connect()
    yield client
    await client.close()


@pytest.fixture
async def database(client):
    """Get the usersdb database."""
    return client["usersdb"]


@pytest.fixture
async def collection(database):
    """Get the users collection."""
    return database["users"]


@pytest.fixture
async def seeded(collection):
    """The users collection holding Ivan, Anna and Taras."""
    await collection.insert_many(
        [
            {"name": "Ivan", "age": 25},
            {"name": "Anna", "age": 24},
            {"name": "Taras", "age": 34},
        ]
    )
    return collection
