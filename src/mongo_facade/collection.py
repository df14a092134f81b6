"""
Collection - CRUD operations against one named collection.

Each operation validates its arguments, performs exactly one driver
round trip and returns a plain result object. Nothing is retried.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Generic, Iterator, Sequence, TypeVar

import pymongo
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo import errors as driver_errors

from .cursor import Cursor
from .errors import partial_write_error, translating
from .types import (
    DeleteResult,
    InsertManyResult,
    InsertOneResult,
    UpdateResult,
)
from .validation import (
    validate_document,
    validate_documents,
    validate_filter,
    validate_timeout,
    validate_update,
)

if TYPE_CHECKING:
    from pymongo.asynchronous.collection import AsyncCollection

    from .database import Database
    from .types import Document, Filter, Projection, Update

T = TypeVar("T", bound=dict[str, Any])

logger = logging.getLogger(__name__)

__all__ = ["Collection"]


class Collection(Generic[T]):
    """
    Document store collection with async CRUD operations.

    Every operation accepts an optional ``timeout`` in seconds; when it
    is exceeded TimeoutError is raised and the store-side effect of a
    write is undefined.

    Example:
        users = db["users"]

        # Insert
        result = await users.insert_one({"name": "Ivan", "age": 25})
        print(result.inserted_id)

        # Find
        user = await users.find_one({"age": 25})
        async for user in users.find({"name": "Anna"}):
            print(user)

        # Update
        await users.update_one({"age": 34}, {"$set": {"age": 35}}, upsert=True)

        # Delete
        await users.delete_many({"name": "Ivan"})
    """

    __slots__ = ("_driver", "_database", "_name", "_full_name")

    def __init__(
        self,
        driver: AsyncCollection,
        database: Database,
        name: str,
    ) -> None:
        """
        Initialize a collection.

        Args:
            driver: The driver collection handle.
            database: Parent database instance.
            name: Collection name.
        """
        self._driver = driver
        self._database = database
        self._name = name
        self._full_name = f"{database.name}.{name}"

    @property
    def name(self) -> str:
        """Get the collection name."""
        return self._name

    @property
    def full_name(self) -> str:
        """Get the full collection name (database.collection)."""
        return self._full_name

    @property
    def database(self) -> Database:
        """Get the parent database."""
        return self._database

    def _checked_driver(self, operation: str) -> AsyncCollection:
        """Return the driver collection if the owning client is still connected."""
        self._database.client._ensure_connected(operation, self._full_name)
        return self._driver

    @contextmanager
    def _round_trip(
        self,
        operation: str,
        timeout: float | None,
        *,
        write: bool = False,
    ) -> Iterator[None]:
        """Run one driver call under the effective deadline, translating failures."""
        if timeout is None:
            timeout = self._database.client.timeout
        with translating(operation, self._full_name, write=write, timed=timeout is not None):
            if timeout is None:
                yield
            else:
                with pymongo.timeout(timeout):
                    yield

    @staticmethod
    def _projection(projection: Projection) -> dict[str, Any] | None:
        if not projection:
            return None
        if isinstance(projection, (list, tuple)):
            return {field: 1 for field in projection}
        return dict(projection)  # type: ignore[arg-type]

    @staticmethod
    def _with_id(document: Document) -> dict[str, Any]:
        """Copy *document*, assigning a fresh ObjectId if it has no _id."""
        doc = dict(document)
        if "_id" not in doc:
            doc["_id"] = ObjectId()
        return doc

    async def insert_one(
        self,
        document: T,
        *,
        timeout: float | None = None,
    ) -> InsertOneResult:
        """
        Insert a single document.

        The caller's mapping is not modified. Inserting the same document
        twice stores it twice unless it carries an explicit ``_id``.

        Args:
            document: The document to insert.
            timeout: Deadline in seconds.

        Returns:
            InsertOneResult with the inserted ID.

        Raises:
            ValidationError: If the document is malformed.
            DuplicateKeyError: If a unique key (e.g. _id) already exists.
            WriteError: If the store rejects the insert.
        """
        validate_document(document)
        validate_timeout(timeout)
        doc = self._with_id(document)
        driver = self._checked_driver("insert_one")

        logger.debug("insert_one into %s", self._full_name)
        with self._round_trip("insert_one", timeout, write=True):
            result = await driver.insert_one(doc)

        return InsertOneResult(inserted_id=doc["_id"], acknowledged=result.acknowledged)

    async def insert_many(
        self,
        documents: Sequence[T],
        ordered: bool = True,
        *,
        timeout: float | None = None,
    ) -> InsertManyResult:
        """
        Insert multiple documents.

        Args:
            documents: Non-empty sequence of documents to insert.
            ordered: If True, stop on first error. If False, continue.
            timeout: Deadline in seconds.

        Returns:
            InsertManyResult with the inserted IDs in input order.

        Raises:
            ValidationError: If the sequence is empty or a document is malformed.
            PartialWriteError: If only some documents were written. Its
                ``inserted_ids`` lists the documents that were.
        """
        validate_documents(documents)
        validate_timeout(timeout)
        docs = [self._with_id(document) for document in documents]
        ids = [doc["_id"] for doc in docs]
        driver = self._checked_driver("insert_many")

        logger.debug("insert_many of %d documents into %s", len(docs), self._full_name)
        with self._round_trip("insert_many", timeout, write=True):
            try:
                result = await driver.insert_many(docs, ordered=ordered)
            except driver_errors.BulkWriteError as e:
                error = partial_write_error(e, ids, ordered, "insert_many", self._full_name)
                logger.warning("PartialWriteError: %s", error)
                raise error from e

        return InsertManyResult(inserted_ids=ids, acknowledged=result.acknowledged)

    async def find_one(
        self,
        filter: Filter | None = None,
        projection: Projection = None,
        *,
        timeout: float | None = None,
    ) -> T | None:
        """
        Find a single document.

        Args:
            filter: Query filter; None or {} matches every document.
            projection: Fields to include/exclude.
            timeout: Deadline in seconds.

        Returns:
            The first matching document, or None if nothing matches.
        """
        validate_filter(filter)
        validate_timeout(timeout)
        driver = self._checked_driver("find_one")

        logger.debug("find_one in %s", self._full_name)
        with self._round_trip("find_one", timeout):
            return await driver.find_one(
                dict(filter or {}), projection=self._projection(projection)
            )

    def find(
        self,
        filter: Filter | None = None,
        projection: Projection = None,
        *,
        timeout: float | None = None,
    ) -> Cursor[T]:
        """
        Find documents matching the filter.

        Nothing is sent to the store until the cursor is iterated.

        Args:
            filter: Query filter; None or {} matches every document.
            projection: Fields to include/exclude.
            timeout: Deadline in seconds for fetching the results.

        Returns:
            Cursor for iterating over results.

        Example:
            async for doc in users.find({"name": "Anna", "age": 24}):
                print(doc)

            docs = await users.find({}).sort("age").limit(10).to_list()
        """
        validate_filter(filter)
        validate_timeout(timeout)
        return Cursor[T](self, filter, projection, timeout)

    async def count_documents(
        self,
        filter: Filter | None = None,
        *,
        timeout: float | None = None,
    ) -> int:
        """Count documents matching the filter."""
        validate_filter(filter)
        validate_timeout(timeout)
        driver = self._checked_driver("count_documents")

        with self._round_trip("count_documents", timeout):
            return await driver.count_documents(dict(filter or {}))

    async def _update(
        self,
        operation: str,
        filter: Filter,
        update: Update,
        upsert: bool,
        timeout: float | None,
    ) -> UpdateResult:
        validate_filter(filter)
        validate_update(update)
        validate_timeout(timeout)
        driver = self._checked_driver(operation)
        method = getattr(driver, operation)

        logger.debug("%s in %s (upsert=%s)", operation, self._full_name, upsert)
        with self._round_trip(operation, timeout, write=True):
            result = await method(dict(filter or {}), dict(update), upsert=upsert)

        if not result.acknowledged:
            return UpdateResult(acknowledged=False)
        return UpdateResult(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
            upserted_id=result.upserted_id,
        )

    async def update_one(
        self,
        filter: Filter,
        update: Update,
        upsert: bool = False,
        *,
        timeout: float | None = None,
    ) -> UpdateResult:
        """
        Update the first document matching the filter.

        Args:
            filter: Query filter to match the document.
            update: Update operators ($set, $unset, $inc, etc.).
            upsert: If True and nothing matches, insert a document built
                    from the filter's equality fields plus the update.
            timeout: Deadline in seconds.

        Returns:
            UpdateResult with match/modify counts and the upserted _id.

        Raises:
            ValidationError: If the filter or update is malformed.
            WriteError: If the update fails.
        """
        return await self._update("update_one", filter, update, upsert, timeout)

    async def update_many(
        self,
        filter: Filter,
        update: Update,
        upsert: bool = False,
        *,
        timeout: float | None = None,
    ) -> UpdateResult:
        """Update every document matching the filter."""
        return await self._update("update_many", filter, update, upsert, timeout)

    async def find_one_and_update(
        self,
        filter: Filter,
        update: Update,
        return_updated: bool = False,
        upsert: bool = False,
        projection: Projection = None,
        *,
        timeout: float | None = None,
    ) -> T | None:
        """
        Atomically update the first matching document and return it.

        Args:
            filter: Query filter to match the document.
            update: Update operators.
            return_updated: Return the document after the update instead
                            of before it.
            upsert: If True and nothing matches, insert a new document.
            projection: Fields to include/exclude in the returned document.
            timeout: Deadline in seconds.

        Returns:
            The pre- or post-update snapshot, or None if nothing matched
            and no document was upserted.
        """
        validate_filter(filter)
        validate_update(update)
        validate_timeout(timeout)
        driver = self._checked_driver("find_one_and_update")
        return_document = ReturnDocument.AFTER if return_updated else ReturnDocument.BEFORE

        logger.debug("find_one_and_update in %s", self._full_name)
        with self._round_trip("find_one_and_update", timeout, write=True):
            return await driver.find_one_and_update(
                dict(filter or {}),
                dict(update),
                projection=self._projection(projection),
                upsert=upsert,
                return_document=return_document,
            )

    async def _delete(self, operation: str, filter: Filter, timeout: float | None) -> DeleteResult:
        validate_filter(filter)
        validate_timeout(timeout)
        driver = self._checked_driver(operation)
        method = getattr(driver, operation)

        logger.debug("%s in %s", operation, self._full_name)
        with self._round_trip(operation, timeout, write=True):
            result = await method(dict(filter or {}))

        if not result.acknowledged:
            return DeleteResult(acknowledged=False)
        return DeleteResult(deleted_count=result.deleted_count)

    async def delete_one(
        self,
        filter: Filter,
        *,
        timeout: float | None = None,
    ) -> DeleteResult:
        """Delete the first document matching the filter."""
        return await self._delete("delete_one", filter, timeout)

    async def delete_many(
        self,
        filter: Filter,
        *,
        timeout: float | None = None,
    ) -> DeleteResult:
        """
        Delete every document matching the filter.

        Deleting nothing is not an error; ``deleted_count`` is then 0.

        Args:
            filter: Query filter to match documents; {} deletes everything.
            timeout: Deadline in seconds.

        Returns:
            DeleteResult with the deleted count.
        """
        return await self._delete("delete_many", filter, timeout)

    def __repr__(self) -> str:
        return f"Collection({self._full_name!r})"
