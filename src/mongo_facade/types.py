"""
Type definitions for mongo-facade.

Provides the document value types, the result objects returned by
insert, update and delete operations, and the error taxonomy raised
by every operation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence, Union

from bson import json_util
from bson.json_util import RELAXED_JSON_OPTIONS

# Document values are a closed set of JSON-like variants. BSON scalars the
# driver round-trips (ObjectId, datetime, Decimal128, bytes) are accepted
# by validation as leaves as well.
Scalar = Union[None, bool, int, float, str]
Value = Union[Scalar, Sequence["Value"], Mapping[str, "Value"]]

Document = Mapping[str, Any]
MutableDocument = dict[str, Any]
Filter = Mapping[str, Any]
Update = Mapping[str, Any]
Projection = Mapping[str, Any] | Sequence[str] | None
Sort = list[tuple[str, int]] | None


@dataclass
class InsertOneResult:
    """
    Result of an insert_one operation.

    Attributes:
        inserted_id: The _id of the inserted document.
        acknowledged: Whether the write was acknowledged.
    """

    inserted_id: Any
    acknowledged: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"acknowledged": self.acknowledged, "insertedId": self.inserted_id}


@dataclass
class InsertManyResult:
    """
    Result of an insert_many operation.

    Attributes:
        inserted_ids: List of _ids of the inserted documents, in input order.
        acknowledged: Whether the write was acknowledged.
    """

    inserted_ids: list[Any] = field(default_factory=list)
    acknowledged: bool = True

    @property
    def inserted_count(self) -> int:
        return len(self.inserted_ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "acknowledged": self.acknowledged,
            "insertedCount": self.inserted_count,
            "insertedIds": {str(i): _id for i, _id in enumerate(self.inserted_ids)},
        }


@dataclass
class UpdateResult:
    """
    Result of an update_one or update_many operation.

    Attributes:
        matched_count: Number of documents matched.
        modified_count: Number of documents modified.
        upserted_id: The _id of the upserted document (if any).
        acknowledged: Whether the write was acknowledged.
    """

    matched_count: int = 0
    modified_count: int = 0
    upserted_id: Any = None
    acknowledged: bool = True

    @property
    def upserted_count(self) -> int:
        return 0 if self.upserted_id is None else 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "acknowledged": self.acknowledged,
            "matchedCount": self.matched_count,
            "modifiedCount": self.modified_count,
            "upsertedCount": self.upserted_count,
            "upsertedId": self.upserted_id,
        }


@dataclass
class DeleteResult:
    """
    Result of a delete_one or delete_many operation.

    Attributes:
        deleted_count: Number of documents deleted.
        acknowledged: Whether the write was acknowledged.
    """

    deleted_count: int = 0
    acknowledged: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"acknowledged": self.acknowledged, "deletedCount": self.deleted_count}


def dumps(value: Any) -> str:
    """
    Serialize a result, document or list of documents to JSON text.

    Result objects are converted with their ``to_dict()``; BSON values
    such as ObjectId and datetime use relaxed extended JSON.
    """
    if hasattr(value, "to_dict"):
        value = value.to_dict()
    return json_util.dumps(value, json_options=RELAXED_JSON_OPTIONS)


class StoreError(Exception):
    """
    Base exception for document store operations.

    Attributes:
        message: Human readable description of the failure.
        operation: Name of the façade operation that failed, if any.
        namespace: Target ``database.collection``, if any.
        code: Server error code, if the store reported one.
    """

    def __init__(
        self,
        message: str,
        code: int | None = None,
        *,
        operation: str | None = None,
        namespace: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.operation = operation
        self.namespace = namespace

    def __str__(self) -> str:
        if self.operation and self.namespace:
            return f"{self.operation} on {self.namespace}: {self.message}"
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class ConnectionError(StoreError):
    """Error raised when the connection cannot be established, is closed, or is lost."""

    pass


class ValidationError(StoreError):
    """Error raised when a document, filter or update spec is malformed."""

    pass


class TimeoutError(StoreError):
    """Error raised when an operation exceeds its deadline.

    Store-side effects of a timed-out write are undefined: it may or may
    not have been committed.
    """

    pass


class WriteError(StoreError):
    """Error raised when the store rejects a write."""

    pass


class DuplicateKeyError(WriteError):
    """Error raised when inserting a document with a duplicate key."""

    pass


class PartialWriteError(WriteError):
    """
    Error raised when a bulk insert was only partially applied.

    Attributes:
        inserted_ids: _ids of the documents that were actually written.
        write_errors: Per-document errors reported by the store.
    """

    def __init__(
        self,
        message: str,
        inserted_ids: Sequence[Any] = (),
        write_errors: Sequence[Mapping[str, Any]] = (),
        code: int | None = None,
        *,
        operation: str | None = None,
        namespace: str | None = None,
    ) -> None:
        super().__init__(message, code, operation=operation, namespace=namespace)
        self.inserted_ids = list(inserted_ids)
        self.write_errors = list(write_errors)

    @property
    def inserted_count(self) -> int:
        return len(self.inserted_ids)
