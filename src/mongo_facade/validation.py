"""
Structural validation for documents, filters and update specifications.

Every check runs before the driver is called, so a malformed argument
never costs a round trip and always surfaces as ValidationError.
"""

from __future__ import annotations

import datetime
import decimal
import re
from typing import Any, Mapping, Sequence

from bson import Decimal128, ObjectId
from bson.regex import Regex

from .types import ValidationError

__all__ = [
    "UPDATE_OPERATORS",
    "validate_document",
    "validate_documents",
    "validate_filter",
    "validate_timeout",
    "validate_update",
]

UPDATE_OPERATORS = frozenset(
    {
        "$set",
        "$unset",
        "$inc",
        "$mul",
        "$min",
        "$max",
        "$rename",
        "$push",
        "$pull",
        "$addToSet",
        "$pop",
        "$currentDate",
        "$setOnInsert",
    }
)

_LEAF_TYPES = (
    bool,
    int,
    float,
    str,
    bytes,
    datetime.datetime,
    decimal.Decimal,
    Decimal128,
    ObjectId,
    Regex,
    re.Pattern,
)


def _check_value(value: Any, path: str) -> None:
    if value is None or isinstance(value, _LEAF_TYPES):
        return
    if isinstance(value, Mapping):
        for key, item in value.items():
            if not isinstance(key, str):
                raise ValidationError(f"key {key!r} at {path or '<root>'} is not a string")
            _check_value(item, f"{path}.{key}" if path else key)
        return
    if isinstance(value, Sequence):
        for index, item in enumerate(value):
            _check_value(item, f"{path}.{index}")
        return
    raise ValidationError(f"unsupported value of type {type(value).__name__} at {path}")


def validate_document(document: Any) -> None:
    """
    Check that *document* is a mapping of string keys to document values.

    Top-level field names may not start with ``$``.

    Raises:
        ValidationError: If the document is malformed.
    """
    if not isinstance(document, Mapping):
        raise ValidationError(f"document must be a mapping, got {type(document).__name__}")
    for key in document:
        if isinstance(key, str) and key.startswith("$"):
            raise ValidationError(f"field name {key!r} may not start with '$'")
    _check_value(document, "")


def validate_documents(documents: Any) -> None:
    """Check a non-empty sequence of documents for insert_many."""
    if isinstance(documents, (str, bytes, Mapping)) or not isinstance(documents, Sequence):
        raise ValidationError("documents must be a sequence of mappings")
    if not documents:
        raise ValidationError("documents must not be empty")
    for index, document in enumerate(documents):
        try:
            validate_document(document)
        except ValidationError as e:
            raise ValidationError(f"document {index}: {e.message}") from e


def validate_filter(filter: Any) -> None:
    """
    Check that *filter* is a mapping usable as a predicate.

    ``None`` is accepted and means "match everything". Operator keys
    (``$and``, ``$gt`` ...) are passed through to the store unchecked.
    """
    if filter is None:
        return
    if not isinstance(filter, Mapping):
        raise ValidationError(f"filter must be a mapping, got {type(filter).__name__}")
    _check_value(filter, "")


def validate_update(update: Any) -> None:
    """
    Check an update specification.

    It must be a non-empty mapping whose keys are all supported update
    operators, each mapping field names to values.
    """
    if not isinstance(update, Mapping):
        raise ValidationError(f"update must be a mapping, got {type(update).__name__}")
    if not update:
        raise ValidationError("update must not be empty")
    for op, fields in update.items():
        if op not in UPDATE_OPERATORS:
            if isinstance(op, str) and not op.startswith("$"):
                raise ValidationError(
                    f"update key {op!r} is not an operator; wrap fields in '$set'"
                )
            raise ValidationError(f"unsupported update operator {op!r}")
        if not isinstance(fields, Mapping) or not fields:
            raise ValidationError(f"{op} requires a non-empty mapping of fields")
        _check_value(fields, op)


def validate_timeout(timeout: Any) -> None:
    """Check an optional per-call timeout in seconds."""
    if timeout is None:
        return
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ValidationError(f"timeout must be a positive number of seconds, got {timeout!r}")
