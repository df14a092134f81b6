"""
Translation of driver failures into the mongo-facade error taxonomy.

Every driver call made by the client, database and collection classes
runs inside ``translating()``, so callers only ever see StoreError
subclasses. The original driver exception is kept as ``__cause__``.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

from bson.errors import BSONError
from pymongo import errors as driver_errors

from .types import (
    ConnectionError,
    DuplicateKeyError,
    PartialWriteError,
    StoreError,
    TimeoutError,
    ValidationError,
    WriteError,
)

logger = logging.getLogger(__name__)

__all__ = ["partial_write_error", "translate_error", "translating"]


def _message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def translate_error(
    exc: BaseException,
    operation: str | None = None,
    namespace: str | None = None,
    *,
    write: bool = False,
    timed: bool = False,
) -> StoreError:
    """
    Map a driver exception onto the matching StoreError subclass.

    Args:
        exc: Exception raised by pymongo or bson.
        operation: Name of the façade operation.
        namespace: Target ``database.collection``.
        write: Whether the operation writes; server-side failures of a
               write become WriteError, of a read the base StoreError.
        timed: Whether a deadline was active; server selection running
               out under one is a TimeoutError, otherwise ConnectionError.
    """
    context: dict[str, Any] = {"operation": operation, "namespace": namespace}
    code = getattr(exc, "code", None)
    message = _message(exc)

    if isinstance(exc, driver_errors.DuplicateKeyError):
        return DuplicateKeyError(message, code, **context)
    if isinstance(exc, (driver_errors.ExecutionTimeout, driver_errors.WTimeoutError)):
        return TimeoutError(message, code, **context)
    if isinstance(exc, driver_errors.ServerSelectionTimeoutError):
        if timed:
            return TimeoutError(f"deadline exceeded selecting a server: {message}", **context)
        return ConnectionError(f"no reachable server: {message}", **context)
    if isinstance(exc, driver_errors.NetworkTimeout):
        return TimeoutError(message, **context)
    if isinstance(exc, driver_errors.ConnectionFailure):
        return ConnectionError(message, **context)
    if isinstance(exc, driver_errors.InvalidName):
        return ValidationError(message, **context)
    if isinstance(exc, driver_errors.ConfigurationError):
        return ConnectionError(f"invalid connection settings: {message}", **context)
    if isinstance(exc, (BSONError, driver_errors.InvalidOperation)):
        return ValidationError(message, **context)
    if isinstance(exc, (driver_errors.WriteError, driver_errors.WriteConcernError)):
        return WriteError(message, code, **context)
    if isinstance(exc, driver_errors.OperationFailure) and write:
        return WriteError(message, code, **context)
    return StoreError(message, code, **context)


def partial_write_error(
    exc: driver_errors.BulkWriteError,
    ids: Sequence[Any],
    ordered: bool,
    operation: str | None = None,
    namespace: str | None = None,
) -> PartialWriteError:
    """
    Build a PartialWriteError from a failed bulk insert.

    Args:
        exc: The driver's BulkWriteError.
        ids: The _ids of every document that was submitted, in order.
        ordered: Whether the insert stopped at the first failure.
    """
    details = exc.details or {}
    write_errors = list(details.get("writeErrors", []))
    if ordered:
        inserted = list(ids[: details.get("nInserted", 0)])
    else:
        failed = {error.get("index") for error in write_errors}
        inserted = [_id for index, _id in enumerate(ids) if index not in failed]

    first = write_errors[0].get("errmsg", "") if write_errors else _message(exc)
    message = f"{len(inserted)} of {len(ids)} documents inserted: {first}"
    return PartialWriteError(
        message,
        inserted_ids=inserted,
        write_errors=write_errors,
        code=exc.code,
        operation=operation,
        namespace=namespace,
    )


@contextmanager
def translating(
    operation: str,
    namespace: str | None = None,
    *,
    write: bool = False,
    timed: bool = False,
) -> Iterator[None]:
    """Re-raise driver exceptions from the enclosed block as StoreError."""
    try:
        yield
    except (driver_errors.PyMongoError, BSONError) as e:
        error = translate_error(e, operation, namespace, write=write, timed=timed)
        logger.warning("%s failed: %s", type(error).__name__, error)
        raise error from e
