"""
mongo-facade - typed async CRUD facade over a MongoDB document store.

This package wraps the pymongo async driver behind a small surface:
- One client owns one connection, released exactly once
- Insert, find, update and delete against a named collection
- Plain result objects that serialize to JSON
- A typed error taxonomy instead of raw driver exceptions

Example usage:
    from mongo_facade import StoreClient

    async def main():
        async with StoreClient("mongodb://127.0.0.1:27017/") as client:
            users = client["usersdb"]["users"]

            result = await users.insert_many([
                {"name": "Ivan", "age": 25},
                {"name": "Anna", "age": 24},
                {"name": "Taras", "age": 34},
            ])
            print(result.inserted_ids)

            print(await users.find_one({"age": 25}))

            async for user in users.find({"name": "Anna", "age": 24}):
                print(user)

            await users.update_one({"age": 34}, {"$set": {"age": 35}}, upsert=True)
            await users.delete_many({"name": "Ivan"})

    import asyncio
    asyncio.run(main())
"""

from __future__ import annotations

__version__ = "0.1.0"

from .client import StoreClient, open_collection
from .collection import Collection
from .cursor import Cursor
from .database import Database
from .types import (
    ConnectionError,
    DeleteResult,
    Document,
    DuplicateKeyError,
    InsertManyResult,
    InsertOneResult,
    PartialWriteError,
    StoreError,
    TimeoutError,
    UpdateResult,
    ValidationError,
    Value,
    WriteError,
    dumps,
)

__all__ = [
    # Main classes
    "StoreClient",
    "Database",
    "Collection",
    "Cursor",
    "open_collection",
    # Result types
    "InsertOneResult",
    "InsertManyResult",
    "UpdateResult",
    "DeleteResult",
    "Document",
    "Value",
    "dumps",
    # Exceptions
    "StoreError",
    "ConnectionError",
    "ValidationError",
    "TimeoutError",
    "WriteError",
    "DuplicateKeyError",
    "PartialWriteError",
    # Version
    "__version__",
]
