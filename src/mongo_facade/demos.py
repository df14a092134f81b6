"""
Single-call demos against ``usersdb.users``.

Each demo connects, performs one operation, prints the result as JSON
and disconnects, whatever happens in between.

Usage:
    mongo-facade-demo insert-many --uri mongodb://127.0.0.1:27017/
    mongo-facade-demo find-one --debug
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import Any, Awaitable, Callable

from .client import DEFAULT_URI, open_collection
from .collection import Collection
from .types import StoreError, dumps

logger = logging.getLogger(__name__)

__all__ = ["DEMOS", "main", "run_demo", "setup_logging"]

Demo = Callable[[Collection[Any]], Awaitable[Any]]


async def insert_one(users: Collection[Any]) -> Any:
    return await users.insert_one({"name": "Ivan", "age": 25})


async def insert_many(users: Collection[Any]) -> Any:
    return await users.insert_many(
        [
            {"name": "Ivan", "age": 25},
            {"name": "Anna", "age": 24},
            {"name": "Taras", "age": 34},
        ]
    )


async def find(users: Collection[Any]) -> Any:
    return await users.find({"name": "Anna", "age": 24}).to_list()


async def find_one(users: Collection[Any]) -> Any:
    return await users.find_one({"age": 25})


async def update_one(users: Collection[Any]) -> Any:
    return await users.update_one({"age": 34}, {"$set": {"age": 35}}, upsert=True)


async def find_one_and_update(users: Collection[Any]) -> Any:
    return await users.find_one_and_update(
        {"name": "Taras"}, {"$set": {"age": 45}}, return_updated=True
    )


async def delete_many(users: Collection[Any]) -> Any:
    return await users.delete_many({"name": "Ivan"})


DEMOS: dict[str, Demo] = {
    "insert-one": insert_one,
    "insert-many": insert_many,
    "find": find,
    "find-one": find_one,
    "update-one": update_one,
    "find-one-and-update": find_one_and_update,
    "delete-many": delete_many,
}


async def run_demo(
    name: str,
    uri: str | None = None,
    database: str = "usersdb",
    collection: str = "users",
    **options: Any,
) -> int:
    """
    Run one demo and print its JSON result.

    Returns:
        Process exit status: 0 on success, 1 if the store raised.
    """
    demo = DEMOS[name]
    try:
        async with open_collection(uri, database, collection, **options) as users:
            result = await demo(users)
    except StoreError as e:
        logger.error("%s failed: %s", name, e)
        return 1

    print(dumps(result))
    return 0


def setup_logging(debug: bool = False) -> None:
    """Configure root logging for the demo command."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="mongo-facade-demo",
        description="Run one CRUD call against a document store and print the result.",
    )
    parser.add_argument("demo", choices=sorted(DEMOS))
    parser.add_argument(
        "--uri",
        default=os.environ.get("MONGO_URL", DEFAULT_URI),
        help="connection string (default: $MONGO_URL or %(default)s)",
    )
    parser.add_argument("--database", default="usersdb")
    parser.add_argument("--collection", default="users")
    parser.add_argument("--timeout", type=float, default=None, help="per-call timeout in seconds")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    args = parser.parse_args(argv)

    setup_logging(args.debug)
    return asyncio.run(
        run_demo(
            args.demo,
            args.uri,
            args.database,
            args.collection,
            timeout=args.timeout,
        )
    )


if __name__ == "__main__":
    sys.exit(main())
