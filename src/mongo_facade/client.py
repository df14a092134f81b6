"""
StoreClient - connection owner for the document store.

Provides a PyMongo-style client whose single driver connection is opened
by ``connect()`` and released exactly once by ``close()``, with async
context manager support for guaranteed release.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from types import TracebackType
from typing import Any, AsyncIterator
from urllib.parse import unquote, urlsplit

from pymongo import AsyncMongoClient

from .collection import Collection
from .database import Database
from .errors import translating
from .types import ConnectionError, ValidationError
from .validation import validate_timeout

logger = logging.getLogger(__name__)

__all__ = ["StoreClient", "open_collection"]

DEFAULT_URI = "mongodb://localhost:27017"
SCHEMES = ("mongodb", "mongodb+srv")


def _redact(uri: str) -> str:
    """Hide credentials in a connection string for logging."""
    parts = urlsplit(uri)
    if "@" not in parts.netloc:
        return uri
    host = parts.netloc.rsplit("@", 1)[1]
    return parts._replace(netloc=f"***@{host}").geturl()


def _default_database(uri: str) -> str | None:
    path = urlsplit(uri).path.lstrip("/")
    return unquote(path) or None


class StoreClient:
    """
    Document store client owning one driver connection.

    Databases can be accessed using either attribute access or subscript
    notation once connected. A client that has been closed cannot be
    reconnected; create a new one instead.

    Example:
        client = StoreClient("mongodb://127.0.0.1:27017/")
        await client.connect()
        try:
            users = client["usersdb"]["users"]
            result = await users.insert_one({"name": "Ivan", "age": 25})
        finally:
            await client.close()

        # Or use as async context manager
        async with StoreClient("mongodb://localhost:27017/usersdb") as client:
            users = client.get_database()["users"]
            ...
    """

    __slots__ = ("_uri", "_driver", "_connected", "_closed", "_databases", "_options")

    def __init__(
        self,
        uri: str | None = None,
        **options: Any,
    ) -> None:
        """
        Initialize the client without connecting.

        Args:
            uri: Connection URI (e.g., "mongodb://localhost:27017/usersdb").
                 If not provided, uses MONGO_URL environment variable.
            **options: Additional connection options.
                - timeout: Default per-operation timeout in seconds (default: None).
                - server_selection_timeout: Seconds to wait for a reachable
                  server on connect; None means the default (5.0).
                Anything else is passed to pymongo.AsyncMongoClient.

        Raises:
            ValidationError: If the URI scheme is not mongodb or mongodb+srv,
                or a timeout option is invalid.
        """
        self._uri = uri or os.environ.get("MONGO_URL", DEFAULT_URI)
        scheme = urlsplit(self._uri).scheme
        if scheme not in SCHEMES:
            raise ValidationError(
                f"unsupported connection scheme {scheme!r}; expected one of {', '.join(SCHEMES)}"
            )
        validate_timeout(options.get("timeout"))
        validate_timeout(options.get("server_selection_timeout"))
        self._driver: AsyncMongoClient | None = None
        self._connected = False
        self._closed = False
        self._databases: dict[str, Database] = {}
        self._options = options

    @property
    def uri(self) -> str:
        """Get the connection URI."""
        return self._uri

    @property
    def is_connected(self) -> bool:
        """Check if the client is connected."""
        return self._connected

    @property
    def is_closed(self) -> bool:
        """Check if the client has released its connection."""
        return self._closed

    @property
    def default_database(self) -> str | None:
        """Database named in the URI path, if any."""
        return _default_database(self._uri)

    @property
    def timeout(self) -> float | None:
        """Default per-operation timeout in seconds."""
        return self._options.get("timeout")

    def _driver_options(self) -> dict[str, Any]:
        options = {
            key: value
            for key, value in self._options.items()
            if key not in ("timeout", "server_selection_timeout")
        }
        selection = self._options.get("server_selection_timeout")
        if selection is None:
            selection = 5.0
        options.setdefault("serverSelectionTimeoutMS", int(selection * 1000))
        return options

    async def connect(self) -> StoreClient:
        """
        Connect to the document store and verify it responds.

        Returns:
            Self for chaining.

        Raises:
            ConnectionError: If the client was closed or the connection fails.
        """
        if self._closed:
            raise ConnectionError("client has been closed and cannot be reused", operation="connect")
        if self._connected:
            return self

        logger.info("Connecting to %s", _redact(self._uri))
        driver = None
        try:
            with translating("connect"):
                driver = AsyncMongoClient(self._uri, **self._driver_options())
                await driver.admin.command("ping")
        except BaseException:
            if driver is not None:
                await driver.close()
            raise

        self._driver = driver
        self._connected = True
        logger.info("Connected to %s", _redact(self._uri))
        return self

    async def close(self) -> None:
        """Release the connection. Calling it again is a no-op."""
        if self._closed:
            return
        self._closed = True
        self._connected = False
        self._databases.clear()
        driver, self._driver = self._driver, None
        if driver is not None:
            await driver.close()
            logger.info("Closed connection to %s", _redact(self._uri))

    def _ensure_connected(
        self,
        operation: str | None = None,
        namespace: str | None = None,
    ) -> AsyncMongoClient:
        """Return the driver client, or raise if not connected."""
        if self._closed:
            raise ConnectionError(
                "client has been closed", operation=operation, namespace=namespace
            )
        if not self._connected or self._driver is None:
            raise ConnectionError(
                "client is not connected; call connect() first",
                operation=operation,
                namespace=namespace,
            )
        return self._driver

    def __getitem__(self, name: str) -> Database:
        """
        Get a database by name using subscript notation.

        Example:
            db = client["usersdb"]
        """
        driver = self._ensure_connected("get_database")
        if not isinstance(name, str) or not name:
            raise ValidationError("database name must be a non-empty string")

        if name not in self._databases:
            with translating("get_database", name):
                self._databases[name] = Database(driver[name], self, name)
        return self._databases[name]

    def __getattr__(self, name: str) -> Database:
        """
        Get a database by name using attribute access.

        Example:
            db = client.usersdb
        """
        if name.startswith("_"):
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{name}'")

        return self[name]

    def get_database(self, name: str | None = None) -> Database:
        """
        Get a database by name, defaulting to the one named in the URI.

        Raises:
            ValidationError: If no name is given and the URI names none.
        """
        name = name or self.default_database
        if name is None:
            raise ValidationError("no database name given and none in the connection URI")
        return self[name]

    async def __aenter__(self) -> StoreClient:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    def __repr__(self) -> str:
        if self._closed:
            status = "closed"
        else:
            status = "connected" if self._connected else "disconnected"
        return f"StoreClient({_redact(self._uri)!r}, {status})"


@asynccontextmanager
async def open_collection(
    uri: str | None,
    database: str | None,
    collection: str,
    **options: Any,
) -> AsyncIterator[Collection[Any]]:
    """
    Connect, yield one collection, and always release the connection.

    Example:
        async with open_collection("mongodb://localhost:27017", "usersdb", "users") as users:
            print(await users.find_one({"age": 25}))
    """
    client = StoreClient(uri, **options)
    await client.connect()
    try:
        yield client.get_database(database)[collection]
    finally:
        await client.close()
