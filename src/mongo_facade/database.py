"""
Database - named logical database inside the document store.

Provides collection access by name. Databases are created by the store
on first write, so obtaining one never performs a round trip.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from .collection import Collection
from .errors import translating
from .types import ValidationError

if TYPE_CHECKING:
    from pymongo.asynchronous.database import AsyncDatabase

    from .client import StoreClient

T = TypeVar("T", bound=dict[str, Any])

__all__ = ["Database"]


class Database:
    """
    Document store database.

    Collections can be accessed using either attribute access or
    subscript notation.

    Example:
        db = client["usersdb"]

        users = db.users
        users = db["users"]
    """

    __slots__ = ("_driver", "_client", "_name", "_collections")

    def __init__(
        self,
        driver: AsyncDatabase,
        client: StoreClient,
        name: str,
    ) -> None:
        """
        Initialize a database.

        Args:
            driver: The driver database handle.
            client: Parent StoreClient instance.
            name: Database name.
        """
        self._driver = driver
        self._client = client
        self._name = name
        self._collections: dict[str, Collection[Any]] = {}

    @property
    def name(self) -> str:
        """Get the database name."""
        return self._name

    @property
    def client(self) -> StoreClient:
        """Get the parent client."""
        return self._client

    def __getitem__(self, name: str) -> Collection[Any]:
        """
        Get a collection by name using subscript notation.

        Example:
            users = db["users"]
        """
        return self.get_collection(name)

    def __getattr__(self, name: str) -> Collection[Any]:
        """
        Get a collection by name using attribute access.

        Example:
            users = db.users
        """
        if name.startswith("_"):
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{name}'")

        return self[name]

    def get_collection(
        self,
        name: str,
        document_class: type[T] | None = None,
    ) -> Collection[T]:
        """
        Get a collection, optionally typed for static checking.

        Args:
            name: Collection name.
            document_class: Optional document type for type hints.

        Example:
            from typing import TypedDict

            class User(TypedDict):
                name: str
                age: int

            users = db.get_collection("users", User)
            user: User | None = await users.find_one({"age": 25})
        """
        if not isinstance(name, str) or not name:
            raise ValidationError("collection name must be a non-empty string")

        if name not in self._collections:
            with translating("get_collection", f"{self._name}.{name}"):
                self._collections[name] = Collection(self._driver[name], self, name)
        return self._collections[name]  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"Database({self._name!r})"
