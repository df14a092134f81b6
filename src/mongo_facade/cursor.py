"""
Cursor - async cursor over the results of a find.

The query is sent on first use (iteration or ``to_list()``) and the
results are held in memory, so a cursor is always finite.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, AsyncIterator, Generic, TypeVar

from .types import ValidationError

if TYPE_CHECKING:
    from .collection import Collection
    from .types import Filter, Projection, Sort

T = TypeVar("T", bound=dict[str, Any])

__all__ = ["Cursor"]


class Cursor(Generic[T]):
    """
    Async cursor for iterating over query results.

    Supports chaining sort, limit and skip before iteration begins.
    Result order is whatever the store returns unless ``sort()`` is used.

    Example:
        async for doc in users.find({"age": 25}):
            print(doc)

        docs = await users.find({}).sort("age", -1).limit(10).to_list()
    """

    __slots__ = (
        "_collection",
        "_filter",
        "_projection",
        "_sort",
        "_limit",
        "_skip",
        "_timeout",
        "_results",
        "_position",
    )

    def __init__(
        self,
        collection: Collection[T],
        filter: Filter | None = None,
        projection: Projection = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize a cursor.

        Args:
            collection: The collection to query.
            filter: Query filter.
            projection: Fields to include/exclude.
            timeout: Deadline in seconds for fetching the results.
        """
        self._collection = collection
        self._filter: Filter = filter or {}
        self._projection: Projection = projection
        self._sort: Sort = None
        self._limit: int = 0
        self._skip: int = 0
        self._timeout = timeout
        self._results: list[T] | None = None
        self._position: int = 0

    def _check_unfetched(self, method: str) -> None:
        if self._results is not None:
            raise ValidationError(f"cannot call {method}() after the cursor has fetched its results")

    def sort(self, key_or_list: str | list[tuple[str, int]], direction: int = 1) -> Cursor[T]:
        """
        Sort the results.

        Args:
            key_or_list: Field name or list of (field, direction) tuples.
            direction: Sort direction (1 for ascending, -1 for descending).
                       Only used if key_or_list is a string.

        Returns:
            Self for chaining.
        """
        self._check_unfetched("sort")
        if isinstance(key_or_list, str):
            self._sort = [(key_or_list, direction)]
        else:
            self._sort = list(key_or_list)
        return self

    def limit(self, limit: int) -> Cursor[T]:
        """Return at most *limit* documents (0 means no limit)."""
        self._check_unfetched("limit")
        self._limit = limit
        return self

    def skip(self, skip: int) -> Cursor[T]:
        """Skip the first *skip* documents."""
        self._check_unfetched("skip")
        self._skip = skip
        return self

    async def _execute(self) -> list[T]:
        if self._results is not None:
            return self._results

        collection = self._collection
        driver = collection._checked_driver("find")
        kwargs: dict[str, Any] = {}
        if self._projection:
            kwargs["projection"] = collection._projection(self._projection)
        if self._sort:
            kwargs["sort"] = self._sort
        if self._limit > 0:
            kwargs["limit"] = self._limit
        if self._skip > 0:
            kwargs["skip"] = self._skip

        with collection._round_trip("find", self._timeout):
            self._results = await driver.find(dict(self._filter), **kwargs).to_list()
        return self._results

    async def to_list(self, length: int | None = None) -> list[T]:
        """
        Fetch all results as a list.

        Args:
            length: Maximum number of documents to return.
                    If None, returns all documents.
        """
        results = await self._execute()
        if length is not None:
            return results[:length]
        return list(results)

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        results = await self._execute()
        if self._position >= len(results):
            raise StopAsyncIteration

        doc = results[self._position]
        self._position += 1
        return doc

    @property
    def alive(self) -> bool:
        """Check if the cursor can still yield documents."""
        return self._results is None or self._position < len(self._results)

    def __repr__(self) -> str:
        return f"Cursor({self._collection.full_name!r}, {dict(self._filter)!r})"
