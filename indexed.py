"""
Eagerly indexed collection with unique secondary indexes.
"""

from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

from common import (
    DuplicateIndexError,
    InvalidIndexValueError,
    TypeMismatchError,
    adapt_callback,
    describe_kind,
    get_logger,
)
from lazy import LazyCollection
from validators import TypeValidator

logger = get_logger("indexed")

IndexValue = Union[str, int]


def _is_index_value(value: Any) -> bool:
    return isinstance(value, (str, int)) and not isinstance(value, bool)


def _same_item(left: Any, right: Any) -> bool:
    return left is right or (type(left) is type(right) and left == right)


class IndexedCollection:
    """
    Ordered in-memory collection with named secondary indexes.

    Items are appended with ``add(item, {"index_name": value})``; each index
    value must be unique within its index and can later be looked up with
    ``get_by``. Set ``item_type`` on a subclass to validate items on insert.
    """

    item_type: Optional[Union[str, type]] = None

    def __init__(self, items: Optional[List[Any]] = None):
        self._items: Dict[int, Any] = {}     # position -> item, in order
        self._indexes: Dict[str, Dict[IndexValue, int]] = {}
        self._next_position = 0
        self._validator = TypeValidator.for_type(self.item_type) if self.item_type else None
        for item in items or []:
            self.add(item)

    def add(self, item: Any, indexes: Optional[Mapping[str, IndexValue]] = None) -> None:
        if self._validator is not None and not self._validator(item):
            raise TypeMismatchError(type(self).__qualname__, self._validator.type_name, describe_kind(item))

        indexes = dict(indexes or {})
        # check every index before touching state so a failed add changes nothing
        for name, value in indexes.items():
            self._assert_index_value_valid(value)
            if value in self._indexes.get(name, {}):
                raise DuplicateIndexError(name, value)

        position = self._next_position
        self._next_position += 1
        self._items[position] = item
        for name, value in indexes.items():
            self._indexes.setdefault(name, {})[value] = position

    def remove(self, item: Any) -> bool:
        for position, value in self._items.items():
            if _same_item(item, value):
                self._discard(position)
                return True
        return False

    def has(self, item: Any) -> bool:
        return item in self._items.values()

    def get_by(self, index_name: str, index_value, default=None):
        """
        Look up items by a secondary index.

        A single value returns the item or ``default``; a list of values
        returns the items found for its distinct values, in request order.
        """
        index = self._indexes.get(index_name)
        if not index:
            return default

        if isinstance(index_value, (list, tuple, set, frozenset)):
            for value in index_value:
                self._assert_index_value_valid(value)
            found = []
            for value in dict.fromkeys(index_value):
                if value in index:
                    found.append(self._items[index[value]])
            return found

        self._assert_index_value_valid(index_value, "Index value must be string, integer or a list of them")
        if index_value in index:
            return self._items[index[index_value]]
        return default

    def reverse(self) -> None:
        self._items = dict(reversed(list(self._items.items())))

    def each(self, callback: Callable) -> None:
        """Call ``callback(item, position)`` per item; returning False stops."""
        callback = adapt_callback(callback)
        for position, item in list(self._items.items()):
            if callback(item, position) is False:
                break

    def first(self):
        for item in self._items.values():
            return item
        return None

    def last(self):
        for item in reversed(self._items.values()):
            return item
        return None

    def pop(self):
        if not self._items:
            return None
        position = next(reversed(self._items))
        return self._discard(position)

    def shift(self):
        if not self._items:
            return None
        position = next(iter(self._items))
        return self._discard(position)

    def clear(self) -> None:
        self._items = {}
        self._indexes = {}

    def count(self) -> int:
        return len(self._items)

    def to_list(self) -> List[Any]:
        return list(self._items.values())

    def to_lazy(self, use_cache: bool = False) -> LazyCollection:
        return LazyCollection(self.to_list(), use_cache)

    def index_names(self) -> List[str]:
        return list(self._indexes)

    def __len__(self):
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._items.values()))

    def __contains__(self, item):
        return self.has(item)

    def __repr__(self):
        return f"<{type(self).__name__} items={len(self._items)} indexes={self.index_names()}>"

    # --------- helpers ----------
    def _discard(self, position: int):
        item = self._items.pop(position)
        for name in list(self._indexes):
            index = self._indexes[name]
            for value in [v for v, p in index.items() if p == position]:
                del index[value]
            if not index:
                del self._indexes[name]
        logger.debug("Removed item at position %d", position)
        return item

    @staticmethod
    def _assert_index_value_valid(value: Any, message: Optional[str] = None) -> None:
        if not _is_index_value(value):
            raise InvalidIndexValueError(message or f"Index value must be string or integer, {describe_kind(value)} given")
