import functools
import itertools
from collections.abc import Iterable, Iterator, Mapping
from functools import reduce as builtin_reduce
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

from caching import CachingIterator
from common import (
    PRIMITIVE_KEY_TYPES,
    InvalidProducerResultError,
    InvalidSourceError,
    accepts_argument,
    adapt_callback,
    describe_kind,
    get_logger,
    keys_match,
)

logger = get_logger("lazy")

_NOTHING = object()


def resolve_producer(source, node=None) -> Iterator[Tuple[Hashable, Any]]:
    """
    Turn a collection source into a one-shot ``(key, value)`` producer.

    Iterators are used as they are, callables are invoked (with ``node`` when
    they take an argument) and must return an iterator, collections and
    mappings are adapted. Text is rejected rather than split into characters.
    """
    if isinstance(source, Iterator):
        return source

    if isinstance(source, LazyCollection):
        return source.items()

    if callable(source):
        produced = source(node) if accepts_argument(source) else source()
        if not isinstance(produced, Iterator):
            raise InvalidProducerResultError(
                f"Callable source must return an iterator, {describe_kind(produced)} given"
            )
        return produced

    if isinstance(source, Mapping):
        return iter(source.items())

    if isinstance(source, Iterable) and not isinstance(source, (str, bytes)):
        return enumerate(source)

    raise InvalidSourceError(
        f"Collection source is not of the supported types, {describe_kind(source)} given"
    )


class LazyCollection:
    """
    A chainable, lazy collection of ``(key, value)`` pairs.

    Transformations return new collections whose producers pull from their
    predecessor only when iterated. With ``use_cache`` the first iteration
    wraps the producer in a ``CachingIterator`` kept on the collection, so a
    one-shot source can be counted and traversed any number of times.

    Without caching every terminal call resolves the source again, which
    re-runs callable sources (and their side effects).
    """

    def __init__(self, source, use_cache: bool = False, previous: Optional["LazyCollection"] = None):
        self._source = source
        self._use_cache = use_cache
        self._cached: Optional[CachingIterator] = None
        self._previous = previous    # provenance only, never iterated

    @classmethod
    def create(cls, source, use_cache: bool = False) -> "LazyCollection":
        return cls(source, use_cache)

    @classmethod
    def empty(cls) -> "LazyCollection":
        return cls.create([])

    @property
    def use_cache(self) -> bool:
        return self._use_cache

    @property
    def previous(self) -> Optional["LazyCollection"]:
        return self._previous

    @property
    def is_cached(self) -> bool:
        """Whether a memoized iterator already backs this collection."""
        return self._cached is not None

    def lineage(self):
        """Yield this collection and its predecessors, newest first."""
        node = self
        while node is not None:
            yield node
            node = node._previous

    # --------- chainable operators (lazy) ----------
    def filter(self, predicate: Optional[Callable] = None) -> "LazyCollection":
        if predicate is None:
            predicate = lambda value, key: bool(value)
        return self._derive(_filtered, adapt_callback(predicate))

    def map(self, fn: Callable, recursive: bool = False) -> "LazyCollection":
        return self._derive(_mapped, adapt_callback(fn), recursive)

    def key_by(self, fn: Callable) -> "LazyCollection":
        return self._derive(_keyed_by, adapt_callback(fn))

    def keys(self) -> "LazyCollection":
        return self._derive(_keys_of)

    def values(self) -> "LazyCollection":
        return self._derive(_values_of)

    def skip(self, n: int) -> "LazyCollection":
        return self._derive(_skipped, int(n))

    def take(self, n: int) -> "LazyCollection":
        return self._derive(_taken, int(n))

    def chunk(self, size: int) -> "LazyCollection":
        size = int(size)
        if size < 1:
            raise ValueError("Chunk size must be >= 1")
        return self._derive(_chunked, size)

    def batch(self, size: int) -> "LazyCollection":
        """Alias for chunk()"""
        return self.chunk(size)

    def page(self, page_number: int, page_size: int) -> "LazyCollection":
        """Get a specific page of results (1-indexed)"""
        if page_number < 1:
            raise ValueError("Page number must be >= 1")
        offset = (page_number - 1) * page_size
        return self.skip(offset).take(page_size)

    def paginate(self, page_size: int):
        """Yield pages of up to page_size values until an empty page"""
        page_num = 1
        while True:
            page_data = self.page(page_num, page_size).to_list()
            if not page_data:
                break
            yield page_data
            page_num += 1

    def defer(self, factory: Callable) -> "LazyCollection":
        """
        Postpone ``factory(self)`` until the returned collection is iterated.

        ``None`` stands for an empty collection, a collection is flattened,
        any other value becomes a single item at key 0.
        """
        return self._derive(_deferred, factory)

    def cache(self, enabled: bool = True) -> "LazyCollection":
        return LazyCollection(functools.partial(_passthrough, self), enabled, previous=self)

    # --------- eager operators ----------
    def reverse(self) -> "LazyCollection":
        """Reverse item order, keeping keys. Materializes the whole collection."""
        pairs = list(self._materialize().items())
        pairs.reverse()
        return LazyCollection(dict(pairs), self._use_cache, previous=self)

    def group_by(self, fn: Callable) -> "LazyCollection":
        """
        Group items by ``fn(value, key)``. Grouping happens now; the result is
        a lazy collection of group key to collection of members. Items whose
        group key is not a string or an integer are left out.
        """
        fn = adapt_callback(fn)
        grouped: Dict[Hashable, Dict[Hashable, Any]] = {}
        for key, value in self.items():
            group_key = fn(value, key)
            if isinstance(group_key, (str, int)) and not isinstance(group_key, bool):
                grouped.setdefault(group_key, {})[key] = value
        return LazyCollection(
            functools.partial(_grouped, grouped, self._use_cache), self._use_cache, previous=self
        )

    def load(self) -> "LazyCollection":
        """Load all items into memory and return a collection over them."""
        return LazyCollection(self._materialize(), self._use_cache)

    # --------- terminal operations ----------
    def is_empty(self) -> bool:
        iterator = self.get_iterator()
        if isinstance(iterator, CachingIterator):
            return iterator.is_empty()
        return next(iterator, _NOTHING) is _NOTHING

    def each(self, callback: Callable) -> "LazyCollection":
        """Call ``callback(value, key)`` per item; returning False stops."""
        callback = adapt_callback(callback)
        for key, value in self.items():
            if callback(value, key) is False:
                break
        return self

    def get(self, key, default=None):
        if key is None:
            return default
        for item_key, value in self.items():
            if keys_match(item_key, key):
                return value
        return default

    def first(self, predicate: Optional[Callable] = None, default=None):
        """Return the first value (passing ``predicate``), or default"""
        if predicate is not None:
            predicate = adapt_callback(predicate)
        for key, value in self.items():
            if predicate is None or predicate(value, key):
                return value
        return default

    def last(self, predicate: Optional[Callable] = None, default=None):
        """Return the last value (passing ``predicate``), or default"""
        if predicate is not None:
            predicate = adapt_callback(predicate)
        found, last_value = False, None
        for key, value in self.items():
            if predicate is None or predicate(value, key):
                found, last_value = True, value
        return last_value if found else default

    def count(self) -> int:
        return sum(1 for _ in self.items())

    def to_dict(self, item_callback: Optional[Callable] = None) -> Dict[Hashable, Any]:
        """Materialize into a dict, nested collections included."""
        if item_callback is not None:
            item_callback = adapt_callback(item_callback)
        result = {}
        for key, value in self.items():
            if isinstance(value, LazyCollection):
                result[key] = value.to_dict(item_callback)
            elif item_callback is not None:
                result[key] = item_callback(value, key)
            else:
                result[key] = value
        return result

    def to_list(self) -> List[Any]:
        return list(self)

    # --------- reducing operations (force evaluation) ----------
    def reduce(self, fn: Callable, initial=None):
        """Apply a function of two arguments cumulatively to values, left to right"""
        if initial is not None:
            return builtin_reduce(fn, self, initial)
        return builtin_reduce(fn, self)

    def sum(self, start=0):
        total = start
        for item in self:
            total += item
        return total

    def min(self, default=None):
        try:
            return min(self)
        except ValueError:
            if default is not None:
                return default
            raise

    def max(self, default=None):
        try:
            return max(self)
        except ValueError:
            if default is not None:
                return default
            raise

    def any(self, predicate: Optional[Callable] = None) -> bool:
        if predicate is None:
            return any(self)
        predicate = adapt_callback(predicate)
        return any(predicate(value, key) for key, value in self.items())

    def all(self, predicate: Optional[Callable] = None) -> bool:
        if predicate is None:
            return all(self)
        predicate = adapt_callback(predicate)
        return all(predicate(value, key) for key, value in self.items())

    # --------- iterator protocol ----------
    def get_iterator(self):
        """
        Return the memoized iterator when there is one; otherwise resolve the
        source, wrapping it in a new ``CachingIterator`` when caching is on.
        """
        if self._cached is not None:
            return self._cached

        resolved = resolve_producer(self._source, self)

        if self._use_cache:
            logger.debug("Creating caching iterator for %r", self)
            resolved = self._cached = CachingIterator(resolved)

        return resolved

    def items(self) -> Iterator[Tuple[Hashable, Any]]:
        return iter(self.get_iterator())

    def __iter__(self):
        for _, value in self.items():
            yield value

    def __repr__(self):
        source = type(self._source).__name__
        return f"<{type(self).__name__} source={source} use_cache={self._use_cache}>"

    # --------- helpers ----------
    def _derive(self, producer, *args) -> "LazyCollection":
        return LazyCollection(functools.partial(producer, self, *args), self._use_cache, previous=self)

    def _materialize(self) -> Dict[Hashable, Any]:
        iterator = self.get_iterator()
        if isinstance(iterator, CachingIterator):
            return iterator.to_dict()
        return dict(iterator)


# --------- producers ----------
# Each receives its predecessor explicitly and yields (key, value) pairs.

def _filtered(previous: LazyCollection, predicate):
    for key, value in previous.items():
        if predicate(value, key):
            yield key, value


def _mapped(previous: LazyCollection, fn, recursive: bool):
    for key, value in previous.items():
        if recursive and isinstance(value, LazyCollection):
            yield key, value.map(fn, recursive=True)
        else:
            yield key, fn(value, key)


def _keyed_by(previous: LazyCollection, fn):
    for key, value in previous.items():
        resolved = fn(value, key)
        if not isinstance(resolved, PRIMITIVE_KEY_TYPES):
            resolved = str(resolved)
        yield resolved, value


def _keys_of(previous: LazyCollection):
    for index, (key, _) in enumerate(previous.items()):
        yield index, key


def _values_of(previous: LazyCollection):
    for index, (_, value) in enumerate(previous.items()):
        yield index, value


def _skipped(previous: LazyCollection, count: int):
    pairs = previous.items()
    for _ in range(count):
        if next(pairs, _NOTHING) is _NOTHING:
            return
    yield from pairs


def _taken(previous: LazyCollection, count: int):
    if count <= 0:
        return
    yield from itertools.islice(previous.items(), count)


def _chunked(previous: LazyCollection, size: int):
    bucket = []
    index = 0
    for _, value in previous.items():
        bucket.append(value)
        if len(bucket) == size:
            yield index, tuple(bucket)
            bucket = []
            index += 1
    if bucket:
        yield index, tuple(bucket)


def _grouped(grouped: Dict[Hashable, Dict[Hashable, Any]], use_cache: bool):
    for group_key, members in grouped.items():
        yield group_key, LazyCollection(members, use_cache)


def _deferred(previous: LazyCollection, factory):
    result = factory(previous) if accepts_argument(factory) else factory()
    if result is None:
        result = LazyCollection.empty()
    if isinstance(result, LazyCollection):
        yield from result.items()
    else:
        yield 0, result


def _passthrough(previous: LazyCollection):
    yield from previous.items()
