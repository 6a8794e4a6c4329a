"""
Memoizing iterator over a one-shot ``(key, value)`` producer.

Every pair pulled from the producer is stored in an ordered cache before it is
handed out, so the stream can be rewound, counted and traversed again without
running the producer a second time.
"""

from typing import Any, Dict, Hashable, Iterable, Iterator, List, Tuple

from common import get_logger

logger = get_logger("caching")

_NOTHING = object()


class CachingIterator:
    """
    Iterator wrapping a producer and caching its results to allow rewinding
    and counting multiple times.

    The first pair is fetched on construction, so ``valid()``, ``key()`` and
    ``current()`` can be used without an explicit ``rewind()``. Python
    iteration does not use the cursor.
    """

    def __init__(self, source: Iterable[Tuple[Hashable, Any]]):
        self._items: Dict[Hashable, Any] = {}
        self._keys: List[Hashable] = []    # discovery order, cursor addresses it
        self._position = 0
        self._advanced = False
        self._exhausted = False
        self._iterator = self._wrap(source)
        self._store_next()

    # --------- cursor protocol ----------
    def current(self) -> Any:
        if not self.valid():
            return None
        return self._items[self._keys[self._position]]

    def key(self) -> Any:
        if not self.valid():
            return None
        return self._keys[self._position]

    def valid(self) -> bool:
        return self._position < len(self._keys)

    def advance(self) -> None:
        """Move the cursor one position, pulling from the producer if needed."""
        if not self._exhausted:
            self._store_next()
        self._position += 1
        # overwritten duplicate keys can leave the cursor past the cache
        while not self._exhausted and self._position >= len(self._keys):
            self._store_next()

    next = advance

    def rewind(self) -> None:
        # Once the producer moved past its first pair, finish it now so that
        # later passes are served entirely from the cache
        if self._advanced:
            self._exhaust()
        self._position = 0

    # --------- inspection ----------
    @property
    def exhausted(self) -> bool:
        return self._exhausted

    @property
    def advanced(self) -> bool:
        return self._advanced

    def is_empty(self) -> bool:
        return not self._keys

    def to_dict(self) -> Dict[Hashable, Any]:
        self._exhaust()
        return dict(self._items)

    def __iter__(self) -> Iterator[Tuple[Hashable, Any]]:
        """
        Walk the cache from the first pair, pulling from the producer on
        demand. Each pass keeps its own index, so passes can be nested or
        interleaved without touching the cursor.
        """
        index = 0
        while True:
            if index < len(self._keys):
                key = self._keys[index]
                yield key, self._items[key]
                index += 1
            elif self._exhausted:
                return
            else:
                self._store_next()

    def __repr__(self):
        state = "exhausted" if self._exhausted else "pending"
        return f"<CachingIterator cached={len(self._keys)} {state}>"

    # --------- helpers ----------
    def _exhaust(self) -> None:
        if not self._exhausted:
            logger.debug("Draining producer into cache (%d cached so far)", len(self._keys))
        while not self._exhausted:
            self._store_next()

    def _store_next(self) -> None:
        pair = next(self._iterator, _NOTHING)
        if pair is _NOTHING:
            return
        key, value = pair
        if key not in self._items:
            self._keys.append(key)
        self._items[key] = value

    def _wrap(self, source: Iterable[Tuple[Hashable, Any]]) -> Iterator[Tuple[Hashable, Any]]:
        for key, value in source:
            yield key, value
            self._advanced = True
        self._exhausted = True
