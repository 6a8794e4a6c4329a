"""
Shared building blocks for the lazy collection modules.

Holds the error taxonomy, logging setup, callback arity adaptation and the
loose key comparison used by ``LazyCollection.get``.
"""

import inspect
import logging
import sys
from typing import Any, Callable, Tuple

LOGGER_NAME = "lazy_collections"

# Key types that can be used as-is by ``key_by``; anything else is stringified
PRIMITIVE_KEY_TYPES = (str, int, float, bool, bytes, tuple, type(None))


class CollectionError(Exception):
    """Base class for every error raised by the collection modules."""
    pass


class InvalidSourceError(CollectionError, TypeError):
    """Raised when a collection source is none of the supported shapes."""
    pass


class InvalidProducerResultError(CollectionError, TypeError):
    """Raised when a callable source does not return an iterator."""
    pass


class TypeMismatchError(CollectionError, TypeError):
    """Raised when an item does not match the declared item type."""

    def __init__(self, collection: str, expected: str, actual: str, key: Any = None):
        self.collection = collection
        self.expected = expected
        self.actual = actual
        self.key = key
        if key is None:
            message = f"Each element of {collection} must be {expected}, {actual} given"
        else:
            message = f'Each element of {collection} must be {expected}, {actual} given at "{key}" index'
        super().__init__(message)


class DuplicateIndexError(CollectionError, KeyError):
    """Raised when a secondary index value is already taken."""

    def __init__(self, index_name: str, value: Any):
        self.index_name = index_name
        self.value = value
        super().__init__(f'Index "{index_name}:{value}" already exists')

    def __str__(self):
        # KeyError would repr() the message otherwise
        return self.args[0]


class InvalidIndexValueError(CollectionError, ValueError):
    """Raised when an index value is neither a string nor an integer."""
    pass


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Setup structured logging for the collection modules"""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s'
        ))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def _positional_params(fn: Callable) -> Tuple[int, int, bool]:
    """(required, total, variadic) counts of ``fn``'s positional parameters."""
    if isinstance(fn, type):
        # classes used as callbacks are conversions such as str or int
        return 1, 1, False
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        # builtins without introspectable signatures take the value only
        return 1, 1, False

    required = total = 0
    for param in sig.parameters.values():
        if param.kind == inspect.Parameter.VAR_POSITIONAL:
            return required, total, True
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY,
                          inspect.Parameter.POSITIONAL_OR_KEYWORD):
            total += 1
            if param.default is inspect.Parameter.empty:
                required += 1
    return required, total, False


def _is_builtin(fn: Callable) -> bool:
    return inspect.isbuiltin(fn) or inspect.ismethoddescriptor(fn)


def adapt_callback(fn: Callable) -> Callable[[Any, Any], Any]:
    """
    Wrap ``fn`` so it can always be called as ``fn(value, key)``.

    The key is passed to callables that take ``*args`` or a second positional
    parameter, such as ``def f(value, key=None)``. Builtins only get it when
    they require it, so ``sum`` and ``round`` are called with the value alone.
    """
    required, total, variadic = _positional_params(fn)
    if variadic or required >= 2:
        return fn
    if total >= 2 and not _is_builtin(fn):
        return fn
    if total >= 1:
        return lambda value, key: fn(value)
    return lambda value, key: fn()


def accepts_argument(fn: Callable) -> bool:
    """Whether ``fn`` can be called with one positional argument."""
    required, total, variadic = _positional_params(fn)
    return variadic or total >= 1


def keys_match(left: Any, right: Any) -> bool:
    """
    Loose key equality: ``==``, plus string/integer equivalence so that
    ``"1"`` matches ``1`` the way numeric string keys do in keyed arrays.
    """
    if left == right:
        return True
    if isinstance(left, bool) or isinstance(right, bool):
        return False
    if isinstance(left, str) and isinstance(right, int):
        return left == str(right)
    if isinstance(left, int) and isinstance(right, str):
        return str(left) == right
    return False


def describe_kind(value: Any) -> str:
    """Short description of a value's kind for error messages."""
    if value is None:
        return "null"
    return type(value).__name__
