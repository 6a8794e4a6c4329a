"""
Item type validators used by typed collections.

A type name is mapped once to one of three validator variants: a primitive
kind check, a character class check (text items only) or a capability check
(``isinstance`` against a resolved class). ``is_type_valid`` is the plain
predicate form of the same lookup.
"""

import builtins
import collections.abc
import importlib
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_float(value: Any) -> bool:
    return isinstance(value, float)


def _is_numeric(value: Any) -> bool:
    if _is_int(value) or _is_float(value):
        return True
    if isinstance(value, str):
        try:
            float(value.strip())
        except ValueError:
            return False
        return bool(value.strip())
    return False


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (bool, int, float, str))


def _is_iterable(value: Any) -> bool:
    return isinstance(value, collections.abc.Iterable) and not isinstance(value, (str, bytes))


def _is_object(value: Any) -> bool:
    return not isinstance(value, (type(None), bool, int, float, str, bytes, list, tuple, dict))


PRIMITIVE_KINDS: Dict[str, Callable[[Any], bool]] = {
    'bool': lambda v: isinstance(v, bool),
    'int': _is_int,
    'integer': _is_int,
    'long': _is_int,
    'float': _is_float,
    'double': _is_float,
    'numeric': _is_numeric,
    'string': lambda v: isinstance(v, str),
    'str': lambda v: isinstance(v, str),
    'array': lambda v: isinstance(v, (list, tuple, dict)),
    'list': lambda v: isinstance(v, (list, tuple)),
    'dict': lambda v: isinstance(v, collections.abc.Mapping),
    'mapping': lambda v: isinstance(v, collections.abc.Mapping),
    'iterable': _is_iterable,
    'countable': lambda v: isinstance(v, collections.abc.Sized),
    'callable': callable,
    'object': _is_object,
    'scalar': _is_scalar,
    'null': lambda v: v is None,
    'none': lambda v: v is None,
}

# ASCII character classes, matched against the whole string
CHARACTER_CLASSES: Dict[str, str] = {
    'alpha': r'[A-Za-z]+',
    'alnum': r'[A-Za-z0-9]+',
    'digit': r'[0-9]+',
    'lower': r'[a-z]+',
    'upper': r'[A-Z]+',
    'space': r'[ \t\n\r\v\f]+',
    'punct': r'[!-/:-@\[-`{-~]+',
    'xdigit': r'[0-9A-Fa-f]+',
    'print': r'[ -~]+',
    'graph': r'[!-~]+',
    'cntrl': r'[\x00-\x1f\x7f]+',
}


def normalize_type_name(type_name: str) -> str:
    return 'bool' if type_name == 'boolean' else type_name


def resolve_capability(type_name: str) -> Optional[type]:
    """Resolve a class from a builtin, ``collections.abc`` or dotted name."""
    candidate = getattr(builtins, type_name, None)
    if isinstance(candidate, type):
        return candidate

    candidate = getattr(collections.abc, type_name, None)
    if isinstance(candidate, type):
        return candidate

    module_name, _, attr = type_name.rpartition('.')
    if not module_name:
        return None
    try:
        module = importlib.import_module(module_name)
    except ImportError:
        return None
    candidate = getattr(module, attr, None)
    return candidate if isinstance(candidate, type) else None


class TypeValidator(ABC):
    """Base validator: a predicate over a single item."""

    validator_type = "base"
    type_name: str

    @abstractmethod
    def validate(self, data: Any) -> bool:
        ...

    def __call__(self, data: Any) -> bool:
        return self.validate(data)

    @staticmethod
    def for_type(type_name: Union[str, type]) -> "TypeValidator":
        """Select the validator variant for ``type_name``."""
        if isinstance(type_name, type):
            return Capability(type_name.__name__, type_name)

        lowered = normalize_type_name(type_name.lower())
        if lowered in PRIMITIVE_KINDS:
            return PrimitiveKind(lowered)
        if lowered in CHARACTER_CLASSES:
            return CharacterClass(lowered)
        return Capability(type_name, resolve_capability(type_name))


@dataclass(frozen=True)
class PrimitiveKind(TypeValidator):
    type_name: str
    validator_type = "primitive"

    def validate(self, data: Any) -> bool:
        return PRIMITIVE_KINDS[self.type_name](data)


@dataclass(frozen=True)
class CharacterClass(TypeValidator):
    """Matches text made only of characters from one ASCII class."""
    type_name: str
    validator_type = "character_class"

    def validate(self, data: Any) -> bool:
        if not isinstance(data, str):
            return False
        return re.fullmatch(CHARACTER_CLASSES[self.type_name], data) is not None


@dataclass(frozen=True)
class Capability(TypeValidator):
    type_name: str
    target: Optional[type] = None
    validator_type = "capability"

    def validate(self, data: Any) -> bool:
        # unresolvable names never match
        if self.target is None:
            return False
        return isinstance(data, self.target)


def is_type_valid(item: Any, type_name: Union[str, type]) -> bool:
    """Check ``item`` against a primitive kind, character class or capability."""
    return TypeValidator.for_type(type_name).validate(item)
