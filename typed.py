"""
Typed lazy collections: every item is validated as it flows out of the source.
"""

import functools
from typing import Optional, Union

from common import TypeMismatchError, describe_kind
from lazy import LazyCollection, resolve_producer
from validators import TypeValidator


class TypedLazyCollection(LazyCollection):
    """
    Lazy collection whose items must all match ``item_type``.

    Subclasses declare the type::

        class Names(TypedLazyCollection):
            item_type = "string"

    Validation is lazy too: the first mismatching item raises
    ``TypeMismatchError`` when it is reached during iteration.
    """

    item_type: Optional[Union[str, type]] = None

    def __init__(self, source, use_cache: bool = False, previous: Optional[LazyCollection] = None):
        cls = type(self)
        validator = TypeValidator.for_type(cls.item_type) if cls.item_type else None
        super().__init__(
            functools.partial(_validated, cls.__qualname__, validator, source), use_cache, previous
        )


def _validated(collection_name: str, validator: Optional[TypeValidator], source, node):
    if validator is None:
        raise ValueError("Item type must not be empty")

    for key, value in resolve_producer(source, node):
        if not validator(value):
            raise TypeMismatchError(collection_name, validator.type_name, describe_kind(value), key)
        yield key, value
