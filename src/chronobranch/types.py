"""
Value kinds for chronobranch.

Every runtime Value carries one of these types:
    Scalars:      int, float, bool, string
    Collections:  list (ordered), set (distinct members)
    Marker:       potential (placeholder for an unresolved potential)
"""

from dataclasses import dataclass
from typing import Optional, Dict
from enum import Enum
from abc import ABC, abstractmethod


class TypeCategory(Enum):
    """Broad classification used by operators and error messages."""
    SCALAR = 1
    COLLECTION = 2
    MARKER = 3


@dataclass(frozen=True)
class Type(ABC):
    """Base class for all value types."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The type name for display/errors."""
        pass

    @property
    @abstractmethod
    def category(self) -> TypeCategory:
        pass

    @property
    def is_numeric(self) -> bool:
        return False

    @property
    def is_bindable(self) -> bool:
        """Whether values of this type may be written to the timeline."""
        return True

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class PrimitiveType(Type):
    """A scalar type (int, float, bool, string)."""
    _name: str

    @property
    def name(self) -> str:
        return self._name

    @property
    def category(self) -> TypeCategory:
        return TypeCategory.SCALAR

    @property
    def is_numeric(self) -> bool:
        return self._name in ("int", "float")


@dataclass(frozen=True)
class CollectionType(Type):
    """A growable collection: list keeps order, set keeps distinct members."""
    _name: str
    ordered: bool

    @property
    def name(self) -> str:
        return self._name

    @property
    def category(self) -> TypeCategory:
        return TypeCategory.COLLECTION


@dataclass(frozen=True)
class PotentialMarkerType(Type):
    """The placeholder a pending potential holds in place of its terminal value."""

    @property
    def name(self) -> str:
        return "potential"

    @property
    def category(self) -> TypeCategory:
        return TypeCategory.MARKER

    @property
    def is_bindable(self) -> bool:
        return False


INT = PrimitiveType("int")
FLOAT = PrimitiveType("float")
BOOL = PrimitiveType("bool")
STRING = PrimitiveType("string")
LIST = CollectionType("list", ordered=True)
SET = CollectionType("set", ordered=False)
POTENTIAL = PotentialMarkerType()

BUILTIN_TYPES: Dict[str, Type] = {
    t.name: t for t in (INT, FLOAT, BOOL, STRING, LIST, SET, POTENTIAL)
}


def resolve_type_name(name: str) -> Optional[Type]:
    """Look up a type by name."""
    return BUILTIN_TYPES.get(name)
