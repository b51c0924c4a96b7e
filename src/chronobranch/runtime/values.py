"""
Runtime value wrappers for the chronobranch interpreter.

Values pair a Python payload with its chronobranch type. They are immutable:
list payloads are tuples, set payloads are frozensets, and every collection
operation builds a new Value.
"""

from dataclasses import dataclass
from typing import Any, Iterable
import struct

from ..types import (
    Type, INT, FLOAT, BOOL, STRING, LIST, SET, POTENTIAL, resolve_type_name,
)


def _float_bits(x: float) -> int:
    return struct.unpack("<Q", struct.pack("<d", x))[0]


@dataclass(frozen=True, eq=False)
class Value:
    """
    A runtime value with type information.

    Equality is structural and kind-sensitive: ``int_val(1) != float_val(1.0)``.
    Floats compare by bit pattern so that NaN equals itself and set
    membership stays well defined.
    """
    data: Any
    type: Type

    def _key(self) -> Any:
        if self.type == FLOAT:
            return _float_bits(self.data)
        return self.data

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return self.type == other.type and self._key() == other._key()

    def __hash__(self) -> int:
        return hash((self.type.name, self._key()))

    def __repr__(self) -> str:
        return f"Value({self.data!r}, {self.type})"

    def __str__(self) -> str:
        return format_value(self)

    @property
    def is_collection(self) -> bool:
        return self.type in (LIST, SET)

    def __len__(self) -> int:
        if not self.is_collection:
            raise TypeError(f"{self.type} value has no length")
        return len(self.data)


# Convenience constructors

def int_val(n: int) -> Value:
    """Create an integer value (range checks belong to the numeric policy)."""
    return Value(int(n), INT)


def float_val(x: float) -> Value:
    """Create a float value."""
    return Value(float(x), FLOAT)


def bool_val(b: bool) -> Value:
    """Create a boolean value."""
    return Value(bool(b), BOOL)


def string_val(s: str) -> Value:
    """Create a string value."""
    return Value(str(s), STRING)


def list_val(items: Iterable[Value] = ()) -> Value:
    """Create a list value; ``list_val()`` is the empty list."""
    return Value(tuple(items), LIST)


def set_val(items: Iterable[Value] = ()) -> Value:
    """Create a set value; ``set_val()`` is the empty set."""
    return Value(frozenset(items), SET)


def potential_marker(branch_id: int, ordinal: int) -> Value:
    """Placeholder terminal value of a potential that has not resolved yet."""
    return Value((branch_id, ordinal), POTENTIAL)


def list_push(collection: Value, element: Value) -> Value:
    """Return a new list with ``element`` appended."""
    return Value(collection.data + (element,), LIST)


def set_insert(collection: Value, element: Value) -> Value:
    """Return a new set with ``element`` inserted (a fresh Value even for duplicates)."""
    return Value(collection.data | {element}, SET)


# Display

def format_value(value: Value, nested: bool = False) -> str:
    """Render a value the way `print` shows it."""
    t = value.type
    if t == INT:
        return str(value.data)
    if t == FLOAT:
        return repr(value.data)
    if t == BOOL:
        return "true" if value.data else "false"
    if t == STRING:
        if nested:
            escaped = value.data.replace('\\', '\\\\').replace('"', '\\"')
            return f'"{escaped}"'
        return value.data
    if t == LIST:
        return "[" + ", ".join(format_value(v, nested=True) for v in value.data) + "]"
    if t == SET:
        members = sorted(format_value(v, nested=True) for v in value.data)
        return "{" + ", ".join(members) + "}"
    if t == POTENTIAL:
        branch_id, ordinal = value.data
        return f"<potential #{branch_id}.{ordinal}>"
    return repr(value.data)


# Plain-data conversion for timeline dumps

def to_plain(value: Value) -> Any:
    """Convert to YAML/JSON-safe data tagged with the type name."""
    if value.type == LIST:
        return {"type": "list", "items": [to_plain(v) for v in value.data]}
    if value.type == SET:
        members = sorted(value.data, key=lambda v: format_value(v, nested=True))
        return {"type": "set", "items": [to_plain(v) for v in members]}
    if value.type == POTENTIAL:
        return {"type": "potential", "value": list(value.data)}
    return {"type": value.type.name, "value": value.data}


def from_plain(data: Any) -> Value:
    """Inverse of :func:`to_plain`."""
    value_type = resolve_type_name(data.get("type", ""))
    if value_type is None:
        raise ValueError(f"unknown value type in dump: {data.get('type')!r}")
    if value_type == LIST:
        return list_val(from_plain(item) for item in data.get("items", []))
    if value_type == SET:
        return set_val(from_plain(item) for item in data.get("items", []))
    if value_type == POTENTIAL:
        branch_id, ordinal = data["value"]
        return potential_marker(branch_id, ordinal)
    scalar = {INT: int_val, FLOAT: float_val, BOOL: bool_val, STRING: string_val}
    return scalar[value_type](data["value"])


def wrap_python(data: Any) -> Value:
    """Wrap a plain Python object; used by scripted input and tests."""
    if isinstance(data, Value):
        return data
    if isinstance(data, bool):
        return bool_val(data)
    if isinstance(data, int):
        return int_val(data)
    if isinstance(data, float):
        return float_val(data)
    if isinstance(data, str):
        return string_val(data)
    if isinstance(data, (list, tuple)):
        return list_val(wrap_python(item) for item in data)
    if isinstance(data, (set, frozenset)):
        return set_val(wrap_python(item) for item in data)
    raise TypeError(f"cannot wrap {type(data).__name__} as a chronobranch value")

