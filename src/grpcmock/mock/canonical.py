"""
grpcmock Canonicalizer

Converts protobuf messages into canonical field mappings and compares
dynamic (JSON-like) values structurally.

Dynamic values are the JSON value kinds: None, bool, numbers (int/float),
str, list and dict (read-only mappings and tuples once stored). A mock file decodes straight into these, and
canonicalize() produces the same kinds from a typed request, so a
hand-written mapping and a live request can be compared field by field.
"""

import base64
import struct
from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Union

from google.protobuf import json_format
from google.protobuf.descriptor import FieldDescriptor
from google.protobuf.message import Message


DynamicValue = Union[None, bool, int, float, str, list, dict]

# Wrapper messages render as their bare value in the protobuf JSON mapping
WRAPPER_TYPES = frozenset(
    f"google.protobuf.{name}" for name in (
        'DoubleValue', 'FloatValue', 'Int64Value', 'UInt64Value', 'Int32Value',
        'UInt32Value', 'BoolValue', 'StringValue', 'BytesValue',
    )
)
WELL_KNOWN_PREFIX = "google.protobuf."


class Kind(Enum):
    """Tag of a dynamic value."""

    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


def kind_of(value: Any) -> Kind:
    """
    Return the kind tag of a dynamic value.

    Args:
        value: Value decoded from a mock file or produced by canonicalize()

    Returns:
        Kind of the value

    Raises:
        TypeError: If the value is not a JSON-like value
    """
    if value is None:
        return Kind.NULL
    # bool is a subclass of int, so it must be checked first
    if isinstance(value, bool):
        return Kind.BOOL
    if isinstance(value, (int, float)):
        return Kind.NUMBER
    if isinstance(value, str):
        return Kind.STRING
    if isinstance(value, (list, tuple)):
        return Kind.SEQUENCE
    if isinstance(value, Mapping):
        return Kind.MAPPING
    raise TypeError(f"Unsupported dynamic value type: {type(value).__name__}")


def structurally_equal(left: Any, right: Any) -> bool:
    """
    Kind-aware deep equality of two dynamic values.

    Numbers compare by value, strings by codepoints, sequences element-wise,
    mappings by key set and then recursively. A bool never equals a number
    and None only equals None.
    """
    kind = kind_of(left)
    if kind is not kind_of(right):
        return False

    if kind is Kind.MAPPING:
        if left.keys() != right.keys():
            return False
        return all(structurally_equal(left[key], right[key]) for key in left)

    if kind is Kind.SEQUENCE:
        if len(left) != len(right):
            return False
        return all(structurally_equal(a, b) for a, b in zip(left, right))

    return left == right


def freeze(value: Any) -> Any:
    """Read-only copy of a dynamic value: mappings become proxies, lists tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Mutable copy of a dynamic value, as json and json_format expect it."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(item) for item in value]
    return value


def canonicalize(message: Message) -> Dict[str, DynamicValue]:
    """
    Convert a message into a mapping of every declared field to its value.

    Keys are the proto field names, which is also the JSON tag protoc
    generates. Unset message fields, proto3 optional fields and oneof
    members without a value map to None.

    Args:
        message: Protobuf message instance

    Returns:
        Canonical mapping suitable for structural comparison
    """
    canonical = {}
    for field in message.DESCRIPTOR.fields:
        canonical[field.name] = _field_value(message, field)
    return canonical


def _field_value(message: Message, field: FieldDescriptor) -> DynamicValue:
    """Canonical value of a single field."""
    value = getattr(message, field.name)

    if _is_map_field(field):
        value_field = field.message_type.fields_by_name['value']
        return {
            _map_key(key): _scalar_or_message(value_field, item)
            for key, item in value.items()
        }

    if field.is_repeated:
        return [_scalar_or_message(field, item) for item in value]

    if field.has_presence and not message.HasField(field.name):
        return None

    return _scalar_or_message(field, value)


def _scalar_or_message(field: FieldDescriptor, value: Any) -> DynamicValue:
    if field.type == FieldDescriptor.TYPE_MESSAGE:
        return _message_value(value)

    if field.type == FieldDescriptor.TYPE_ENUM:
        enum_value = field.enum_type.values_by_number.get(value)
        return enum_value.name if enum_value is not None else value

    if field.type == FieldDescriptor.TYPE_BYTES:
        return base64.b64encode(value).decode('ascii')

    if field.type == FieldDescriptor.TYPE_FLOAT:
        return _shortest_float32(value)

    return value


def _message_value(message: Message) -> DynamicValue:
    """
    Canonical value of a message-typed field.

    Well-known types take the shape the protobuf JSON mapping gives them
    (RFC 3339 strings for Timestamp, bare values for wrappers, plain JSON
    for Struct), so a pattern is written the same way as a response body.
    """
    full_name = message.DESCRIPTOR.full_name
    if full_name in WRAPPER_TYPES:
        value_field = message.DESCRIPTOR.fields_by_name['value']
        return _scalar_or_message(value_field, message.value)
    if full_name.startswith(WELL_KNOWN_PREFIX):
        return json_format.MessageToDict(message)
    return canonicalize(message)


def _is_map_field(field: FieldDescriptor) -> bool:
    return (
        field.is_repeated
        and field.type == FieldDescriptor.TYPE_MESSAGE
        and field.message_type.GetOptions().map_entry
    )


def _map_key(key: Any) -> str:
    # JSON object keys, as the protobuf JSON mapping writes them
    if isinstance(key, bool):
        return 'true' if key else 'false'
    return str(key)


def _shortest_float32(value: float) -> float:
    """Shortest decimal that round-trips through a 32-bit float."""
    if value != value or value in (float('inf'), float('-inf')):
        return value
    target = struct.pack('<f', value)
    for precision in range(6, 10):
        candidate = float(f"{value:.{precision}g}")
        if struct.pack('<f', candidate) == target:
            return candidate
    return value
