"""
grpcmock Response Materializer

Builds typed response messages from the dynamic response body of a mock
record, using the protobuf JSON mapping to convert values into each
field's declared type.
"""

from collections.abc import Mapping
from typing import Any, Type

from google.protobuf import json_format
from google.protobuf.message import Message

from .canonical import thaw
from .errors import DecodeError


def materialize(response_class: Type[Message], body: Mapping[str, Any]) -> Message:
    """
    Create a response message populated from a mock response body.

    Field names may be the proto name or the JSON (lowerCamelCase) name.
    Fields missing from the body keep their default value.

    Args:
        response_class: Message class of the method's response
        body: Response mapping from the matched mock record

    Returns:
        New response message

    Raises:
        DecodeError: If a value does not fit its field's type or a field
            name is not declared on the response type
    """
    if not isinstance(body, Mapping):
        raise DecodeError(
            f"failed to decode response into {response_class.DESCRIPTOR.full_name}: "
            f"expected an object, got {type(body).__name__}"
        )

    response = response_class()
    try:
        json_format.ParseDict(thaw(body), response)
    except json_format.ParseError as e:
        raise DecodeError(
            f"failed to decode response into {response_class.DESCRIPTOR.full_name}: {e}"
        ) from e
    return response
