"""
Shared fixtures for grpcmock tests.

Builds a richer test service than ping.PingService so canonicalization and
materialization can be exercised on nested messages, enums, repeated, map,
bytes, float and optional fields (plus events.Event, built below, for
well-known types):

    syntax = "proto3";
    package shop;

    enum Color { COLOR_UNSPECIFIED = 0; RED = 1; BLUE = 2; }

    message Dimensions { double width = 1; double height = 2; }

    message ItemRequest {
      string sku = 1;
      int64 quantity = 2;
      bool gift = 3;
      Dimensions size = 4;
      repeated string tags = 5;
      map<string, int32> stock = 6;
      Color color = 7;
      float weight = 8;
      bytes blob = 9;
      optional string note = 10;
    }

    message Item {
      string sku = 1;
      string name = 2;
      int32 price = 3;
      Dimensions size = 4;
      repeated string tags = 5;
      Color color = 6;
      bool available = 7;
    }

    service Inventory {
      rpc GetItem(ItemRequest) returns (Item);
      rpc WatchItem(ItemRequest) returns (stream Item);
    }
"""

import json
from pathlib import Path

import pytest
from google.protobuf import (
    descriptor_pb2,
    descriptor_pool,
    duration_pb2,
    struct_pb2,
    timestamp_pb2,
    wrappers_pb2,
)

from grpcmock.service import ServiceSchema


FieldProto = descriptor_pb2.FieldDescriptorProto


def _field(message, name, number, field_type, label=FieldProto.LABEL_OPTIONAL, **kwargs):
    return message.field.add(name=name, number=number, type=field_type, label=label, **kwargs)


def build_shop_file() -> descriptor_pb2.FileDescriptorProto:
    """Describe the shop test service as a FileDescriptorProto."""
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="tests/shop.proto",
        package="shop",
        syntax="proto3",
    )

    color = file_proto.enum_type.add(name="Color")
    color.value.add(name="COLOR_UNSPECIFIED", number=0)
    color.value.add(name="RED", number=1)
    color.value.add(name="BLUE", number=2)

    dimensions = file_proto.message_type.add(name="Dimensions")
    _field(dimensions, "width", 1, FieldProto.TYPE_DOUBLE)
    _field(dimensions, "height", 2, FieldProto.TYPE_DOUBLE)

    request = file_proto.message_type.add(name="ItemRequest")
    stock_entry = request.nested_type.add(name="StockEntry")
    stock_entry.options.map_entry = True
    _field(stock_entry, "key", 1, FieldProto.TYPE_STRING)
    _field(stock_entry, "value", 2, FieldProto.TYPE_INT32)
    request.oneof_decl.add(name="_note")

    _field(request, "sku", 1, FieldProto.TYPE_STRING)
    _field(request, "quantity", 2, FieldProto.TYPE_INT64)
    _field(request, "gift", 3, FieldProto.TYPE_BOOL)
    _field(request, "size", 4, FieldProto.TYPE_MESSAGE, type_name=".shop.Dimensions")
    _field(request, "tags", 5, FieldProto.TYPE_STRING, label=FieldProto.LABEL_REPEATED)
    _field(request, "stock", 6, FieldProto.TYPE_MESSAGE, label=FieldProto.LABEL_REPEATED,
           type_name=".shop.ItemRequest.StockEntry")
    _field(request, "color", 7, FieldProto.TYPE_ENUM, type_name=".shop.Color")
    _field(request, "weight", 8, FieldProto.TYPE_FLOAT)
    _field(request, "blob", 9, FieldProto.TYPE_BYTES)
    _field(request, "note", 10, FieldProto.TYPE_STRING, oneof_index=0, proto3_optional=True)

    item = file_proto.message_type.add(name="Item")
    _field(item, "sku", 1, FieldProto.TYPE_STRING)
    _field(item, "name", 2, FieldProto.TYPE_STRING)
    _field(item, "price", 3, FieldProto.TYPE_INT32)
    _field(item, "size", 4, FieldProto.TYPE_MESSAGE, type_name=".shop.Dimensions")
    _field(item, "tags", 5, FieldProto.TYPE_STRING, label=FieldProto.LABEL_REPEATED)
    _field(item, "color", 6, FieldProto.TYPE_ENUM, type_name=".shop.Color")
    _field(item, "available", 7, FieldProto.TYPE_BOOL)

    service = file_proto.service.add(name="Inventory")
    service.method.add(name="GetItem", input_type=".shop.ItemRequest", output_type=".shop.Item")
    service.method.add(name="WatchItem", input_type=".shop.ItemRequest", output_type=".shop.Item",
                       server_streaming=True)

    return file_proto


def build_events_file() -> descriptor_pb2.FileDescriptorProto:
    """
    Describe a service whose messages use well-known types:

        syntax = "proto3";
        package events;

        message Event {
          google.protobuf.Timestamp at = 1;
          google.protobuf.StringValue label = 2;
          google.protobuf.Int64Value count = 3;
          google.protobuf.Struct attributes = 4;
          google.protobuf.Duration ttl = 5;
        }

        service Events {
          rpc Publish(Event) returns (Event);
        }
    """
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="tests/events.proto",
        package="events",
        syntax="proto3",
        dependency=[
            timestamp_pb2.DESCRIPTOR.name,
            wrappers_pb2.DESCRIPTOR.name,
            struct_pb2.DESCRIPTOR.name,
            duration_pb2.DESCRIPTOR.name,
        ],
    )

    event = file_proto.message_type.add(name="Event")
    _field(event, "at", 1, FieldProto.TYPE_MESSAGE, type_name=".google.protobuf.Timestamp")
    _field(event, "label", 2, FieldProto.TYPE_MESSAGE, type_name=".google.protobuf.StringValue")
    _field(event, "count", 3, FieldProto.TYPE_MESSAGE, type_name=".google.protobuf.Int64Value")
    _field(event, "attributes", 4, FieldProto.TYPE_MESSAGE, type_name=".google.protobuf.Struct")
    _field(event, "ttl", 5, FieldProto.TYPE_MESSAGE, type_name=".google.protobuf.Duration")

    service = file_proto.service.add(name="Events")
    service.method.add(name="Publish", input_type=".events.Event", output_type=".events.Event")

    return file_proto


_shop_pool = descriptor_pool.DescriptorPool()
_shop_pool.AddSerializedFile(build_shop_file().SerializeToString())
SHOP_SERVICE = ServiceSchema.from_descriptor(_shop_pool.FindServiceByName("shop.Inventory"))

# Well-known types resolve to their generated classes in the default pool
descriptor_pool.Default().AddSerializedFile(build_events_file().SerializeToString())
EVENTS_SERVICE = ServiceSchema.from_descriptor(
    descriptor_pool.Default().FindServiceByName("events.Events")
)


@pytest.fixture
def events_service():
    """Method table of the events.Events test service."""
    return EVENTS_SERVICE


@pytest.fixture
def event_class(events_service):
    return events_service.methods["Publish"].request_class


@pytest.fixture
def shop_service():
    """Method table of the shop.Inventory test service."""
    return SHOP_SERVICE


@pytest.fixture
def item_request_class(shop_service):
    return shop_service.methods["GetItem"].request_class


@pytest.fixture
def item_class(shop_service):
    return shop_service.methods["GetItem"].response_class


@pytest.fixture
def shop_descriptor_set(tmp_path):
    """FileDescriptorSet file for shop.proto, as protoc would write it."""
    file_set = descriptor_pb2.FileDescriptorSet()
    file_set.file.append(build_shop_file())
    path = tmp_path / "shop.pb"
    path.write_bytes(file_set.SerializeToString())
    return path


@pytest.fixture
def ping_mocks():
    """Mocks for ping.PingService."""
    return [
        {'Request': {'ping': 'hello'}, 'Response': {'pong': 'world'}, 'StatusCode': 0},
        {'Request': {'ping': 'down'}, 'Response': {}, 'StatusCode': 14},
    ]


@pytest.fixture
def mock_dir(tmp_path, ping_mocks):
    """Mock directory holding Ping.json."""
    directory = tmp_path / "mocks"
    directory.mkdir()
    _write_mocks(directory / "Ping.json", ping_mocks)
    return directory


@pytest.fixture
def write_mocks():
    """Helper writing a list of mocks as a JSON mock file."""
    return _write_mocks


def _write_mocks(path: Path, mocks):
    path.write_text(json.dumps(mocks), encoding="utf-8")
    return path
