"""
Demonstration service mocked when no descriptor set is configured.

Equivalent to:

    syntax = "proto3";
    package ping;

    message PingRequest { string ping = 1; }
    message PingResponse { string pong = 1; }

    service PingService {
      rpc Ping(PingRequest) returns (PingResponse);
    }
"""

from google.protobuf import descriptor_pb2, descriptor_pool

from .descriptor import ServiceSchema


SERVICE_NAME = "ping.PingService"

_TYPE_STRING = descriptor_pb2.FieldDescriptorProto.TYPE_STRING
_LABEL_OPTIONAL = descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL


def build_ping_file() -> descriptor_pb2.FileDescriptorProto:
    """Describe ping.proto as a FileDescriptorProto."""
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="grpcmock/ping.proto",
        package="ping",
        syntax="proto3",
    )

    request = file_proto.message_type.add(name="PingRequest")
    request.field.add(name="ping", json_name="ping", number=1, type=_TYPE_STRING, label=_LABEL_OPTIONAL)

    response = file_proto.message_type.add(name="PingResponse")
    response.field.add(name="pong", json_name="pong", number=1, type=_TYPE_STRING, label=_LABEL_OPTIONAL)

    service = file_proto.service.add(name="PingService")
    service.method.add(name="Ping", input_type=".ping.PingRequest", output_type=".ping.PingResponse")

    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(build_ping_file().SerializeToString())

PING_SERVICE = ServiceSchema.from_descriptor(_pool.FindServiceByName(SERVICE_NAME))

PingRequest = PING_SERVICE.methods["Ping"].request_class
PingResponse = PING_SERVICE.methods["Ping"].response_class
