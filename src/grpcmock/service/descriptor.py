"""
grpcmock Service Descriptors

Queryable method table for the service being mocked.

The table is built once from protobuf descriptors, either compiled into the
process or read from a FileDescriptorSet produced by:

    protoc --include_imports --descriptor_set_out=service.pb service.proto
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Type

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.descriptor import Descriptor, ServiceDescriptor
from google.protobuf.message import DecodeError as ProtobufDecodeError
from google.protobuf.message import Message


logger = logging.getLogger("grpcmock.service")


class SchemaError(Exception):
    """Raised when a service description cannot be loaded."""


@dataclass(frozen=True)
class MethodSchema:
    """Request and response types of one unary RPC method."""

    name: str
    full_path: str
    request_class: Type[Message]
    response_class: Type[Message]

    @property
    def request_descriptor(self) -> Descriptor:
        return self.request_class.DESCRIPTOR

    @property
    def response_descriptor(self) -> Descriptor:
        return self.response_class.DESCRIPTOR


@dataclass(frozen=True)
class ServiceSchema:
    """
    Method table of a gRPC service.

    Example:
        schema = ServiceSchema.from_descriptor(pool.FindServiceByName('ping.PingService'))
        method = schema.methods['Ping']
        request = method.request_class(ping='hello')
    """

    full_name: str
    methods: Dict[str, MethodSchema] = field(default_factory=dict)

    @classmethod
    def from_descriptor(cls, service: ServiceDescriptor) -> 'ServiceSchema':
        """
        Build the method table from a protobuf service descriptor.

        Streaming methods are skipped: only unary calls can be mocked.
        """
        methods = {}
        for method in service.methods:
            if method.client_streaming or method.server_streaming:
                logger.warning(f"Skipping streaming method {service.full_name}/{method.name}")
                continue
            methods[method.name] = MethodSchema(
                name=method.name,
                full_path=f"/{service.full_name}/{method.name}",
                request_class=message_factory.GetMessageClass(method.input_type),
                response_class=message_factory.GetMessageClass(method.output_type),
            )
        return cls(full_name=service.full_name, methods=methods)

    def method_names(self) -> List[str]:
        return sorted(self.methods)


def load_descriptor_set(path) -> descriptor_pool.DescriptorPool:
    """
    Read a binary FileDescriptorSet into a fresh descriptor pool.

    Args:
        path: Path to the descriptor set file

    Returns:
        DescriptorPool containing every file of the set

    Raises:
        SchemaError: If the file is unreadable or not a valid descriptor set
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise SchemaError(f"failed to read descriptor set {path}: {e}") from e

    file_set = descriptor_pb2.FileDescriptorSet()
    try:
        file_set.ParseFromString(data)
    except ProtobufDecodeError as e:
        raise SchemaError(f"invalid descriptor set {path}: {e}") from e

    pool = descriptor_pool.DescriptorPool()
    for file_proto in file_set.file:
        try:
            pool.AddSerializedFile(file_proto.SerializeToString())
        except (TypeError, KeyError, ValueError) as e:
            raise SchemaError(f"invalid descriptor set {path}: {file_proto.name}: {e}") from e
    return pool


def load_service(path, service_name: str) -> ServiceSchema:
    """
    Load a service's method table from a FileDescriptorSet file.

    Args:
        path: Path to the descriptor set file
        service_name: Fully qualified service name, e.g. 'ping.PingService'

    Returns:
        ServiceSchema for the named service

    Raises:
        SchemaError: If the set cannot be loaded or lacks the service
    """
    pool = load_descriptor_set(path)
    try:
        service = pool.FindServiceByName(service_name)
    except KeyError as e:
        raise SchemaError(f"service {service_name} not found in {path}") from e
    return ServiceSchema.from_descriptor(service)
