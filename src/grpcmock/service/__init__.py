"""
grpcmock Service Module

Descriptions of the gRPC service being mocked.
"""

from .descriptor import MethodSchema, SchemaError, ServiceSchema, load_descriptor_set, load_service
from .ping import PING_SERVICE, PingRequest, PingResponse

__all__ = [
    'MethodSchema',
    'SchemaError',
    'ServiceSchema',
    'load_descriptor_set',
    'load_service',
    'PING_SERVICE',
    'PingRequest',
    'PingResponse',
]
