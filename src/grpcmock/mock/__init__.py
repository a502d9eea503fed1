"""
grpcmock Mock Module

Mock resolution engine and gRPC server for answering calls from
file-defined mocks.

This module provides:
- Mock store loading (JSON and YAML mock files)
- Request canonicalization and exact matching
- Typed response materialization
- Generic call interceptor and gRPC server
- Read-only admin API
"""

from .canonical import Kind, canonicalize, kind_of, structurally_equal
from .errors import (
    CallCancelledError,
    DecodeError,
    LoadError,
    MethodNotFoundError,
    MockError,
    NoMatchError,
)
from .interceptor import CallResult, MockInterceptor
from .matcher import MatchResult, MockMatcher
from .materializer import materialize
from .server import (
    MockConfig,
    MockMetrics,
    MockRpcHandler,
    MockServer,
    create_mock_server,
    load_configured_service,
)
from .store import MockRecord, MockStore, load_mock_file, load_mocks
from .validation import validate_mocks

__all__ = [
    # Store
    'MockRecord',
    'MockStore',
    'load_mocks',
    'load_mock_file',

    # Canonicalizer
    'Kind',
    'canonicalize',
    'kind_of',
    'structurally_equal',

    # Matcher
    'MockMatcher',
    'MatchResult',

    # Materializer
    'materialize',

    # Interceptor
    'MockInterceptor',
    'CallResult',

    # Server
    'MockConfig',
    'MockMetrics',
    'MockRpcHandler',
    'MockServer',
    'create_mock_server',
    'load_configured_service',

    # Validation
    'validate_mocks',

    # Errors
    'MockError',
    'LoadError',
    'MethodNotFoundError',
    'DecodeError',
    'NoMatchError',
    'CallCancelledError',
]
