"""
grpcmock Errors

Exception taxonomy for the mock resolution engine.

Startup errors (LoadError) abort the process. Per-call errors carry the gRPC
status they surface as, so the transport layer can fail only that call.
"""

import grpc


class MockError(Exception):
    """Base class for all mock resolution errors."""

    grpc_status = grpc.StatusCode.INTERNAL


class LoadError(MockError):
    """Mock directory unreadable or a mock file malformed."""


class MethodNotFoundError(MockError):
    """Call identifier names no method of the mocked service."""

    grpc_status = grpc.StatusCode.UNIMPLEMENTED

    def __init__(self, method: str):
        super().__init__(f"did not find method={method}")
        self.method = method


class DecodeError(MockError):
    """Matched response cannot be converted to the declared response type."""


class NoMatchError(MockError):
    """No configured mock fits the incoming request."""

    grpc_status = grpc.StatusCode.NOT_FOUND

    def __init__(self, method: str, request: dict):
        super().__init__(f"no mock configured for method={method} request={request}")
        self.method = method
        self.request = request


class CallCancelledError(MockError):
    """Call was abandoned by the client before a response was produced."""

    grpc_status = grpc.StatusCode.CANCELLED

    def __init__(self, method: str):
        super().__init__(f"call to method={method} was cancelled")
        self.method = method
