"""
grpcmock Interceptor

Transport-agnostic entry point for every mocked call.

A call goes through:

    Received -> MethodResolved -> (Matched -> Materialized | Unmatched) -> Responded

Method resolution and response types come from the ServiceSchema, so one
interceptor serves any service without per-method code.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import grpc
from google.protobuf.message import Message

from ..service.descriptor import MethodSchema, ServiceSchema
from .canonical import canonicalize
from .errors import CallCancelledError, MethodNotFoundError, NoMatchError
from .matcher import MockMatcher
from .materializer import materialize
from .store import MockStore


logger = logging.getLogger("grpcmock.interceptor")

_STATUS_BY_CODE = {code.value[0]: code for code in grpc.StatusCode}


@dataclass
class CallResult:
    """Outcome of a matched call: the response and the status to report."""

    method: str
    response: Message
    status_code: int = 0
    record_index: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status_code == 0

    @property
    def grpc_status(self) -> grpc.StatusCode:
        return _STATUS_BY_CODE[self.status_code]


class MockInterceptor:
    """
    Resolves, matches and materializes mocked calls.

    The store is shared by reference and only ever read.

    Example:
        interceptor = MockInterceptor(PING_SERVICE, load_mocks('mocks'))
        result = interceptor.intercept('Ping', PingRequest(ping='hello'))
        print(result.response.pong)
    """

    def __init__(self, service: ServiceSchema, store: MockStore, matcher: Optional[MockMatcher] = None):
        self.service = service
        self.store = store
        self.matcher = matcher or MockMatcher()

    def resolve(self, method: str) -> MethodSchema:
        """
        Look up a method of the mocked service.

        Raises:
            MethodNotFoundError: If the service declares no such method
        """
        try:
            return self.service.methods[method]
        except KeyError:
            raise MethodNotFoundError(method) from None

    def resolve_path(self, full_method: str) -> MethodSchema:
        """
        Resolve a transport method path of the form /<service>/<method>.

        Raises:
            MethodNotFoundError: If the path names another service or no
                known method
        """
        prefix = f"/{self.service.full_name}/"
        if not full_method.startswith(prefix):
            raise MethodNotFoundError(full_method)
        return self.resolve(full_method[len(prefix):])

    def intercept(
        self,
        method: str,
        request: Message,
        is_cancelled: Optional[Callable[[], bool]] = None
    ) -> CallResult:
        """
        Answer a call from the mock store.

        Args:
            method: Method name without the service prefix
            request: Deserialized request message
            is_cancelled: Returns True once the caller has abandoned the call

        Returns:
            CallResult with the materialized response and mocked status

        Raises:
            MethodNotFoundError: Unknown method
            NoMatchError: No mock pattern equals the request
            DecodeError: Matched response does not fit the response type
            CallCancelledError: Call was abandoned before responding
        """
        schema = self.resolve(method)
        canonical = canonicalize(request)

        match = self.matcher.find_match(self.store.get(schema.name), canonical)
        if not match.matched:
            logger.warning(f"No match found for {schema.name}: {match.reason}")
            raise NoMatchError(schema.name, canonical)

        logger.debug(f"{schema.name}: {match.reason}")
        response = materialize(schema.response_class, match.record.response)

        if is_cancelled is not None and is_cancelled():
            raise CallCancelledError(schema.name)

        return CallResult(
            method=schema.name,
            response=response,
            status_code=match.record.status_code,
            record_index=match.index,
        )
