"""
Tests for grpcmock Interceptor

Tests the call pipeline including:
- Method resolution by name and by transport path
- Matched calls with OK and non-OK mocked status codes
- Unmatched calls, unknown methods and undecodable responses
- Cancellation
- Store left unmodified by calls
"""

import grpc
import pytest

from grpcmock.mock.errors import (
    CallCancelledError,
    DecodeError,
    MethodNotFoundError,
    NoMatchError,
)
from grpcmock.mock.interceptor import CallResult, MockInterceptor
from grpcmock.mock.store import MockRecord, MockStore, load_mocks
from grpcmock.service import PING_SERVICE, PingRequest, PingResponse


@pytest.fixture
def interceptor(mock_dir):
    """Interceptor for ping.PingService over the Ping.json fixture."""
    return MockInterceptor(PING_SERVICE, load_mocks(mock_dir))


class TestCallResult:
    """Test CallResult status helpers."""

    def test_ok(self):
        result = CallResult(method='Ping', response=PingResponse())

        assert result.ok
        assert result.grpc_status == grpc.StatusCode.OK

    def test_non_ok(self):
        result = CallResult(method='Ping', response=PingResponse(), status_code=14)

        assert not result.ok
        assert result.grpc_status == grpc.StatusCode.UNAVAILABLE


class TestResolve:
    """Test method resolution."""

    def test_resolve_known_method(self, interceptor):
        schema = interceptor.resolve('Ping')

        assert schema.name == 'Ping'
        assert schema.full_path == '/ping.PingService/Ping'

    def test_resolve_unknown_method(self, interceptor):
        with pytest.raises(MethodNotFoundError, match="did not find method=Echo") as exc_info:
            interceptor.resolve('Echo')

        assert exc_info.value.grpc_status == grpc.StatusCode.UNIMPLEMENTED

    def test_resolve_path(self, interceptor):
        assert interceptor.resolve_path('/ping.PingService/Ping').name == 'Ping'

    @pytest.mark.parametrize("path", [
        '/ping.PingService/Echo',
        '/other.Service/Ping',
        'Ping',
        '/ping.PingService/',
    ])
    def test_resolve_bad_path(self, interceptor, path):
        with pytest.raises(MethodNotFoundError):
            interceptor.resolve_path(path)


class TestIntercept:
    """Test MockInterceptor.intercept."""

    def test_matched_call(self, interceptor):
        """Test a matching request is answered with the mocked response."""
        result = interceptor.intercept('Ping', PingRequest(ping="hello"))

        assert result.ok
        assert result.method == 'Ping'
        assert result.record_index == 0
        assert isinstance(result.response, PingResponse)
        assert result.response.pong == "world"

    def test_mocked_status_code(self, interceptor):
        """Test the status of the matched record is reported with the response."""
        result = interceptor.intercept('Ping', PingRequest(ping="down"))

        assert not result.ok
        assert result.status_code == 14
        assert result.grpc_status == grpc.StatusCode.UNAVAILABLE
        assert result.response == PingResponse()

    def test_no_match(self, interceptor):
        """Test an unmatched request raises NoMatchError."""
        with pytest.raises(NoMatchError) as exc_info:
            interceptor.intercept('Ping', PingRequest(ping="goodbye"))

        error = exc_info.value
        assert error.method == 'Ping'
        assert error.request == {'ping': 'goodbye'}
        assert error.grpc_status == grpc.StatusCode.NOT_FOUND

    def test_empty_request_needs_explicit_mock(self, interceptor):
        """Test a request at default values only matches a pattern for the defaults."""
        with pytest.raises(NoMatchError):
            interceptor.intercept('Ping', PingRequest())

    def test_unknown_method(self, interceptor):
        """Test a method the service does not declare raises MethodNotFoundError."""
        with pytest.raises(MethodNotFoundError):
            interceptor.intercept('Echo', PingRequest(ping="hello"))

    def test_method_without_mocks(self):
        interceptor = MockInterceptor(PING_SERVICE, MockStore({}))

        with pytest.raises(NoMatchError):
            interceptor.intercept('Ping', PingRequest(ping="hello"))

    def test_first_match_wins(self):
        store = MockStore({'Ping': (
            MockRecord(request={'ping': 'a'}, response={'pong': 'first'}),
            MockRecord(request={'ping': 'a'}, response={'pong': 'second'}),
        )})
        interceptor = MockInterceptor(PING_SERVICE, store)

        result = interceptor.intercept('Ping', PingRequest(ping="a"))

        assert result.response.pong == "first"
        assert result.record_index == 0

    def test_undecodable_response(self):
        """Test a response that does not fit the response type raises DecodeError."""
        store = MockStore({'Ping': (
            MockRecord(request={'ping': 'a'}, response={'bogus': 'value'}),
        )})
        interceptor = MockInterceptor(PING_SERVICE, store)

        with pytest.raises(DecodeError) as exc_info:
            interceptor.intercept('Ping', PingRequest(ping="a"))

        assert exc_info.value.grpc_status == grpc.StatusCode.INTERNAL

    def test_cancelled_call(self, interceptor):
        """Test an abandoned call is not answered."""
        with pytest.raises(CallCancelledError) as exc_info:
            interceptor.intercept('Ping', PingRequest(ping="hello"), is_cancelled=lambda: True)

        assert exc_info.value.grpc_status == grpc.StatusCode.CANCELLED

    def test_active_call(self, interceptor):
        result = interceptor.intercept('Ping', PingRequest(ping="hello"), is_cancelled=lambda: False)

        assert result.response.pong == "world"

    def test_nested_request(self, shop_service, item_request_class, item_class):
        """Test matching on a request with nested, repeated and enum fields."""
        store = MockStore({'GetItem': (
            MockRecord(
                request={
                    'sku': 'SKU-1', 'quantity': 2, 'gift': False,
                    'size': {'width': 10, 'height': 20},
                    'tags': ['new'], 'stock': {}, 'color': 'RED',
                    'weight': 0, 'blob': '', 'note': None,
                },
                response={'sku': 'SKU-1', 'name': 'Chair', 'price': 99, 'color': 'RED'},
            ),
        )})
        interceptor = MockInterceptor(shop_service, store)

        request = item_request_class(sku="SKU-1", quantity=2, tags=["new"], color=1)
        request.size.width = 10
        request.size.height = 20

        result = interceptor.intercept('GetItem', request)

        assert isinstance(result.response, item_class)
        assert result.response.name == "Chair"
        assert result.response.price == 99

    def test_streaming_method_not_mocked(self, shop_service, item_request_class):
        interceptor = MockInterceptor(shop_service, MockStore({}))

        with pytest.raises(MethodNotFoundError):
            interceptor.intercept('WatchItem', item_request_class())

    def test_store_not_modified(self, interceptor):
        """Test calls never change the mock store."""
        before = {
            method: [record.to_dict() for record in interceptor.store.get(method)]
            for method in interceptor.store.methods()
        }

        interceptor.intercept('Ping', PingRequest(ping="hello"))
        with pytest.raises(NoMatchError):
            interceptor.intercept('Ping', PingRequest(ping="goodbye"))

        after = {
            method: [record.to_dict() for record in interceptor.store.get(method)]
            for method in interceptor.store.methods()
        }
        assert after == before
