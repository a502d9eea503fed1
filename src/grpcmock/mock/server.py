"""
grpcmock Mock Server

gRPC server that answers every call from file-defined mocks.

Features:
- One generic handler for all methods of the mocked service
- Exact, first-match request matching
- Mocked gRPC status codes
- Graceful shutdown on SIGINT/SIGTERM
- Read-only admin API and call metrics
"""

import logging
import signal
import socket
import threading
from concurrent import futures
from dataclasses import dataclass, field, fields
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Any, Dict, Optional

import grpc
import uvicorn

from ..common.config import ConfigError, load_yaml_config
from ..service.descriptor import MethodSchema, ServiceSchema, load_service
from ..service.ping import PING_SERVICE
from .admin import create_admin_app
from .errors import MethodNotFoundError, MockError, NoMatchError
from .interceptor import MockInterceptor
from .store import MockStore, load_mocks


logger = logging.getLogger("grpcmock.mock")


@dataclass
class MockConfig:
    """Configuration for mock server behavior."""

    # Mock source
    mocks_dir: str = "mocks"

    # Service description (defaults to the built-in ping.PingService)
    descriptor_set: Optional[str] = None  # FileDescriptorSet file from protoc
    service: Optional[str] = None  # Fully qualified service name in the set

    # Server options
    host: str = "127.0.0.1"
    port: int = 8080
    max_workers: int = 10
    grace_period: float = 5.0  # Seconds in-flight calls get to finish on shutdown
    log_level: str = "info"

    # Admin API
    admin_enabled: bool = True
    admin_host: str = "127.0.0.1"
    admin_port: int = 8081
    admin_prefix: str = "/__admin__"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MockConfig':
        """
        Create MockConfig from a mapping of option names to values.

        Raises:
            ConfigError: If the mapping names an unknown option
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config options: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'MockConfig':
        """Load configuration from a YAML file."""
        return cls.from_dict(load_yaml_config(yaml_path))


@dataclass
class MockMetrics:
    """Track mock server call metrics. Safe to update from handler threads."""

    total_calls: int = 0
    matched_calls: int = 0
    unmatched_calls: int = 0
    failed_calls: int = 0
    calls_by_method: Dict[str, int] = field(default_factory=dict)
    start_time: str = field(default_factory=lambda: datetime.now().isoformat())
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, method: str, outcome: str):
        """
        Count one call.

        Args:
            method: Method name (or full path for unknown methods)
            outcome: One of 'matched', 'unmatched', 'failed'
        """
        with self._lock:
            self.total_calls += 1
            self.calls_by_method[method] = self.calls_by_method.get(method, 0) + 1
            if outcome == 'matched':
                self.matched_calls += 1
            elif outcome == 'unmatched':
                self.unmatched_calls += 1
            else:
                self.failed_calls += 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        with self._lock:
            uptime_seconds = (datetime.now() - datetime.fromisoformat(self.start_time)).total_seconds()
            return {
                'total_calls': self.total_calls,
                'matched_calls': self.matched_calls,
                'unmatched_calls': self.unmatched_calls,
                'failed_calls': self.failed_calls,
                'match_rate': round((self.matched_calls / self.total_calls * 100) if self.total_calls > 0 else 0, 2),
                'calls_by_method': dict(self.calls_by_method),
                'uptime_seconds': round(uptime_seconds, 2),
                'start_time': self.start_time
            }


def load_configured_service(config: MockConfig) -> ServiceSchema:
    """
    Service named by the configuration, or ping.PingService if none is.

    Raises:
        ConfigError: If a descriptor set is given without a service name
        SchemaError: If the descriptor set cannot be loaded
    """
    if not config.descriptor_set:
        return PING_SERVICE
    if not config.service:
        raise ConfigError("'service' is required when 'descriptor_set' is configured")
    return load_service(Path(config.descriptor_set), config.service)


class MockRpcHandler(grpc.GenericRpcHandler):
    """
    Generic gRPC handler invoked for every incoming call.

    Known methods are deserialized with their declared request type and
    answered by the MockInterceptor. Unknown methods fail with UNIMPLEMENTED.
    Errors only fail the call at hand; the server keeps serving.
    """

    def __init__(self, interceptor: MockInterceptor, metrics: Optional[MockMetrics] = None):
        self.interceptor = interceptor
        self.metrics = metrics or MockMetrics()

    def service(self, handler_call_details):
        full_method = handler_call_details.method
        try:
            schema = self.interceptor.resolve_path(full_method)
        except MethodNotFoundError as e:
            logger.warning(f"Unknown method called: {full_method}")
            return grpc.unary_unary_rpc_method_handler(partial(self._reject, e))

        return grpc.unary_unary_rpc_method_handler(
            partial(self._handle, schema),
            request_deserializer=schema.request_class.FromString,
            response_serializer=schema.response_class.SerializeToString
        )

    def _reject(self, error: MethodNotFoundError, request: bytes, context: grpc.ServicerContext):
        self.metrics.record(error.method, 'failed')
        context.abort(error.grpc_status, str(error))

    def _handle(self, schema: MethodSchema, request, context: grpc.ServicerContext):
        """Answer one call from the mock store."""
        logger.debug(f"Incoming: {schema.full_path}")

        try:
            result = self.interceptor.intercept(
                schema.name,
                request,
                is_cancelled=lambda: not context.is_active()
            )
        except NoMatchError as e:
            self.metrics.record(schema.name, 'unmatched')
            context.abort(e.grpc_status, str(e))
        except MockError as e:
            logger.warning(f"Call to {schema.name} failed: {e}")
            self.metrics.record(schema.name, 'failed')
            context.abort(e.grpc_status, str(e))
        except Exception:  # noqa: BLE001
            logger.exception(f"Unhandled error for {schema.full_path}")
            self.metrics.record(schema.name, 'failed')
            context.abort(grpc.StatusCode.INTERNAL, f"internal error handling method={schema.name}")

        self.metrics.record(schema.name, 'matched')

        if not result.ok:
            logger.debug(f"{schema.name}: mock #{result.record_index} returns {result.grpc_status.name}")
            context.abort(
                result.grpc_status,
                f"mock for method={schema.name} returned status {result.grpc_status.name}"
            )

        logger.debug(f"{schema.name}: served mock #{result.record_index}")
        return result.response


class MockServer:
    """
    gRPC server serving responses from a mock directory.

    The mock store is loaded completely before the server binds; a load
    failure raises LoadError and nothing is started.

    Example:
        server = MockServer(MockConfig(mocks_dir='mocks', port=8080))
        server.serve_forever()

        # Or in-process, e.g. in tests
        server = MockServer(MockConfig(port=0, admin_enabled=False))
        port = server.start()
        ...
        server.stop()
    """

    def __init__(
        self,
        config: Optional[MockConfig] = None,
        service: Optional[ServiceSchema] = None,
        store: Optional[MockStore] = None
    ):
        """
        Initialize mock server.

        Args:
            config: Optional MockConfig for server behavior
            service: Service to mock (loaded from config, or ping.PingService)
            store: Preloaded mock store (loaded from config.mocks_dir if None)

        Raises:
            LoadError: If the mock directory cannot be loaded
            SchemaError: If the configured descriptor set cannot be loaded
            ConfigError: If the configuration is inconsistent
        """
        self.config = config or MockConfig()
        self.logger = logger
        self.logger.setLevel(getattr(logging, self.config.log_level.upper()))

        self.service = service or load_configured_service(self.config)
        self.store = store if store is not None else load_mocks(self.config.mocks_dir)
        self.metrics = MockMetrics()

        self.interceptor = MockInterceptor(self.service, self.store)
        self.handler = MockRpcHandler(self.interceptor, self.metrics)

        self.port: Optional[int] = None
        self._server: Optional[grpc.Server] = None
        self._stopped = threading.Event()

        self._warn_undeclared_methods()

    def _warn_undeclared_methods(self):
        for method in self.store.methods():
            if method not in self.service.methods:
                self.logger.warning(
                    f"Mocks loaded for {method}, which {self.service.full_name} does not declare"
                )

    @property
    def is_serving(self) -> bool:
        return self._server is not None and not self._stopped.is_set()

    def start(self) -> int:
        """
        Bind and start the gRPC server without blocking.

        Returns:
            Port the server listens on

        Raises:
            RuntimeError: If the server is already running or cannot bind
        """
        if self._server is not None:
            raise RuntimeError("Server already running")

        address = f"{self.config.host}:{self.config.port}"
        server = grpc.server(
            futures.ThreadPoolExecutor(max_workers=self.config.max_workers),
            handlers=[self.handler]
        )
        try:
            port = server.add_insecure_port(address)
        except RuntimeError as e:
            raise RuntimeError(f"failed to listen on {address}: {e}") from e
        if port == 0:
            raise RuntimeError(f"failed to listen on {address}")

        server.start()
        self._server = server
        self.port = port
        self._stopped.clear()
        self.logger.info(f"Mocking {self.service.full_name} on {self.config.host}:{port}")
        return port

    def stop(self, grace: Optional[float] = None) -> threading.Event:
        """
        Stop accepting calls; in-flight calls get `grace` seconds to finish.

        Returns:
            Event set once the server has fully stopped
        """
        if self._server is None:
            self._stopped.set()
            return self._stopped

        grace = self.config.grace_period if grace is None else grace
        self.logger.info(f"Stopping mock server (grace period {grace}s)")
        done = self._server.stop(grace)
        self._stopped.set()
        return done

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the server terminates. Returns False on timeout."""
        if self._server is None:
            return True
        return self._server.wait_for_termination(timeout) is False

    def serve_forever(self):
        """
        Start serving and block until interrupted.

        With the admin API enabled, its port is bound before the gRPC port so
        a taken admin port fails startup before any call is accepted. uvicorn
        then runs in the foreground and owns signal handling; the gRPC server
        is stopped once it exits. Otherwise SIGINT/SIGTERM trigger a graceful
        stop.

        Raises:
            RuntimeError: If the admin or gRPC address cannot be bound
        """
        admin_socket = self.bind_admin_socket() if self.config.admin_enabled else None
        try:
            self.start()
        except RuntimeError:
            if admin_socket is not None:
                admin_socket.close()
            raise

        try:
            if admin_socket is not None:
                admin_server = uvicorn.Server(uvicorn.Config(
                    create_admin_app(self),
                    log_level=self.config.log_level
                ))
                admin_server.run(sockets=[admin_socket])
            else:
                self._install_signal_handlers()
                self.wait()
        finally:
            self.stop().wait()
            if admin_socket is not None:
                admin_socket.close()

    def bind_admin_socket(self) -> socket.socket:
        """
        Bind the admin API address.

        Returns:
            Bound socket, handed to uvicorn which starts listening on it

        Raises:
            RuntimeError: If the admin address cannot be bound
        """
        host, port = self.config.admin_host, self.config.admin_port
        family = socket.AF_INET6 if ':' in host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
        except OSError as e:
            sock.close()
            raise RuntimeError(f"failed to listen on admin {host}:{port}: {e}") from e
        return sock

    def _install_signal_handlers(self):
        def handle_signal(signum, frame):
            self.logger.info(f"Received {signal.Signals(signum).name}, shutting down")
            self.stop()

        signal.signal(signal.SIGINT, handle_signal)
        signal.signal(signal.SIGTERM, handle_signal)

    def get_admin_app(self):
        """
        Get the admin FastAPI app for testing or custom deployment.

        Returns:
            FastAPI application instance
        """
        return create_admin_app(self)


def create_mock_server(
    mocks_dir: str = "mocks",
    host: str = "127.0.0.1",
    port: int = 8080,
    max_workers: int = 10,
    descriptor_set: Optional[str] = None,
    service: Optional[str] = None,
    admin_enabled: bool = True,
    admin_port: int = 8081,
    log_level: str = "info"
) -> MockServer:
    """
    Convenience function to create and configure a mock server.

    Args:
        mocks_dir: Directory with one mock file per method
        host: Host to bind to
        port: Port to bind to (0 picks a free port)
        max_workers: Size of the call handling thread pool
        descriptor_set: FileDescriptorSet describing the service to mock
        service: Fully qualified service name inside the descriptor set
        admin_enabled: Serve the admin API alongside gRPC
        admin_port: Admin API port
        log_level: Log level name

    Returns:
        Configured MockServer instance

    Example:
        server = create_mock_server('mocks', port=50051, admin_enabled=False)
        server.serve_forever()
    """
    config = MockConfig(
        mocks_dir=mocks_dir,
        host=host,
        port=port,
        max_workers=max_workers,
        descriptor_set=descriptor_set,
        service=service,
        admin_enabled=admin_enabled,
        admin_port=admin_port,
        log_level=log_level
    )

    return MockServer(config=config)
