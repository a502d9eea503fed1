"""
grpcmock CLI

Command-line interface for the grpcmock server.

Commands:
    serve       - Start the mock gRPC server
    call        - Call a method on a running server and print the response
    validate    - Check a mock directory against the service
    methods     - List the methods of the mocked service

Examples:
    # Serve mocks/ for the built-in ping.PingService
    grpcmock serve --mocks mocks --port 8080

    # Serve a custom service described by a protoc descriptor set
    grpcmock serve --descriptor-set service.pb --service shop.Inventory

    # Call Ping on a running server
    grpcmock call Ping --data '{"ping": "hello"}' --target localhost:8080
"""

import argparse
import json
import sys

import grpc

from .common.config import ConfigError, setup_logging
from .mock import (
    DecodeError,
    LoadError,
    MockConfig,
    MockServer,
    canonicalize,
    load_configured_service,
    load_mocks,
    materialize,
    validate_mocks,
)
from .service import SchemaError


def _load_config(args) -> MockConfig:
    """Build the configuration from --config and explicit command-line flags."""
    config = MockConfig.from_yaml(args.config) if args.config else MockConfig()

    overrides = {
        'mocks_dir': args.mocks,
        'descriptor_set': args.descriptor_set,
        'service': args.service,
        'host': getattr(args, 'host', None),
        'port': getattr(args, 'port', None),
        'max_workers': getattr(args, 'workers', None),
        'grace_period': getattr(args, 'grace', None),
        'admin_port': getattr(args, 'admin_port', None),
        'log_level': getattr(args, 'log_level', None),
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)

    if getattr(args, 'no_admin', False):
        config.admin_enabled = False

    return config


def cmd_serve(args):
    """
    Start the mock gRPC server.

    Args:
        args: Parsed command-line arguments
    """
    try:
        config = _load_config(args)
        setup_logging(config.log_level)
        server = MockServer(config=config)
    except (ConfigError, SchemaError, LoadError) as e:
        print(f"❌ Failed to start mock server: {e}")
        sys.exit(1)

    print(f"🎭 grpcmock server")
    print(f"   Service: {server.service.full_name} ({len(server.service.methods)} methods)")
    print(f"   Mocks: {server.store.record_count()} loaded from {config.mocks_dir}")
    print(f"   gRPC: {config.host}:{config.port}")
    if config.admin_enabled:
        print(f"   Admin API: http://{config.admin_host}:{config.admin_port}{config.admin_prefix}/metrics")
    print()

    try:
        server.serve_forever()
    except RuntimeError as e:
        print(f"❌ Failed to start mock server: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        pass

    print("\n👋 Mock server stopped")


def cmd_call(args):
    """
    Call a method on a running server and print the response as JSON.

    Args:
        args: Parsed command-line arguments
    """
    try:
        service = load_configured_service(_load_config(args))
    except (ConfigError, SchemaError) as e:
        print(f"❌ {e}")
        sys.exit(1)

    schema = service.methods.get(args.method)
    if schema is None:
        print(f"❌ {service.full_name} has no method {args.method}")
        print(f"   Available: {', '.join(service.method_names())}")
        sys.exit(1)

    try:
        request = materialize(schema.request_class, json.loads(args.data))
    except json.JSONDecodeError as e:
        print(f"❌ --data is not valid JSON: {e}")
        sys.exit(1)
    except DecodeError as e:
        print(f"❌ {e}")
        sys.exit(1)

    with grpc.insecure_channel(args.target) as channel:
        call = channel.unary_unary(
            schema.full_path,
            request_serializer=schema.request_class.SerializeToString,
            response_deserializer=schema.response_class.FromString
        )
        try:
            response = call(request, timeout=args.timeout)
        except grpc.RpcError as e:
            print(f"❌ {schema.full_path} failed: {e.code().name}: {e.details()}")
            sys.exit(1)

    print(json.dumps(canonicalize(response), indent=2))


def cmd_validate(args):
    """
    Validate a mock directory against the service and report issues.

    Args:
        args: Parsed command-line arguments
    """
    try:
        config = _load_config(args)
        service = load_configured_service(config)
        store = load_mocks(config.mocks_dir)
    except (ConfigError, SchemaError, LoadError) as e:
        print(f"❌ Failed to load mocks: {e}")
        sys.exit(1)

    print(f"✓ grpcmock Mock Validation")
    print(f"   Service: {service.full_name}")
    print(f"   Mocks: {store.record_count()} for {len(store)} methods in {config.mocks_dir}")
    print()

    errors, warnings = validate_mocks(service, store)

    if errors:
        print("❌ Errors found:")
        for error in errors:
            print(f"   • {error}")
        print()

    if warnings:
        print("⚠️  Warnings:")
        for warning in warnings:
            print(f"   • {warning}")
        print()

    if not errors and not warnings:
        print("✅ All validations passed!")
    else:
        print(f"📊 Summary:")
        print(f"   Errors: {len(errors)}")
        print(f"   Warnings: {len(warnings)}")

    if errors:
        sys.exit(1)


def cmd_methods(args):
    """
    List the methods of the mocked service with their message types.

    Args:
        args: Parsed command-line arguments
    """
    try:
        service = load_configured_service(_load_config(args))
    except (ConfigError, SchemaError) as e:
        print(f"❌ {e}")
        sys.exit(1)

    print(f"{service.full_name}:")
    for name in service.method_names():
        method = service.methods[name]
        print(
            f"  {name}({method.request_descriptor.full_name}) "
            f"returns ({method.response_descriptor.full_name})"
        )


def _add_service_arguments(parser: argparse.ArgumentParser):
    parser.add_argument('-c', '--config', help='YAML config file')
    parser.add_argument('-m', '--mocks', help='Mock directory, one file per method (default: mocks)')
    parser.add_argument('--descriptor-set', help='FileDescriptorSet of the service (protoc --descriptor_set_out)')
    parser.add_argument('--service', help='Fully qualified service name, e.g. shop.Inventory')


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog='grpcmock',
        description="grpcmock - answer gRPC calls from file-defined mocks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start the mock server
  %(prog)s serve --mocks mocks --port 8080

  # Call a method and dump the response
  %(prog)s call Ping --data '{"ping": "hello"}'

  # Check mocks before serving them
  %(prog)s validate --mocks mocks
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # --- SERVE command ---
    serve_parser = subparsers.add_parser('serve', help='Start the mock gRPC server')
    _add_service_arguments(serve_parser)
    serve_parser.add_argument('--host', help='Host to bind (default: 127.0.0.1)')
    serve_parser.add_argument('-p', '--port', type=int, help='gRPC port to bind (default: 8080)')
    serve_parser.add_argument('-w', '--workers', type=int, help='Call handling threads (default: 10)')
    serve_parser.add_argument('--grace', type=float, help='Shutdown grace period in seconds (default: 5)')
    serve_parser.add_argument('--no-admin', action='store_true', help='Disable admin API')
    serve_parser.add_argument('--admin-port', type=int, help='Admin API port (default: 8081)')
    serve_parser.add_argument('--log-level', choices=['debug', 'info', 'warning', 'error'],
                              help='Log level (default: info)')

    # --- CALL command ---
    call_parser = subparsers.add_parser('call', help='Call a method on a running server')
    _add_service_arguments(call_parser)
    call_parser.add_argument('method', help='Method name, e.g. Ping')
    call_parser.add_argument('-d', '--data', default='{}', help='Request as JSON (default: {})')
    call_parser.add_argument('-t', '--target', default='localhost:8080', help='Server address (default: localhost:8080)')
    call_parser.add_argument('--timeout', type=float, default=10.0, help='Call timeout in seconds (default: 10)')

    # --- VALIDATE command ---
    validate_parser = subparsers.add_parser('validate', help='Validate a mock directory')
    _add_service_arguments(validate_parser)

    # --- METHODS command ---
    methods_parser = subparsers.add_parser('methods', help='List methods of the mocked service')
    _add_service_arguments(methods_parser)

    args = parser.parse_args(argv)

    if args.command == 'serve':
        cmd_serve(args)
    elif args.command == 'call':
        cmd_call(args)
    elif args.command == 'validate':
        cmd_validate(args)
    elif args.command == 'methods':
        cmd_methods(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == '__main__':
    main()
