"""
grpcmock Mock Validation

Offline checks of a mock store against the service it mocks: unknown
methods, request patterns that can never match, responses that cannot be
materialized, and mocks shadowed by an earlier identical pattern.
"""

from typing import List, Tuple

from ..service.descriptor import ServiceSchema
from .canonical import canonicalize, structurally_equal
from .errors import DecodeError
from .materializer import materialize
from .store import MockStore


def validate_mocks(service: ServiceSchema, store: MockStore) -> Tuple[List[str], List[str]]:
    """
    Check every loaded mock against the service's method table.

    Args:
        service: Service being mocked
        store: Loaded mock store

    Returns:
        Tuple of (errors, warnings) as human-readable messages
    """
    errors = []
    warnings = []

    for method in store.methods():
        schema = service.methods.get(method)
        if schema is None:
            errors.append(f"{method}: {service.full_name} declares no such method")
            continue

        vocabulary = set(canonicalize(schema.request_class()))
        records = store.get(method)

        for index, record in enumerate(records):
            label = f"{method}[{index}]"

            missing = sorted(vocabulary - set(record.request))
            extra = sorted(set(record.request) - vocabulary)
            if missing or extra:
                details = []
                if missing:
                    details.append(f"missing fields {missing}")
                if extra:
                    details.append(f"unknown fields {extra}")
                errors.append(f"{label}: request can never match ({', '.join(details)})")
            else:
                try:
                    request = materialize(schema.request_class, record.request)
                except DecodeError as e:
                    errors.append(f"{label}: request can never match ({e})")
                else:
                    if not structurally_equal(canonicalize(request), record.request):
                        errors.append(f"{label}: request can never match (values do not round-trip)")

            try:
                materialize(schema.response_class, record.response)
            except DecodeError as e:
                errors.append(f"{label}: {e}")

            for earlier in range(index):
                if structurally_equal(records[earlier].request, record.request):
                    warnings.append(f"{label}: shadowed by {method}[{earlier}] with the same request")
                    break

    for method in service.method_names():
        if method not in store:
            warnings.append(f"{method}: no mocks configured, every call will fail with NOT_FOUND")

    return errors, warnings
