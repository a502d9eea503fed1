"""
grpcmock Mock Store

Loads mock definitions from a directory into an immutable lookup table
keyed by RPC method name.

Each file in the directory holds the mocks for one method; the file name
without its extension is the method name. A file contains a list of mock
records:

    [
        {
            "Request": {"ping": "hello"},
            "Response": {"pong": "world"},
            "StatusCode": 0
        }
    ]

Files ending in .yaml or .yml are read with PyYAML, everything else as JSON.
Loading is all-or-nothing: the first bad file aborts the whole load.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

import grpc
import yaml

from .canonical import DynamicValue, freeze, kind_of, thaw
from .errors import LoadError


logger = logging.getLogger("grpcmock.store")

YAML_SUFFIXES = ('.yaml', '.yml')
RECORD_KEYS = ('Request', 'Response', 'StatusCode')
VALID_STATUS_CODES = frozenset(code.value[0] for code in grpc.StatusCode)


@dataclass(frozen=True)
class MockRecord:
    """
    A stored request pattern, the response to serve and its status.

    Request and response are deep-frozen on construction: mappings become
    read-only proxies and lists become tuples.
    """

    request: Mapping[str, DynamicValue] = field(default_factory=dict)
    response: Mapping[str, DynamicValue] = field(default_factory=dict)
    status_code: int = 0

    def __post_init__(self):
        object.__setattr__(self, 'request', freeze(self.request))
        object.__setattr__(self, 'response', freeze(self.response))

    @classmethod
    def from_dict(cls, data: Any, source: str = "<memory>") -> 'MockRecord':
        """
        Create MockRecord from a decoded mock file entry.

        Args:
            data: Decoded entry, expected to be a mapping
            source: Description of where the entry came from, for errors

        Returns:
            Validated MockRecord

        Raises:
            LoadError: If the entry has the wrong structure or value kinds
        """
        if not isinstance(data, dict):
            raise LoadError(f"{source}: mock must be an object, got {type(data).__name__}")

        unknown = sorted(set(data) - set(RECORD_KEYS))
        if unknown:
            raise LoadError(f"{source}: unknown mock keys {unknown}, expected {list(RECORD_KEYS)}")

        request = data.get('Request', {})
        response = data.get('Response', {})
        status_code = data.get('StatusCode', 0)

        for key, value in (('Request', request), ('Response', response)):
            if not isinstance(value, dict):
                raise LoadError(f"{source}: '{key}' must be an object, got {type(value).__name__}")
            _check_dynamic(value, f"{source}: {key}")

        if isinstance(status_code, bool) or not isinstance(status_code, int):
            raise LoadError(f"{source}: 'StatusCode' must be an integer, got {status_code!r}")
        if status_code not in VALID_STATUS_CODES:
            raise LoadError(f"{source}: 'StatusCode' {status_code} is not a gRPC status code")

        return cls(request=request, response=response, status_code=status_code)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the mock file representation."""
        return {
            'Request': thaw(self.request),
            'Response': thaw(self.response),
            'StatusCode': self.status_code,
        }


class MockStore:
    """
    Read-only table of mock records per RPC method.

    Built once by load_mocks() before serving starts. The method table is a
    MappingProxyType over tuples of frozen records, so concurrent handlers
    share it without locking.

    Example:
        store = load_mocks('mocks')
        for record in store.get('Ping'):
            print(record.request, record.response)
    """

    def __init__(self, mocks: Mapping[str, Tuple[MockRecord, ...]], source: Optional[Path] = None):
        self._mocks = MappingProxyType(dict(mocks))
        self.source = source

    def get(self, method: str) -> Tuple[MockRecord, ...]:
        """Records for a method in file order; empty for unknown methods."""
        return self._mocks.get(method, ())

    def methods(self) -> List[str]:
        return sorted(self._mocks)

    def record_count(self) -> int:
        return sum(len(records) for records in self._mocks.values())

    def as_mapping(self) -> Mapping[str, Tuple[MockRecord, ...]]:
        return self._mocks

    def __contains__(self, method: str) -> bool:
        return method in self._mocks

    def __len__(self) -> int:
        return len(self._mocks)


def load_mocks(directory) -> MockStore:
    """
    Load every mock file in a directory into a MockStore.

    Args:
        directory: Path to the mock directory

    Returns:
        MockStore keyed by method name

    Raises:
        LoadError: If the directory cannot be listed or any file is invalid
    """
    path = Path(directory)
    if not path.is_dir():
        raise LoadError(f"failed to read dir={path}: not a directory")

    try:
        entries = sorted(path.iterdir())
    except OSError as e:
        raise LoadError(f"failed to read dir={path}: {e}") from e

    mocks: Dict[str, Tuple[MockRecord, ...]] = {}
    origins: Dict[str, str] = {}

    for entry in entries:
        if entry.name.startswith('.') or entry.is_dir():
            logger.debug(f"Skipping {entry}")
            continue

        method = entry.stem
        if method in mocks:
            raise LoadError(
                f"duplicate mocks for method={method}: {origins[method]} and {entry.name}"
            )

        mocks[method] = load_mock_file(entry)
        origins[method] = entry.name
        logger.debug(f"Loaded {len(mocks[method])} mocks for {method} from {entry.name}")

    store = MockStore(mocks, source=path)
    logger.info(f"Loaded {store.record_count()} mocks for {len(store)} methods from {path}")
    return store


def load_mock_file(file_path: Path) -> Tuple[MockRecord, ...]:
    """
    Parse one mock file into its ordered records.

    Raises:
        LoadError: If the file cannot be read or does not hold a list of mocks
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            if file_path.suffix.lower() in YAML_SUFFIXES:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except OSError as e:
        raise LoadError(f"failed to open file={file_path.name}: {e}") from e
    except (json.JSONDecodeError, yaml.YAMLError, UnicodeDecodeError) as e:
        raise LoadError(f"failed to decode mock with file={file_path.name}: {e}") from e

    if not isinstance(data, list):
        raise LoadError(
            f"failed to decode mock with file={file_path.name}: "
            f"expected a list of mocks, got {type(data).__name__}"
        )

    return tuple(
        MockRecord.from_dict(item, source=f"{file_path.name}[{index}]")
        for index, item in enumerate(data)
    )


def _check_dynamic(value: Any, where: str):
    """Reject values that are not JSON-like (YAML can produce dates, sets...)."""
    try:
        kind_of(value)
    except TypeError as e:
        raise LoadError(f"{where}: {e}") from e

    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise LoadError(f"{where}: field names must be strings, got {key!r}")
            _check_dynamic(item, f"{where}.{key}")
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _check_dynamic(item, f"{where}[{index}]")
