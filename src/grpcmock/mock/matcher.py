"""
grpcmock Request Matcher

Finds the mock record whose request pattern equals an incoming request.

Matching is exact and order-respecting: records are scanned in the order
they appear in their mock file, and the first one whose pattern is
structurally equal to the canonical request wins. A pattern with a missing
or extra field never matches.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from .canonical import structurally_equal
from .store import MockRecord


@dataclass
class MatchResult:
    """Result of matching a request."""

    matched: bool
    record: Optional[MockRecord] = None
    index: Optional[int] = None
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'matched': self.matched,
            'index': self.index,
            'reason': self.reason,
        }


class MockMatcher:
    """
    First-match matcher over a method's mock records.

    Example:
        matcher = MockMatcher()
        result = matcher.find_match(store.get('Ping'), {'ping': 'hello'})

        if result.matched:
            print(f"Matched mock #{result.index}")
    """

    def find_match(self, records: Sequence[MockRecord], request: Dict[str, Any]) -> MatchResult:
        """
        Find the first record whose request pattern equals the request.

        Args:
            records: Mock records of one method, in file order
            request: Canonical request mapping

        Returns:
            MatchResult with the first matching record or no match
        """
        if not records:
            return MatchResult(matched=False, reason="No mocks configured for method")

        for index, record in enumerate(records):
            if structurally_equal(record.request, request):
                return MatchResult(
                    matched=True,
                    record=record,
                    index=index,
                    reason=f"Exact match with mock #{index}"
                )

        return MatchResult(
            matched=False,
            reason=f"None of {len(records)} mocks match the request"
        )
