"""
Differential comparison of reference and candidate eth_getLogs responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from getlogs_diff.normalizer import canonical_sort
from getlogs_diff.types import EndpointResponse, LogRecord, Status

_RECORD_FIELDS = (
    "block_number",
    "transaction_index",
    "log_index",
    "address",
    "topics",
    "data",
    "extra",
)


@dataclass(frozen=True)
class Divergence:
    """First point where two equal-length log sequences differ."""
    index: int
    field: str
    expected: Any
    actual: Any

    def describe(self) -> str:
        return (
            f"log #{self.index} {self.field}: "
            f"reference={self.expected!r} candidate={self.actual!r}"
        )


def compare(
    reference: EndpointResponse,
    candidate: EndpointResponse,
    order_sensitive: bool = False,
) -> Status:
    """
    Classify a pair of normalized responses.

    Args:
        reference: Response from the reference endpoint
        candidate: Response from the endpoint under test
        order_sensitive: Records are in arrival order rather than canonical
            order; a difference that vanishes after canonical sorting is
            reported as MATCH_DIFFERENT_ORDER instead of MATCH

    Returns:
        The Status of the pair. Failures win over everything, an empty pair
        always matches, and a count difference wins over content.
    """
    if not reference.ok or not candidate.ok:
        return Status.ERROR

    ref_records = reference.records
    cand_records = candidate.records

    if not ref_records and not cand_records:
        return Status.MATCH

    if len(ref_records) != len(cand_records):
        return Status.MISMATCH_COUNT

    if ref_records == cand_records:
        return Status.MATCH

    if order_sensitive and canonical_sort(ref_records) == canonical_sort(cand_records):
        return Status.MATCH_DIFFERENT_ORDER

    return Status.MISMATCH_CONTENT


def first_difference(
    reference: Sequence[LogRecord],
    candidate: Sequence[LogRecord],
) -> Optional[Divergence]:
    """Locate the first differing field between two record sequences."""
    for index, (ref, cand) in enumerate(zip(reference, candidate)):
        if ref == cand:
            continue
        for name in _RECORD_FIELDS:
            expected = getattr(ref, name)
            actual = getattr(cand, name)
            if expected != actual:
                return Divergence(index=index, field=name, expected=expected, actual=actual)
    if len(reference) != len(candidate):
        index = min(len(reference), len(candidate))
        return Divergence(
            index=index,
            field="count",
            expected=len(reference),
            actual=len(candidate),
        )
    return None
