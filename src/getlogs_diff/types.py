"""Core types for eth_getLogs differential comparison.

A campaign repeatedly resolves the chain head, turns each scenario template
into a concrete block range, fetches the logs from a reference and a
candidate endpoint and classifies the pair of responses.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Tuple, Union

from getlogs_diff.errors import FailureKind, FetchError

AddressFilter = Union[str, Tuple[str, ...]]
TopicEntry = Union[None, str, Tuple[str, ...]]


class Status(Enum):
    MATCH = "MATCH"
    MATCH_DIFFERENT_ORDER = "MATCH_DIFFERENT_ORDER"
    MISMATCH_COUNT = "MISMATCH_COUNT"
    MISMATCH_CONTENT = "MISMATCH_CONTENT"
    ERROR = "ERROR"

    @property
    def is_mismatch(self) -> bool:
        return self in (Status.MISMATCH_COUNT, Status.MISMATCH_CONTENT)

    @property
    def is_issue(self) -> bool:
        return self.is_mismatch or self is Status.ERROR


class CampaignOutcome(Enum):
    COMPLETED = "completed"
    STOPPED_ON_ERROR = "stopped_on_error"
    INTERRUPTED = "interrupted"


@dataclass(frozen=True)
class LogRecord:
    block_number: int
    transaction_index: int
    log_index: int
    address: str
    topics: Tuple[str, ...] = ()
    data: str = "0x"
    # Remaining RPC fields as (key, canonical JSON) pairs, sorted by key
    extra: Tuple[Tuple[str, str], ...] = ()

    def sort_key(self) -> Tuple[int, int, int]:
        return (self.block_number, self.transaction_index, self.log_index)

    def to_json(self) -> dict:
        out = {key: json.loads(value) for key, value in self.extra}
        out.update(
            {
                "address": self.address,
                "topics": list(self.topics),
                "data": self.data,
                "blockNumber": hex(self.block_number),
                "transactionIndex": hex(self.transaction_index),
                "logIndex": hex(self.log_index),
            }
        )
        return out


@dataclass(frozen=True)
class QuerySpec:
    from_block: int
    to_block: int
    address: Optional[AddressFilter] = None
    topics: Optional[Tuple[TopicEntry, ...]] = None

    def __post_init__(self) -> None:
        if self.from_block < 0:
            raise ValueError(f"from_block must be non-negative, got {self.from_block}")
        if self.from_block > self.to_block:
            raise ValueError(
                f"from_block {self.from_block} is after to_block {self.to_block}"
            )

    @property
    def block_count(self) -> int:
        return self.to_block - self.from_block + 1


@dataclass(frozen=True)
class ScenarioTemplate:
    """A block window relative to the chain head, plus optional filters.

    ``from_offset`` and ``to_offset`` count blocks behind the latest block, so
    ``from_offset >= to_offset``.
    """

    scenario_id: str
    description: str
    from_offset: int
    to_offset: int
    address: Optional[AddressFilter] = None
    topics: Optional[Tuple[TopicEntry, ...]] = None

    def __post_init__(self) -> None:
        if self.to_offset < 0:
            raise ValueError(f"{self.scenario_id}: to_offset must be non-negative")
        if self.from_offset < self.to_offset:
            raise ValueError(
                f"{self.scenario_id}: from_offset {self.from_offset} "
                f"must be >= to_offset {self.to_offset}"
            )


@dataclass(frozen=True)
class EndpointResponse:
    endpoint: str
    latency_ms: float
    records: Optional[Tuple[LogRecord, ...]] = None
    failure: Optional[FetchError] = None

    def __post_init__(self) -> None:
        if (self.records is None) == (self.failure is None):
            raise ValueError("EndpointResponse needs exactly one of records or failure")

    @classmethod
    def succeeded(
        cls, endpoint: str, records: Iterable[LogRecord], latency_ms: float
    ) -> "EndpointResponse":
        return cls(endpoint=endpoint, latency_ms=latency_ms, records=tuple(records))

    @classmethod
    def failed(
        cls, endpoint: str, failure: FetchError, latency_ms: float
    ) -> "EndpointResponse":
        return cls(endpoint=endpoint, latency_ms=latency_ms, failure=failure)

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def count(self) -> Optional[int]:
        return len(self.records) if self.records is not None else None

    @property
    def received(self) -> bool:
        """False when no response body arrived at all."""
        return self.failure is None or self.failure.kind is not FailureKind.TRANSPORT


@dataclass(frozen=True)
class ComparisonResult:
    scenario_id: str
    description: str
    iteration: int
    timestamp: str
    query: QuerySpec
    reference: EndpointResponse
    candidate: EndpointResponse
    status: Status
    detail: Optional[str] = None


@dataclass(frozen=True)
class IterationFailure:
    iteration: int
    timestamp: str
    reason: str


@dataclass
class CampaignState:
    """Counters for one campaign run, owned by the runner's control loop."""

    iterations_completed: int = 0
    total_comparisons: int = 0
    total_matches: int = 0
    total_errors: int = 0
    total_mismatches: int = 0
    iteration_failures: int = 0
    last_iteration_issues: int = 0
    issues_by_scenario: dict[str, int] = field(default_factory=dict)

    def record_iteration(self, results: Iterable[ComparisonResult]) -> None:
        issues = 0
        for result in results:
            self.total_comparisons += 1
            if result.status is Status.ERROR:
                self.total_errors += 1
            elif result.status.is_mismatch:
                self.total_mismatches += 1
            else:
                self.total_matches += 1
            if result.status.is_issue:
                issues += 1
                self.issues_by_scenario[result.scenario_id] = (
                    self.issues_by_scenario.get(result.scenario_id, 0) + 1
                )
        self.iterations_completed += 1
        self.last_iteration_issues = issues

    def record_iteration_failure(self, failure: IterationFailure) -> None:
        self.iteration_failures += 1
        self.total_errors += 1
        self.iterations_completed += 1
        self.last_iteration_issues = 1

    @property
    def has_issues(self) -> bool:
        return self.total_errors > 0 or self.total_mismatches > 0
