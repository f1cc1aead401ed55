"""Durable storage for comparison results.

The campaign appends one row per scenario per iteration and reads the totals
back for the final summary, so the summary always agrees with what was
written.
"""

from __future__ import annotations

import csv
import json
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from getlogs_diff.query import query_to_params
from getlogs_diff.types import (
    ComparisonResult,
    EndpointResponse,
    IterationFailure,
    Status,
)

SUMMARY_COLUMNS = [
    "iteration",
    "timestamp",
    "scenario_id",
    "description",
    "from_block",
    "to_block",
    "ref_log_count",
    "test_log_count",
    "ref_latency_ms",
    "test_latency_ms",
    "status",
]
FAILURE_COLUMNS = ["iteration", "timestamp", "reason"]

# Written in count/latency columns for a side that failed
FAILURE_MARKER = "error"


@dataclass
class SinkTotals:
    comparisons: int = 0
    matches: int = 0
    matches_different_order: int = 0
    mismatches: int = 0
    errors: int = 0
    iteration_failures: int = 0

    @property
    def issues(self) -> int:
        return self.mismatches + self.errors + self.iteration_failures

    def add_status(self, status: str) -> None:
        self.comparisons += 1
        if status == Status.MATCH.value:
            self.matches += 1
        elif status == Status.MATCH_DIFFERENT_ORDER.value:
            self.matches_different_order += 1
        elif status == Status.ERROR.value:
            self.errors += 1
        else:
            self.mismatches += 1


def result_to_row(result: ComparisonResult) -> Dict[str, Any]:
    """Flatten a comparison into a summary row."""

    def count(response: EndpointResponse) -> Any:
        return response.count if response.ok else FAILURE_MARKER

    def latency(response: EndpointResponse) -> Any:
        return round(response.latency_ms) if response.received else FAILURE_MARKER

    return {
        "iteration": result.iteration,
        "timestamp": result.timestamp,
        "scenario_id": result.scenario_id,
        "description": result.description,
        "from_block": result.query.from_block,
        "to_block": result.query.to_block,
        "ref_log_count": count(result.reference),
        "test_log_count": count(result.candidate),
        "ref_latency_ms": latency(result.reference),
        "test_latency_ms": latency(result.candidate),
        "status": result.status.value,
    }


class ResultSink:
    """Interface for result storage."""

    def append(self, result: ComparisonResult) -> None:
        raise NotImplementedError

    def record_iteration_failure(self, failure: IterationFailure) -> None:
        raise NotImplementedError

    def totals(self) -> SinkTotals:
        raise NotImplementedError

    def issues(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Most recent rows whose status is an error or mismatch."""
        raise NotImplementedError

    @property
    def location(self) -> Optional[str]:
        return None


class MemoryResultSink(ResultSink):
    """Keeps results in memory for callers that embed the runner."""

    def __init__(self) -> None:
        self.results: List[ComparisonResult] = []
        self.failures: List[IterationFailure] = []

    def append(self, result: ComparisonResult) -> None:
        self.results.append(result)

    def record_iteration_failure(self, failure: IterationFailure) -> None:
        self.failures.append(failure)

    def totals(self) -> SinkTotals:
        totals = SinkTotals(iteration_failures=len(self.failures))
        for result in self.results:
            totals.add_status(result.status.value)
        return totals

    def issues(self, limit: int = 20) -> List[Dict[str, Any]]:
        rows = [result_to_row(r) for r in self.results if r.status.is_issue]
        return rows[-limit:] if limit else rows


class CsvResultSink(ResultSink):
    """
    Appends results to ``summary.csv`` in the output directory.

    Iteration-level failures go to ``iteration_failures.csv``. With
    ``save_responses`` every comparison is also dumped as JSON under
    ``responses/``.
    """

    def __init__(self, output_dir: str, save_responses: bool = False):
        self.output_dir = output_dir
        self.save_responses = save_responses
        self.summary_path = os.path.join(output_dir, "summary.csv")
        self.failures_path = os.path.join(output_dir, "iteration_failures.csv")
        self.responses_dir = os.path.join(output_dir, "responses")

        os.makedirs(output_dir, exist_ok=True)
        self._write_header(self.summary_path, SUMMARY_COLUMNS)
        self._write_header(self.failures_path, FAILURE_COLUMNS)
        if save_responses:
            os.makedirs(self.responses_dir, exist_ok=True)

    @property
    def location(self) -> Optional[str]:
        return self.output_dir

    @staticmethod
    def _write_header(path: str, columns: List[str]) -> None:
        with open(path, "w", newline="") as f:
            csv.writer(f).writerow(columns)

    def append(self, result: ComparisonResult) -> None:
        with open(self.summary_path, "a", newline="") as f:
            csv.DictWriter(f, fieldnames=SUMMARY_COLUMNS).writerow(result_to_row(result))
        if self.save_responses:
            self._write_artifact(result)

    def record_iteration_failure(self, failure: IterationFailure) -> None:
        with open(self.failures_path, "a", newline="") as f:
            csv.DictWriter(f, fieldnames=FAILURE_COLUMNS).writerow(
                {
                    "iteration": failure.iteration,
                    "timestamp": failure.timestamp,
                    "reason": failure.reason,
                }
            )

    def _read_rows(self, path: str) -> List[Dict[str, str]]:
        with open(path, newline="") as f:
            return list(csv.DictReader(f))

    def totals(self) -> SinkTotals:
        totals = SinkTotals(iteration_failures=len(self._read_rows(self.failures_path)))
        for row in self._read_rows(self.summary_path):
            totals.add_status(row["status"])
        return totals

    def issues(self, limit: int = 20) -> List[Dict[str, Any]]:
        issue_statuses = {s.value for s in Status if s.is_issue}
        rows = [
            row for row in self._read_rows(self.summary_path)
            if row["status"] in issue_statuses
        ]
        return rows[-limit:] if limit else rows

    def _write_artifact(self, result: ComparisonResult) -> str:
        safe_id = re.sub(r"[^A-Za-z0-9_.-]", "_", result.scenario_id)
        path = os.path.join(
            self.responses_dir, f"iter{result.iteration}_{safe_id}.json"
        )
        artifact = {
            "iteration": result.iteration,
            "timestamp": result.timestamp,
            "scenario_id": result.scenario_id,
            "description": result.description,
            "request": query_to_params(result.query),
            "status": result.status.value,
            "detail": result.detail,
            "reference": response_to_dict(result.reference),
            "candidate": response_to_dict(result.candidate),
        }
        with open(path, "w") as f:
            json.dump(artifact, f, indent=2)
        return path


def response_to_dict(response: EndpointResponse) -> Dict[str, Any]:
    if response.failure is not None:
        return {
            "endpoint": response.endpoint,
            "latency_ms": response.latency_ms,
            "failure": {
                "kind": response.failure.kind.value,
                "message": response.failure.message,
            },
        }
    return {
        "endpoint": response.endpoint,
        "latency_ms": response.latency_ms,
        "logs": [record.to_json() for record in response.records],
    }
