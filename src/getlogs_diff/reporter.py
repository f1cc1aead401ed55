"""
Final summary generation for comparison campaigns.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from getlogs_diff.sink import ResultSink
from getlogs_diff.types import CampaignOutcome, CampaignState


@dataclass
class CampaignReport:
    """Complete campaign report."""
    timestamp: str
    reference: str
    candidate: str
    outcome: CampaignOutcome
    total_iterations: int
    total_comparisons: int
    total_matches: int
    total_matches_different_order: int
    total_mismatches: int
    total_errors: int
    iteration_failures: int
    execution_time_ms: float
    issues: List[Dict[str, Any]]
    issues_by_scenario: Dict[str, int]
    output_dir: Optional[str] = None

    @property
    def has_issues(self) -> bool:
        return (
            self.total_mismatches > 0
            or self.total_errors > 0
            or self.iteration_failures > 0
        )

    @property
    def match_rate(self) -> float:
        if self.total_comparisons == 0:
            return 0.0
        matched = self.total_matches + self.total_matches_different_order
        return matched / self.total_comparisons * 100


class ReportGenerator:
    """Generates campaign reports."""

    def __init__(self, result_dir: str):
        """
        Initialize report generator.

        Args:
            result_dir: Directory to write reports to
        """
        self.result_dir = result_dir
        os.makedirs(result_dir, exist_ok=True)

    def generate_report(
        self,
        state: CampaignState,
        sink: ResultSink,
        outcome: CampaignOutcome,
        reference: str,
        candidate: str,
        execution_time_ms: float,
    ) -> CampaignReport:
        """
        Generate the final report.

        Comparison totals are read back from the sink; the iteration count
        comes from the campaign state, which counts iterations actually run.
        """
        totals = sink.totals()

        return CampaignReport(
            timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            reference=reference,
            candidate=candidate,
            outcome=outcome,
            total_iterations=state.iterations_completed,
            total_comparisons=totals.comparisons,
            total_matches=totals.matches,
            total_matches_different_order=totals.matches_different_order,
            total_mismatches=totals.mismatches,
            total_errors=totals.errors,
            iteration_failures=totals.iteration_failures,
            execution_time_ms=execution_time_ms,
            issues=sink.issues(limit=20),
            issues_by_scenario=dict(state.issues_by_scenario),
            output_dir=sink.location,
        )

    def write_json_report(
        self,
        report: CampaignReport,
        filename: str = "campaign-report.json",
    ) -> str:
        """
        Write report as JSON file.

        Args:
            report: CampaignReport to write
            filename: Output filename

        Returns:
            Path to written file
        """
        path = os.path.join(self.result_dir, filename)

        with open(path, "w") as f:
            json.dump(self._report_to_dict(report), f, indent=2)

        return path

    def summary_lines(self, report: CampaignReport) -> List[str]:
        lines = [
            "=" * 60,
            "eth_getLogs Comparison Report",
            "=" * 60,
            f"Timestamp: {report.timestamp}",
            f"Reference: {report.reference}",
            f"Candidate: {report.candidate}",
            f"Outcome:   {report.outcome.value}",
        ]
        if report.output_dir:
            lines.append(f"Results:   {report.output_dir}")
        lines += [
            "",
            f"  Total iterations:   {report.total_iterations}",
            f"  Total tests:        {report.total_comparisons}",
            f"  Matches:            {report.total_matches}",
        ]
        if report.total_matches_different_order:
            lines.append(f"  Different order:    {report.total_matches_different_order}")
        lines += [
            f"  Mismatches:         {report.total_mismatches}",
            f"  Errors:             {report.total_errors}",
            f"  Iteration failures: {report.iteration_failures}",
            f"  Match rate:         {report.match_rate:.1f}%",
            f"  Duration:           {report.execution_time_ms / 1000:.1f}s",
            "",
        ]

        if report.has_issues:
            lines.append("Issues found:")
            for scenario_id, count in sorted(report.issues_by_scenario.items()):
                lines.append(f"  {scenario_id}: {count}")
            if report.issues:
                lines.append("")
                lines.append("Most recent issues:")
                for row in report.issues:
                    lines.append(
                        f"  iter {row['iteration']} {row['scenario_id']} "
                        f"[{row['status']}] ref={row['ref_log_count']} "
                        f"test={row['test_log_count']}"
                    )
        else:
            lines.append("All tests passed across all iterations")

        lines.append("=" * 60)
        return lines

    def write_summary(
        self,
        report: CampaignReport,
        filename: str = "campaign-summary.txt",
    ) -> str:
        """Write human-readable summary and return its path."""
        path = os.path.join(self.result_dir, filename)
        with open(path, "w") as f:
            f.write("\n".join(self.summary_lines(report)) + "\n")
        return path

    def print_summary(self, report: CampaignReport) -> None:
        """Print summary to console."""
        print()
        print("\n".join(self.summary_lines(report)))

    def _report_to_dict(self, report: CampaignReport) -> Dict[str, Any]:
        """Convert report to dictionary for JSON serialization."""
        return {
            "timestamp": report.timestamp,
            "reference": report.reference,
            "candidate": report.candidate,
            "outcome": report.outcome.value,
            "total_iterations": report.total_iterations,
            "total_comparisons": report.total_comparisons,
            "total_matches": report.total_matches,
            "total_matches_different_order": report.total_matches_different_order,
            "total_mismatches": report.total_mismatches,
            "total_errors": report.total_errors,
            "iteration_failures": report.iteration_failures,
            "match_rate": report.match_rate,
            "execution_time_ms": report.execution_time_ms,
            "issues_by_scenario": report.issues_by_scenario,
            "issues": report.issues,
        }
