"""
Campaign runner: repeats the scenario battery and applies the stop policy.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional

from getlogs_diff.client import RpcClient
from getlogs_diff.comparator import compare, first_difference
from getlogs_diff.config import CampaignConfig, EndpointConfig
from getlogs_diff.errors import FailureKind, FetchError, err
from getlogs_diff.normalizer import canonical_sort
from getlogs_diff.query import build_query
from getlogs_diff.sink import ResultSink
from getlogs_diff.types import (
    CampaignOutcome,
    CampaignState,
    ComparisonResult,
    EndpointResponse,
    IterationFailure,
    QuerySpec,
    ScenarioTemplate,
    Status,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[EndpointConfig], Any]


def _timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def evaluate_stop_policy(
    iteration_issues: int,
    iteration: int,
    stop_on_error: bool,
    loop_count: int,
) -> Optional[CampaignOutcome]:
    """
    Decide whether the campaign ends after an iteration.

    Returns None to continue with the next iteration.
    """
    if stop_on_error and iteration_issues > 0:
        return CampaignOutcome.STOPPED_ON_ERROR
    if loop_count > 0 and iteration >= loop_count:
        return CampaignOutcome.COMPLETED
    return None


def describe_outcome(
    status: Status,
    reference: EndpointResponse,
    candidate: EndpointResponse,
) -> Optional[str]:
    if status is Status.ERROR:
        return "; ".join(
            f"{r.endpoint}: {r.failure}" for r in (reference, candidate) if not r.ok
        )
    if status is Status.MISMATCH_COUNT:
        return f"reference={reference.count} candidate={candidate.count}"
    if status is Status.MISMATCH_CONTENT:
        divergence = first_difference(
            canonical_sort(reference.records), canonical_sort(candidate.records)
        )
        return divergence.describe() if divergence else None
    if status is Status.MATCH_DIFFERENT_ORDER:
        return "same logs in a different arrival order"
    return None


class CampaignRunner:
    """Runs the scenario battery against both endpoints, iteration by iteration."""

    def __init__(
        self,
        config: CampaignConfig,
        scenarios: Iterable[ScenarioTemplate],
        sink: ResultSink,
        client_factory: ClientFactory = RpcClient,
    ):
        self.config = config
        self.scenarios: List[ScenarioTemplate] = list(scenarios)
        self.sink = sink
        self.state = CampaignState()
        self.client_factory = client_factory
        self.reference: Any = None
        self.candidate: Any = None
        self._stop_requested = asyncio.Event()
        self._semaphore = asyncio.Semaphore(config.concurrency)
        self.execution_time_ms = 0.0

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested.is_set()

    def request_stop(self) -> None:
        """Finish the in-flight iteration, then stop and report."""
        if not self.stop_requested:
            logger.warning("Stop requested, finishing current iteration...")
        self._stop_requested.set()

    async def setup(self) -> None:
        """Initialize both endpoint clients."""
        self.reference = self.client_factory(self.config.reference)
        self.candidate = self.client_factory(self.config.candidate)
        for client in (self.reference, self.candidate):
            await client.connect()
            logger.info(f"Connected to {client.config.name} at {client.config.endpoint}")

    async def teardown(self) -> None:
        """Close client connections."""
        for client in (self.reference, self.candidate):
            if client is not None:
                await client.close()

    async def resolve_latest_block(self) -> int:
        return await self.reference.block_number()

    async def _fetch(
        self,
        client: Any,
        template: ScenarioTemplate,
        query: QuerySpec,
    ) -> EndpointResponse:
        # Only the side that raised becomes INTERNAL; the other keeps its answer
        start = time.perf_counter()
        try:
            return await client.get_logs(
                query, preserve_order=self.config.order_sensitive
            )
        except Exception as e:
            latency_ms = (time.perf_counter() - start) * 1000
            logger.exception(
                f"Error fetching {template.scenario_id} from {client.config.name}"
            )
            failure = err(FailureKind.INTERNAL, f"{type(e).__name__}: {e}")
            return EndpointResponse.failed(client.config.name, failure, latency_ms)

    async def run_scenario(
        self,
        template: ScenarioTemplate,
        query: QuerySpec,
        iteration: int,
    ) -> ComparisonResult:
        """Fetch one scenario from both endpoints and classify the pair."""
        order_sensitive = self.config.order_sensitive

        async with self._semaphore:
            reference, candidate = await asyncio.gather(
                self._fetch(self.reference, template, query),
                self._fetch(self.candidate, template, query),
            )

        status = compare(reference, candidate, order_sensitive=order_sensitive)

        return ComparisonResult(
            scenario_id=template.scenario_id,
            description=template.description,
            iteration=iteration,
            timestamp=_timestamp(),
            query=query,
            reference=reference,
            candidate=candidate,
            status=status,
            detail=describe_outcome(status, reference, candidate),
        )

    async def run_iteration(self, iteration: int) -> Optional[List[ComparisonResult]]:
        """
        Run every scenario once against a freshly resolved chain head.

        Results reach the sink and the campaign state only after the whole
        iteration has resolved. Returns None if the chain head could not be
        resolved.
        """
        logger.info(f"=== Iteration {iteration} ({_timestamp()}) ===")

        try:
            latest_block = await self.resolve_latest_block()
        except FetchError as e:
            failure = IterationFailure(
                iteration=iteration,
                timestamp=_timestamp(),
                reason=f"latest block unavailable: {e}",
            )
            logger.error(f"Iteration {iteration} aborted: {failure.reason}")
            self.sink.record_iteration_failure(failure)
            self.state.record_iteration_failure(failure)
            return None

        logger.info(f"Current latest block: {latest_block}")

        results = await asyncio.gather(*[
            self.run_scenario(template, build_query(template, latest_block), iteration)
            for template in self.scenarios
        ])

        for result in results:
            self.sink.append(result)
            self._log_result(result)

        self.state.record_iteration(results)

        errors = sum(1 for r in results if r.status is Status.ERROR)
        mismatches = sum(1 for r in results if r.status.is_mismatch)
        logger.info(
            f"Iteration {iteration} complete: "
            f"{len(results) - errors - mismatches} ok, "
            f"{mismatches} mismatches, {errors} errors"
        )
        return list(results)

    def _log_result(self, result: ComparisonResult) -> None:
        def side(response: EndpointResponse) -> str:
            count = response.count if response.ok else "error"
            return f"{count} logs in {response.latency_ms:.0f}ms"

        line = (
            f"  [{result.status.value}] {result.scenario_id}: "
            f"{result.query.from_block}-{result.query.to_block} "
            f"({result.query.block_count} blocks) "
            f"ref {side(result.reference)}, test {side(result.candidate)}"
        )
        if result.status.is_issue:
            logger.warning(line)
            if result.detail:
                logger.warning(f"    {result.detail}")
        else:
            logger.info(line)

    async def _wait_for_next_iteration(self) -> bool:
        """Sleep the inter-iteration delay; True if a stop arrived meanwhile."""
        try:
            await asyncio.wait_for(
                self._stop_requested.wait(), timeout=self.config.loop_delay
            )
        except asyncio.TimeoutError:
            return False
        return True

    async def run(self) -> CampaignOutcome:
        """Iterate until the stop policy, the loop bound or a stop request ends the campaign."""
        iteration = 0
        while not self.stop_requested:
            iteration += 1
            await self.run_iteration(iteration)

            outcome = evaluate_stop_policy(
                iteration_issues=self.state.last_iteration_issues,
                iteration=iteration,
                stop_on_error=self.config.stop_on_error,
                loop_count=self.config.loop_count,
            )
            if outcome is CampaignOutcome.STOPPED_ON_ERROR:
                logger.error("Stopping due to errors/mismatches")
                return outcome
            if outcome is not None:
                return outcome

            if self.stop_requested:
                break
            logger.info(f"Waiting {self.config.loop_delay:g}s before next iteration...")
            if await self._wait_for_next_iteration():
                break

        return CampaignOutcome.INTERRUPTED

    async def execute(self) -> CampaignOutcome:
        """
        Set up clients, run the campaign and always tear down.

        Cancelling the task abandons the in-flight iteration; statistics of
        completed iterations are kept.
        """
        start_time = time.time()
        try:
            await self.setup()
            outcome = await self.run()
        except asyncio.CancelledError:
            logger.warning("Campaign cancelled, in-flight iteration abandoned")
            outcome = CampaignOutcome.INTERRUPTED
        finally:
            await self.teardown()
        self.execution_time_ms = (time.time() - start_time) * 1000
        return outcome
