#!/usr/bin/env python3
"""
eth_getLogs differential comparison

Compares eth_getLogs answers of a candidate node against a reference node
across repeated iterations of a fixed scenario battery.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from typing import List, Optional

import click

from getlogs_diff.config import CampaignConfig
from getlogs_diff.errors import ConfigError
from getlogs_diff.reporter import ReportGenerator
from getlogs_diff.runner import CampaignRunner
from getlogs_diff.scenarios import resolve_scenarios
from getlogs_diff.sink import CsvResultSink
from getlogs_diff.types import CampaignOutcome, ScenarioTemplate

logger = logging.getLogger(__name__)


def exit_code_for(outcome: CampaignOutcome, has_issues: bool) -> int:
    if outcome is CampaignOutcome.STOPPED_ON_ERROR or has_issues:
        return 1
    return 0


def _install_signal_handlers(runner: CampaignRunner, task: asyncio.Task) -> None:
    loop = asyncio.get_running_loop()

    def _on_signal(signum: int) -> None:
        name = signal.Signals(signum).name
        if runner.stop_requested:
            logger.warning(f"Received {name} again, abandoning current iteration")
            task.cancel()
        else:
            logger.warning(f"Interrupted ({name})! Generating final summary after this iteration...")
            runner.request_stop()

    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, _on_signal, signum)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Signal handler for {signum} not supported on this platform")


async def run_campaign(config: CampaignConfig, scenarios: List[ScenarioTemplate]) -> int:
    sink = CsvResultSink(config.output_dir, save_responses=config.save_responses)
    reporter = ReportGenerator(config.output_dir)
    runner = CampaignRunner(config, scenarios, sink)

    logger.info(f"Reference RPC: {config.reference.endpoint}")
    logger.info(f"Test RPC: {config.candidate.endpoint}")
    if config.unbounded:
        logger.info("Mode: continuous loop (Ctrl+C to stop)")
    else:
        logger.info(f"Mode: {config.loop_count} iteration(s)")
    logger.info(f"Delay between iterations: {config.loop_delay:g}s")
    logger.info(f"Stop on error: {config.stop_on_error}")
    logger.info(f"Scenarios: {len(scenarios)}")

    _install_signal_handlers(runner, asyncio.current_task())
    outcome = await runner.execute()

    report = reporter.generate_report(
        state=runner.state,
        sink=sink,
        outcome=outcome,
        reference=config.reference.endpoint,
        candidate=config.candidate.endpoint,
        execution_time_ms=runner.execution_time_ms,
    )
    reporter.write_json_report(report)
    reporter.write_summary(report)
    reporter.print_summary(report)

    return exit_code_for(outcome, report.has_issues)


@click.command()
@click.option("--reference-rpc", default=None, help="Reference endpoint URL")
@click.option("--test-rpc", default=None, help="Candidate endpoint URL")
@click.option("--output-dir", default=None, help="Directory to write results")
@click.option(
    "--loop-count",
    type=int,
    default=None,
    help="Number of iterations (0 runs until interrupted)",
)
@click.option(
    "--loop-delay",
    type=float,
    default=None,
    help="Seconds to wait between iterations",
)
@click.option(
    "--stop-on-error/--no-stop-on-error",
    default=None,
    help="Stop after the first iteration with errors or mismatches",
)
@click.option(
    "--concurrency",
    type=int,
    default=None,
    help="Maximum scenarios in flight at once",
)
@click.option(
    "--request-timeout",
    type=float,
    default=None,
    help="Per-request timeout in seconds",
)
@click.option(
    "--scenarios",
    "scenario_file",
    default=None,
    help="YAML file with the scenario battery",
)
@click.option(
    "--order-sensitive",
    is_flag=True,
    help="Report logs returned in a different order as MATCH_DIFFERENT_ORDER",
)
@click.option(
    "--save-responses",
    is_flag=True,
    help="Write every normalized response pair as JSON",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
def main(
    reference_rpc: Optional[str],
    test_rpc: Optional[str],
    output_dir: Optional[str],
    loop_count: Optional[int],
    loop_delay: Optional[float],
    stop_on_error: Optional[bool],
    concurrency: Optional[int],
    request_timeout: Optional[float],
    scenario_file: Optional[str],
    order_sensitive: bool,
    save_responses: bool,
    verbose: bool,
) -> None:
    """Compare eth_getLogs results between a reference and a test node."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    # Load config from environment, then override with CLI args
    try:
        config = CampaignConfig.from_env()
    except ConfigError as e:
        raise click.UsageError(str(e))

    if reference_rpc:
        config.reference.endpoint = reference_rpc
    if test_rpc:
        config.candidate.endpoint = test_rpc
    if output_dir:
        config.output_dir = output_dir
    if loop_count is not None:
        config.loop_count = loop_count
    if loop_delay is not None:
        config.loop_delay = loop_delay
    if stop_on_error is not None:
        config.stop_on_error = stop_on_error
    if concurrency is not None:
        config.concurrency = concurrency
    if request_timeout is not None:
        config.request_timeout = request_timeout
    if scenario_file:
        config.scenario_file = scenario_file
    if order_sensitive:
        config.order_sensitive = True
    if save_responses:
        config.save_responses = True
    if verbose:
        config.verbose = True
    if config.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config.apply_timeout()
    try:
        config.validate()
        # Bad scenario files fail before anything is written
        scenarios = resolve_scenarios(config.scenario_file)
    except ConfigError as e:
        raise click.UsageError(str(e))

    exit_code = asyncio.run(run_campaign(config, scenarios))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
