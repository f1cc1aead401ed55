"""
Configuration management for eth_getLogs comparison campaigns.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from getlogs_diff.errors import ConfigError

_TRUE_VALUES = ("true", "1", "yes")


@dataclass
class EndpointConfig:
    """Configuration for a single JSON-RPC endpoint."""
    name: str
    endpoint: str
    timeout: float = 30.0


def default_output_dir() -> str:
    return f"./comparison-results-{datetime.now():%Y%m%d-%H%M%S}"


@dataclass
class CampaignConfig:
    """Main configuration for a comparison campaign."""
    # Endpoints; the latest block is always resolved against the reference
    reference: EndpointConfig = field(
        default_factory=lambda: EndpointConfig("reference", "http://localhost:8546")
    )
    candidate: EndpointConfig = field(
        default_factory=lambda: EndpointConfig("candidate", "http://localhost:8545")
    )

    # Paths
    output_dir: str = field(default_factory=default_output_dir)
    scenario_file: Optional[str] = None

    # Loop settings; loop_count 0 runs until stopped
    loop_count: int = 0
    loop_delay: float = 30.0
    stop_on_error: bool = True

    # Execution settings
    concurrency: int = 4
    request_timeout: float = 30.0
    order_sensitive: bool = False
    save_responses: bool = False
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "CampaignConfig":
        """Load configuration from environment variables."""
        config = cls()

        config.reference.endpoint = os.environ.get("REFERENCE_RPC", config.reference.endpoint)
        config.candidate.endpoint = os.environ.get("TEST_RPC", config.candidate.endpoint)

        config.output_dir = os.environ.get("OUTPUT_DIR") or config.output_dir
        config.scenario_file = os.environ.get("SCENARIOS") or None

        config.loop_count = _env_int("LOOP_COUNT", config.loop_count)
        config.loop_delay = _env_float("LOOP_DELAY", config.loop_delay)
        config.stop_on_error = _env_bool("STOP_ON_ERROR", config.stop_on_error)

        config.concurrency = _env_int("CONCURRENCY", config.concurrency)
        config.request_timeout = _env_float("REQUEST_TIMEOUT", config.request_timeout)
        config.order_sensitive = _env_bool("ORDER_SENSITIVE", config.order_sensitive)
        config.save_responses = _env_bool("SAVE_RESPONSES", config.save_responses)
        config.verbose = _env_bool("VERBOSE", config.verbose)

        config.apply_timeout()
        return config

    def apply_timeout(self) -> None:
        """Propagate request_timeout to both endpoints."""
        self.reference.timeout = self.request_timeout
        self.candidate.timeout = self.request_timeout

    def validate(self) -> None:
        for endpoint in (self.reference, self.candidate):
            if not endpoint.endpoint:
                raise ConfigError(f"{endpoint.name} endpoint URL is empty")
        if self.loop_count < 0:
            raise ConfigError(f"loop count must be >= 0, got {self.loop_count}")
        if self.loop_delay < 0:
            raise ConfigError(f"loop delay must be >= 0, got {self.loop_delay}")
        if self.concurrency < 1:
            raise ConfigError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.request_timeout <= 0:
            raise ConfigError(f"request timeout must be > 0, got {self.request_timeout}")

    @property
    def unbounded(self) -> bool:
        return self.loop_count == 0


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.lower() in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
