"""Environment configuration and the CLI surface."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from getlogs_diff.cli import exit_code_for, main
from getlogs_diff.config import CampaignConfig
from getlogs_diff.errors import ConfigError
from getlogs_diff.types import CampaignOutcome

ENV_VARS = (
    "REFERENCE_RPC",
    "TEST_RPC",
    "OUTPUT_DIR",
    "LOOP_COUNT",
    "LOOP_DELAY",
    "STOP_ON_ERROR",
    "CONCURRENCY",
    "REQUEST_TIMEOUT",
    "ORDER_SENSITIVE",
    "SAVE_RESPONSES",
    "SCENARIOS",
    "VERBOSE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    config = CampaignConfig.from_env()
    assert config.reference.endpoint == "http://localhost:8546"
    assert config.candidate.endpoint == "http://localhost:8545"
    assert config.output_dir.startswith("./comparison-results-")
    assert config.loop_count == 0
    assert config.unbounded
    assert config.loop_delay == 30
    assert config.stop_on_error is True
    assert config.order_sensitive is False
    config.validate()


def test_from_env(monkeypatch) -> None:
    monkeypatch.setenv("REFERENCE_RPC", "http://ref:8545")
    monkeypatch.setenv("TEST_RPC", "http://test:8545")
    monkeypatch.setenv("OUTPUT_DIR", "/tmp/out")
    monkeypatch.setenv("LOOP_COUNT", "5")
    monkeypatch.setenv("LOOP_DELAY", "2.5")
    monkeypatch.setenv("STOP_ON_ERROR", "false")
    monkeypatch.setenv("REQUEST_TIMEOUT", "7")
    monkeypatch.setenv("ORDER_SENSITIVE", "yes")

    config = CampaignConfig.from_env()
    assert config.reference.endpoint == "http://ref:8545"
    assert config.candidate.endpoint == "http://test:8545"
    assert config.output_dir == "/tmp/out"
    assert config.loop_count == 5
    assert not config.unbounded
    assert config.loop_delay == 2.5
    assert config.stop_on_error is False
    assert config.order_sensitive is True
    assert config.reference.timeout == config.candidate.timeout == 7.0


def test_bad_numeric_env(monkeypatch) -> None:
    monkeypatch.setenv("LOOP_COUNT", "forever")
    with pytest.raises(ConfigError):
        CampaignConfig.from_env()


@pytest.mark.parametrize(
    "field, value",
    [
        ("loop_count", -1),
        ("loop_delay", -0.5),
        ("concurrency", 0),
        ("request_timeout", 0),
    ],
)
def test_validate_rejects(field, value) -> None:
    config = CampaignConfig()
    setattr(config, field, value)
    with pytest.raises(ConfigError):
        config.validate()


def test_validate_rejects_empty_endpoint() -> None:
    config = CampaignConfig()
    config.candidate.endpoint = ""
    with pytest.raises(ConfigError):
        config.validate()


def test_exit_codes() -> None:
    assert exit_code_for(CampaignOutcome.COMPLETED, False) == 0
    assert exit_code_for(CampaignOutcome.INTERRUPTED, False) == 0
    assert exit_code_for(CampaignOutcome.INTERRUPTED, True) == 1
    assert exit_code_for(CampaignOutcome.COMPLETED, True) == 1
    assert exit_code_for(CampaignOutcome.STOPPED_ON_ERROR, True) == 1


def test_cli_rejects_bad_concurrency(tmp_path) -> None:
    result = CliRunner().invoke(main, ["--concurrency", "0", "--output-dir", str(tmp_path)])
    assert result.exit_code == 2
    assert "concurrency" in result.output


def test_cli_rejects_missing_scenario_file(tmp_path) -> None:
    result = CliRunner().invoke(
        main, ["--scenarios", str(tmp_path / "nope.yaml"), "--output-dir", str(tmp_path)]
    )
    assert result.exit_code == 2
    assert not (tmp_path / "summary.csv").exists()


def test_cli_rejects_bad_env(monkeypatch) -> None:
    monkeypatch.setenv("LOOP_DELAY", "soon")
    result = CliRunner().invoke(main, [])
    assert result.exit_code == 2
