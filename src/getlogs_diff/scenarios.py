"""Scenario batteries: the built-in CachedMode/RangeMode set and YAML files.

The built-in windows straddle the node's 250-block threshold between the
cached and the range query strategies, plus one cold historical window.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional

import yaml

from getlogs_diff.errors import ConfigError
from getlogs_diff.types import ScenarioTemplate

USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"

DEFAULT_SCENARIOS: tuple[ScenarioTemplate, ...] = (
    ScenarioTemplate("test1_tiny", "Tiny range (3 blocks) - CachedMode", 5, 3, USDC),
    ScenarioTemplate("test2_small", "Small range (26 blocks) - CachedMode", 50, 25, USDC),
    ScenarioTemplate("test3_medium", "Medium range (201 blocks) - CachedMode", 500, 300, USDC),
    ScenarioTemplate("test4_threshold", "Threshold (250 blocks)", 1250, 1001, USDC),
    ScenarioTemplate(
        "test5_over_threshold", "Over threshold (300 blocks) - RangeMode", 1300, 1001, USDC
    ),
    ScenarioTemplate("test6_large", "Large range (500 blocks) - RangeMode", 600, 101, WETH),
    ScenarioTemplate("test7_weth", "WETH logs (51 blocks)", 100, 50, WETH),
    ScenarioTemplate(
        "test8_historical", "Historical range (300 blocks) - Old RangeMode", 10000, 9701, USDC
    ),
)


def _address_filter(value: Any, scenario_id: str) -> Any:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, list) and all(isinstance(a, str) for a in value):
        return tuple(value)
    raise ConfigError(f"{scenario_id}: address must be a string or list of strings")


def _topic_filter(value: Any, scenario_id: str) -> Any:
    if value is None:
        return None
    if not isinstance(value, list):
        raise ConfigError(f"{scenario_id}: topics must be a list")
    topics = []
    for entry in value:
        if entry is None or isinstance(entry, str):
            topics.append(entry)
        elif isinstance(entry, list) and all(isinstance(t, str) for t in entry):
            topics.append(tuple(entry))
        else:
            raise ConfigError(f"{scenario_id}: invalid topic entry {entry!r}")
    return tuple(topics)


def scenario_from_dict(raw: Any) -> ScenarioTemplate:
    if not isinstance(raw, dict):
        raise ConfigError(f"scenario must be a mapping, got {raw!r}")
    scenario_id = raw.get("id")
    if not scenario_id:
        raise ConfigError(f"scenario without id: {raw!r}")
    try:
        return ScenarioTemplate(
            scenario_id=str(scenario_id),
            description=str(raw.get("description", scenario_id)),
            from_offset=int(raw["from_offset"]),
            to_offset=int(raw["to_offset"]),
            address=_address_filter(raw.get("address"), scenario_id),
            topics=_topic_filter(raw.get("topics"), scenario_id),
        )
    except KeyError as e:
        raise ConfigError(f"{scenario_id}: missing {e.args[0]}") from None
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{scenario_id}: {e}") from None


def load_scenarios(path: str) -> List[ScenarioTemplate]:
    """Load a scenario battery from a YAML file."""
    try:
        with open(path) as f:
            doc = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"cannot read scenario file {path}: {e}") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from None

    raw_scenarios = doc.get("scenarios") if isinstance(doc, dict) else None
    if not raw_scenarios:
        raise ConfigError(f"{path}: no scenarios defined")

    scenarios = [scenario_from_dict(raw) for raw in raw_scenarios]
    seen = set()
    for scenario in scenarios:
        if scenario.scenario_id in seen:
            raise ConfigError(f"{path}: duplicate scenario id {scenario.scenario_id}")
        seen.add(scenario.scenario_id)
    return scenarios


def resolve_scenarios(path: Optional[str]) -> List[ScenarioTemplate]:
    if path is None:
        return list(DEFAULT_SCENARIOS)
    if not Path(path).is_file():
        raise ConfigError(f"scenario file not found: {path}")
    return load_scenarios(path)
