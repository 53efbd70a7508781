"""Runner configuration.

Settings come from an optional YAML file and are then overridden by
command-line flags::

    step_mode: true
    dump_depth: 3
    show_elapsed: false
"""

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Union

import yaml


@dataclass
class RunnerConfig:
    """Configuration for a run."""
    step_mode: bool = False
    dump_depth: int = 2
    show_elapsed: bool = True


_FIELD_TYPES = {
    "step_mode": bool,
    "dump_depth": int,
    "show_elapsed": bool,
}


def load_config(file_path: Union[str, Path]) -> RunnerConfig:
    """Load a RunnerConfig from a YAML file.

    Args:
        file_path: Path to the YAML config file.

    Returns:
        Parsed RunnerConfig. Keys that are not config fields are ignored.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ValueError: If the YAML is not a mapping or a field has the wrong type.
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")

    with open(file_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return RunnerConfig()

    return parse_config_data(data, source=str(file_path))


def parse_config_data(data: dict, source: str = "<inline>") -> RunnerConfig:
    """Build a RunnerConfig from an already loaded mapping."""
    if not isinstance(data, dict):
        raise ValueError(f"Config must be a YAML mapping, got {type(data).__name__} in {source}")

    values = {}
    for name, expected in _FIELD_TYPES.items():
        if name not in data:
            continue

        value = data[name]
        # bool is an int subclass; don't let `dump_depth: true` through
        if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
            raise ValueError(
                f"'{name}' must be {expected.__name__}, got {type(value).__name__} in {source}"
            )
        values[name] = value

    if values.get("dump_depth", 0) < 0:
        raise ValueError(f"'dump_depth' must not be negative in {source}")

    return RunnerConfig(**values)


def merge_overrides(config: RunnerConfig, **overrides) -> RunnerConfig:
    """Return a copy of ``config`` with every non-None override applied."""
    known = {f.name for f in fields(RunnerConfig)}
    changes = {k: v for k, v in overrides.items() if k in known and v is not None}
    return replace(config, **changes)
