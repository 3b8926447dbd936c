"""
YAML configuration loading for the ingester.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from dictionary_ingest.exceptions import ConfigError

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True, slots=True)
class IngestConfig:
    """Tunables for one ingester instance."""

    language: str = "en"
    audio_base_url: str = "https://media.merriam-webster.com/audio/prons/en/us/mp3"
    write_batch_size: int = 10
    relationship_batch_size: int = 20
    max_workers: int = 8
    transaction_timeout: float = 200.0
    busy_timeout: float = 60.0
    max_retries: int = 2
    image_batch_size: int = 5
    image_batch_delay: float = 0.5
    log_level: str = "WARNING"


# Keys that must be at least 1 and those that must not be negative.
_POSITIVE = ("write_batch_size", "relationship_batch_size", "max_workers",
             "image_batch_size", "transaction_timeout", "busy_timeout")
_NON_NEGATIVE = ("max_retries", "image_batch_delay")


def load_config(
    source: Union[str, Path, Dict[str, Any], None] = None,
) -> IngestConfig:
    """Load configuration from a YAML file, YAML string, or dictionary.

    Args:
        source: Path to YAML file, YAML string, parsed dictionary, or
            None for the defaults

    Returns:
        IngestConfig object

    Raises:
        ConfigError: If the content cannot be parsed or is invalid
        FileNotFoundError: If the file does not exist
    """
    if source is None:
        return IngestConfig()
    if isinstance(source, dict):
        data = source
    elif isinstance(source, Path) or (isinstance(source, str) and _is_file_path(source)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            data = _safe_load(f)
    else:
        data = _safe_load(source)

    return _parse_config(data)


def _is_file_path(s: str) -> bool:
    """Check if a string looks like a file path."""
    if "\n" in s or ": " in s:
        return False
    if "/" in s or "\\" in s:
        return True
    return s.endswith((".yaml", ".yml"))


def _safe_load(stream: Any) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(stream)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        line_num = mark.line + 1 if mark else None
        raise ConfigError(f"Invalid YAML: {e}", line=line_num) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("YAML root must be a mapping (dictionary)")
    return data


def _parse_config(data: Dict[str, Any]) -> IngestConfig:
    """Check keys and value types, then build the config."""
    known = {f.name: f for f in fields(IngestConfig)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ConfigError(f"Unknown configuration key(s): {', '.join(unknown)}")

    values: Dict[str, Any] = {}
    for key, value in data.items():
        values[key] = _coerce(key, value, type(known[key].default))

    for key in _POSITIVE:
        if key in values and values[key] < 1:
            raise ConfigError(f"Field '{key}' must be at least 1")
    for key in _NON_NEGATIVE:
        if key in values and values[key] < 0:
            raise ConfigError(f"Field '{key}' cannot be negative")

    if "log_level" in values:
        level = values["log_level"].upper()
        if level not in _LOG_LEVELS:
            raise ConfigError(f"Field 'log_level' has unknown level {values['log_level']!r}")
        values["log_level"] = level

    return IngestConfig(**values)


def _coerce(key: str, value: Any, expected: type) -> Any:
    # bool is an int subclass; never accept it for numeric fields
    if isinstance(value, bool):
        raise ConfigError(f"Field '{key}' must be a {expected.__name__}")
    if expected is float and isinstance(value, int):
        return float(value)
    if not isinstance(value, expected):
        raise ConfigError(f"Field '{key}' must be a {expected.__name__}")
    return value
