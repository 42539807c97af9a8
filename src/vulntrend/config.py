"""Configuration loading and management for vuln-trend.

This module provides configuration discovery and validation. Configuration
sources are merged in priority order:
    1. Defaults (defined in HistoryConfig)
    2. Global config (~/.vulntrend.toml)
    3. Project config (./vulntrend.toml)
    4. Explicit config file
    5. Environment variables (VULNTREND_* prefix)
    6. Keyword overrides (typically CLI flags)

Example:
    >>> config = load_config(max_projects=20)
    >>> config.max_projects
    20
    >>> config.max_sessions_per_project
    10
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]

_VERBOSITY_VALUES = ("quiet", "normal", "verbose")

# Returned by _parse_env_value when a variable should not override anything.
_SKIP = object()


@dataclass(frozen=True)
class HistoryConfig:
    """Capacity, expiry and reporting settings for the scan history.

    Attributes:
        Eviction:
            max_projects: Distinct projects retained process-wide. Adding one
                more evicts the least-recently-touched project.
            max_sessions_per_project: Snapshots retained per project; the
                oldest are dropped first.
            ttl_hours: Age after which a snapshot is purged. ``None`` keeps
                snapshots until capacity eviction.

        Reporting:
            history_limit: Default number of snapshots returned by history
                queries.
            clamp_risk_score: Clamp the risk score to [0, 100]. The raw
                formula exceeds 100 when dependencies average more than one
                vulnerability each.

        Output control:
            verbosity: Logging verbosity level
    """

    # Eviction
    max_projects: int = 50
    max_sessions_per_project: int = 10
    ttl_hours: Optional[float] = 24.0

    # Reporting
    history_limit: int = 10
    clamp_risk_score: bool = False

    # Output control
    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.max_projects < 1:
            raise InvalidConfigError("max_projects", self.max_projects, "must be at least 1")
        if self.max_sessions_per_project < 1:
            raise InvalidConfigError(
                "max_sessions_per_project",
                self.max_sessions_per_project,
                "must be at least 1",
            )
        if self.ttl_hours is not None and self.ttl_hours <= 0:
            raise InvalidConfigError("ttl_hours", self.ttl_hours, "must be positive or None")
        if self.history_limit < 1:
            raise InvalidConfigError("history_limit", self.history_limit, "must be at least 1")
        if self.verbosity not in _VERBOSITY_VALUES:
            raise InvalidConfigError(
                "verbosity", self.verbosity, f"expected one of {', '.join(_VERBOSITY_VALUES)}"
            )

    @property
    def ttl_seconds(self) -> Optional[float]:
        """Get snapshot TTL in seconds (None when expiry is disabled)."""
        if self.ttl_hours is None:
            return None
        return self.ttl_hours * 3600

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


DEFAULT_CONFIG = HistoryConfig()


def load_config(config_file: Optional[Path] = None, **overrides) -> HistoryConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags)

    Returns:
        Validated HistoryConfig instance

    Raises:
        ConfigurationError: If a config file is invalid or missing, or a
            value fails validation
    """
    merged: dict[str, Any] = {}

    global_config = Path.home() / ".vulntrend.toml"
    if global_config.exists():
        merged.update(_load_toml_checked(global_config, "global config"))

    project_config = Path.cwd() / "vulntrend.toml"
    if project_config.exists():
        merged.update(_load_toml_checked(project_config, "project config"))

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        merged.update(_load_toml_checked(config_file, "config file"))

    merged.update(_load_env_vars())

    # Convert verbosity boolean flags to string
    if "verbose" in overrides:
        if overrides.pop("verbose"):
            overrides["verbosity"] = "verbose"
    if "quiet" in overrides:
        if overrides.pop("quiet"):
            overrides["verbosity"] = "quiet"

    merged.update(overrides)

    # A [history] table is accepted as well as top-level keys
    history_table = merged.pop("history", None)
    if isinstance(history_table, dict):
        merged = {**history_table, **merged}

    try:
        return HistoryConfig(**merged)
    except TypeError as e:
        # Unknown field in config
        raise ConfigurationError(f"Invalid configuration: {e}")


def _load_toml_checked(path: Path, label: str) -> dict[str, Any]:
    try:
        return _load_toml_file(path)
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Invalid {label} '{path}': {e}")


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from VULNTREND_* environment variables.

    Supported environment variables:
        VULNTREND_MAX_PROJECTS: int
        VULNTREND_MAX_SESSIONS_PER_PROJECT: int
        VULNTREND_TTL_HOURS: float, or "none" to disable expiry
        VULNTREND_HISTORY_LIMIT: int
        VULNTREND_CLAMP_RISK_SCORE: bool (true/false/1/0)
        VULNTREND_VERBOSITY: quiet/normal/verbose

    Returns:
        Dict of field_name -> parsed_value for any VULNTREND_* vars found.
    """
    type_hints = get_type_hints(HistoryConfig)

    result: dict[str, Any] = {}

    for field_name in HistoryConfig.__dataclass_fields__:
        env_key = f"VULNTREND_{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
        except ValueError as e:
            raise ConfigurationError(f"Invalid {env_key}: {e}")
        if parsed is not _SKIP:
            result[field_name] = parsed

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the correct type.

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    # Handle Optional[X] which is Union[X, None]
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        if value.strip().lower() in ("none", "null", "off"):
            return None
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    # String (including Literal types like Verbosity)
    if type_hint is str or origin is Literal:
        return value

    return _SKIP


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict.

    Raises:
        ConfigurationError: If tomllib/tomli not available
        Exception: If TOML parsing fails
    """
    try:
        # Python 3.11+ has tomllib in stdlib
        import tomllib
    except ModuleNotFoundError:
        try:
            # Fallback to tomli for Python 3.9-3.10
            import tomli as tomllib  # type: ignore
        except ImportError:
            raise ConfigurationError(
                "TOML support requires Python 3.11+ or 'tomli' package. "
                "Install with: pip install tomli"
            )

    with open(path, "rb") as f:
        return tomllib.load(f)
