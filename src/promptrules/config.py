"""Engine configuration loader.

Loads configuration from a YAML file with safe defaults, then applies
environment variable overrides.
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

RULE_STORE_BACKENDS = ("duckdb", "memory")


@dataclass
class EngineConfig:
    """Configuration for a prompting rules session."""

    user_id: str | None = None
    rule_store: str = "duckdb"
    db_path: str | None = None
    context_cache_enabled: bool = True
    context_cache_ttl_seconds: float = 30.0
    command_history_limit: int = 50
    recent_commands_window: int = 10
    recent_files_limit: int = 10
    working_directory: str | None = None
    collect_vcs_context: bool = True
    collect_file_context: bool = True


def _parse_config(data: dict[str, Any]) -> EngineConfig:
    """Parse a configuration dictionary into an EngineConfig object.

    Args:
        data: Dictionary containing configuration values. Missing keys keep
            their defaults.

    Returns:
        EngineConfig with parsed values.

    Raises:
        ValueError: If a field is unknown or has an invalid value.
    """
    known = set(EngineConfig.__dataclass_fields__)
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown config field(s): {', '.join(sorted(unknown))}")

    bool_fields = ["context_cache_enabled", "collect_vcs_context", "collect_file_context"]
    for field in bool_fields:
        if field in data and not isinstance(data[field], bool):
            raise ValueError(f"Field '{field}' must be a boolean")

    int_fields = ["command_history_limit", "recent_commands_window", "recent_files_limit"]
    for field in int_fields:
        if field in data:
            if not isinstance(data[field], int) or isinstance(data[field], bool):
                raise ValueError(f"Field '{field}' must be an integer")
            if data[field] < 1:
                raise ValueError(f"Field '{field}' must be positive")

    if "context_cache_ttl_seconds" in data:
        ttl = data["context_cache_ttl_seconds"]
        if not isinstance(ttl, (int, float)) or isinstance(ttl, bool) or ttl < 0:
            raise ValueError("Field 'context_cache_ttl_seconds' must be a non-negative number")

    if "rule_store" in data and data["rule_store"] not in RULE_STORE_BACKENDS:
        raise ValueError(
            f"Field 'rule_store' must be one of: {', '.join(RULE_STORE_BACKENDS)}"
        )

    for field in ("user_id", "db_path", "working_directory"):
        if data.get(field) is not None and not isinstance(data[field], str):
            raise ValueError(f"Field '{field}' must be a string")

    return EngineConfig(**data)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


def _apply_env_overrides(config: EngineConfig) -> EngineConfig:
    """Apply PROMPTRULES_* environment variables on top of a config."""
    overrides: dict[str, Any] = {}

    if user_id := os.getenv("PROMPTRULES_USER_ID"):
        overrides["user_id"] = user_id
    if rule_store := os.getenv("PROMPTRULES_RULE_STORE"):
        overrides["rule_store"] = rule_store.lower()
    if db_path := os.getenv("PROMPTRULES_DB_PATH"):
        overrides["db_path"] = db_path
    if cache_enabled := os.getenv("PROMPTRULES_CONTEXT_CACHE_ENABLED"):
        overrides["context_cache_enabled"] = _parse_bool(cache_enabled)
    if cache_ttl := os.getenv("PROMPTRULES_CONTEXT_CACHE_TTL"):
        try:
            overrides["context_cache_ttl_seconds"] = float(cache_ttl)
        except ValueError:
            logger.warning("Ignoring invalid PROMPTRULES_CONTEXT_CACHE_TTL=%r", cache_ttl)

    if not overrides:
        return config

    try:
        _parse_config(overrides)
    except ValueError as e:
        logger.warning("Ignoring invalid environment overrides: %s", e)
        return config
    return replace(config, **overrides)


def load_config(config_path: str | None = None) -> EngineConfig:
    """Load engine configuration from a YAML file.

    Args:
        config_path: Path to the configuration YAML file. If None, uses
            PROMPTRULES_CONFIG or the default path: config/promptrules.yaml

    Returns:
        EngineConfig with file values and environment overrides applied.
        If the file is missing or invalid, safe defaults are used.
    """
    if config_path is None:
        config_path = os.getenv("PROMPTRULES_CONFIG")
    if config_path is None:
        project_root = Path(__file__).parent.parent.parent
        config_path = os.path.join(project_root, "config", "promptrules.yaml")

    config = EngineConfig()

    if os.path.exists(config_path):
        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}

            if not isinstance(data, dict):
                raise ValueError("Config file must contain a YAML dictionary")

            config = _parse_config(data)
        except (yaml.YAMLError, ValueError, TypeError, OSError) as e:
            logger.warning("Failed to load config from %s: %s", config_path, e)
            logger.warning("Using default engine configuration")
            config = EngineConfig()

    return _apply_env_overrides(config)


# Cache the loaded configuration
_cached_config: EngineConfig | None = None


def get_config(config_path: str | None = None) -> EngineConfig:
    """Get the engine configuration (cached).

    Args:
        config_path: Optional path to config file. Uses default if None.

    Returns:
        EngineConfig.
    """
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config(config_path)
    return _cached_config


def reload_config(config_path: str | None = None) -> EngineConfig:
    """Reload configuration from file."""
    global _cached_config
    _cached_config = load_config(config_path)
    return _cached_config


def clear_config_cache() -> None:
    """Clear the cached configuration.

    Used primarily for testing to ensure clean state between tests.
    """
    global _cached_config
    _cached_config = None
