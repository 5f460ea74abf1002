"""Tests for engine configuration loader."""

import pytest

from promptrules.config import (
    EngineConfig,
    _parse_config,
    clear_config_cache,
    get_config,
    load_config,
    reload_config,
)

ENV_VARS = [
    "PROMPTRULES_CONFIG",
    "PROMPTRULES_USER_ID",
    "PROMPTRULES_RULE_STORE",
    "PROMPTRULES_DB_PATH",
    "PROMPTRULES_CONTEXT_CACHE_ENABLED",
    "PROMPTRULES_CONTEXT_CACHE_TTL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Clear config environment variables and the config cache."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    clear_config_cache()
    yield
    clear_config_cache()


def test_default_config():
    """Test default settings."""
    config = EngineConfig()

    assert config.user_id is None
    assert config.rule_store == "duckdb"
    assert config.context_cache_enabled is True
    assert config.context_cache_ttl_seconds == 30.0
    assert config.command_history_limit == 50
    assert config.recent_commands_window == 10
    assert config.collect_vcs_context is True


def test_parse_config_valid():
    config = _parse_config(
        {
            "user_id": "alice",
            "rule_store": "memory",
            "context_cache_ttl_seconds": 5,
            "command_history_limit": 20,
            "collect_file_context": False,
        }
    )

    assert config.user_id == "alice"
    assert config.rule_store == "memory"
    assert config.context_cache_ttl_seconds == 5
    assert config.command_history_limit == 20
    assert config.collect_file_context is False


@pytest.mark.parametrize(
    "data, message",
    [
        ({"verbosity": "high"}, "Unknown config field"),
        ({"context_cache_enabled": "yes"}, "must be a boolean"),
        ({"command_history_limit": "50"}, "must be an integer"),
        ({"recent_commands_window": 0}, "must be positive"),
        ({"context_cache_ttl_seconds": -1}, "non-negative number"),
        ({"rule_store": "postgres"}, "must be one of"),
        ({"db_path": 42}, "must be a string"),
    ],
)
def test_parse_config_invalid(data, message):
    with pytest.raises(ValueError, match=message):
        _parse_config(data)


def test_load_config_from_file(tmp_path):
    config_file = tmp_path / "promptrules.yaml"
    config_file.write_text("user_id: bob\nrule_store: memory\nrecent_files_limit: 3\n")

    config = load_config(str(config_file))

    assert config.user_id == "bob"
    assert config.rule_store == "memory"
    assert config.recent_files_limit == 3


def test_load_config_missing_file_uses_defaults(tmp_path):
    config = load_config(str(tmp_path / "missing.yaml"))
    assert config == EngineConfig()


def test_load_config_invalid_file_uses_defaults(tmp_path):
    config_file = tmp_path / "bad.yaml"
    config_file.write_text("- just\n- a list\n")

    assert load_config(str(config_file)) == EngineConfig()

    config_file.write_text("command_history_limit: lots\n")
    assert load_config(str(config_file)) == EngineConfig()


def test_config_path_from_env(tmp_path, monkeypatch):
    config_file = tmp_path / "custom.yaml"
    config_file.write_text("user_id: carol\n")
    monkeypatch.setenv("PROMPTRULES_CONFIG", str(config_file))

    assert load_config().user_id == "carol"


def test_env_overrides(tmp_path, monkeypatch):
    config_file = tmp_path / "promptrules.yaml"
    config_file.write_text("user_id: bob\ncontext_cache_ttl_seconds: 10\n")
    monkeypatch.setenv("PROMPTRULES_USER_ID", "dave")
    monkeypatch.setenv("PROMPTRULES_RULE_STORE", "MEMORY")
    monkeypatch.setenv("PROMPTRULES_DB_PATH", "/tmp/rules.db")
    monkeypatch.setenv("PROMPTRULES_CONTEXT_CACHE_ENABLED", "false")
    monkeypatch.setenv("PROMPTRULES_CONTEXT_CACHE_TTL", "2.5")

    config = load_config(str(config_file))

    assert config.user_id == "dave"
    assert config.rule_store == "memory"
    assert config.db_path == "/tmp/rules.db"
    assert config.context_cache_enabled is False
    assert config.context_cache_ttl_seconds == 2.5


def test_invalid_env_overrides_are_ignored(tmp_path, monkeypatch):
    monkeypatch.setenv("PROMPTRULES_CONTEXT_CACHE_TTL", "soon")
    monkeypatch.setenv("PROMPTRULES_RULE_STORE", "postgres")

    config = load_config(str(tmp_path / "missing.yaml"))

    assert config.context_cache_ttl_seconds == 30.0
    assert config.rule_store == "duckdb"


def test_get_config_is_cached(tmp_path):
    config_file = tmp_path / "promptrules.yaml"
    config_file.write_text("user_id: erin\n")

    first = get_config(str(config_file))
    config_file.write_text("user_id: frank\n")

    assert get_config(str(config_file)) is first
    assert reload_config(str(config_file)).user_id == "frank"
