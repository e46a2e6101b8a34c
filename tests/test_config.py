"""Tests for YAML configuration loading."""

import pytest

from tailr_agent.config import AppConfig, load_config, load_raw_config, parse_config, resolve_env
from tailr_agent.core.errors import ConfigError


def test_defaults():
    config = AppConfig()

    assert config.model.provider == "anthropic"
    assert config.orchestrator.max_iterations == 10
    assert config.orchestrator.max_observer_events == 1000
    assert config.embeddings.model_name == "all-MiniLM-L6-v2"
    assert config.embeddings.cache_ttl_seconds == 86400
    assert config.search.as_settings()["min_score"] == 0.2


def test_load_explicit_file(tmp_path):
    path = tmp_path / "custom.yaml"
    path.write_text(
        "model:\n  provider: openai\n  model: gpt-4o-mini\norchestrator:\n  max_iterations: 4\nverbose: true\n",
        encoding="utf-8",
    )

    config = load_config(str(path))

    assert config.model.provider == "openai"
    assert config.model.model == "gpt-4o-mini"
    assert config.model.max_tokens == 4096
    assert config.orchestrator.max_iterations == 4
    assert config.verbose is True


def test_local_file_overlays_defaults(tmp_path, monkeypatch):
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "config.yaml").write_text("model:\n  provider: gemini\n  model: gemini-2.0-flash\n")
    (tmp_path / "config" / "config.local.yaml").write_text("model:\n  model: gemini-2.5-pro\n")
    monkeypatch.chdir(tmp_path)

    raw = load_raw_config("config/config.local.yaml")

    assert raw["model"] == {"provider": "gemini", "model": "gemini-2.5-pro"}


def test_missing_explicit_file_raises(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(str(tmp_path / "nope.yaml"))


def test_non_mapping_file_raises(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")

    with pytest.raises(ConfigError, match="must be a mapping"):
        load_config(str(path))


def test_unknown_key_raises():
    with pytest.raises(ConfigError, match="Unknown key"):
        parse_config({"search": {"min_scor": 0.3}})


def test_invalid_values_are_reported_together():
    with pytest.raises(ConfigError) as exc_info:
        parse_config({"orchestrator": {"max_iterations": 0, "max_observer_events": 0}, "search": {"min_score": 2}})

    message = str(exc_info.value)
    assert "max_iterations" in message
    assert "min_score" in message
    assert "max_observer_events" in message


def test_env_references_are_resolved(monkeypatch):
    monkeypatch.setenv("TAILR_TEST_KEY", "secret")

    resolved = resolve_env({"model": {"api_key": "${TAILR_TEST_KEY}", "other": ["${UNSET_TAILR_VAR}"]}})

    assert resolved["model"]["api_key"] == "secret"
    assert resolved["model"]["other"] == ["${UNSET_TAILR_VAR}"]
