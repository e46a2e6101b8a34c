"""YAML configuration.

``config/config.yaml`` holds the defaults and ``config/config.local.yaml``
(git-ignored, may contain secrets) is deep-merged on top. String values of
the form ``${NAME}`` are replaced with the environment variable when it is set.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from tailr_agent.core.errors import ConfigError

DEFAULT_CONFIG_PATH = "config/config.local.yaml"
_ENV_REF = re.compile(r"^\$\{([A-Za-z_][A-Za-z0-9_]*)\}$")


@dataclass
class ModelConfig:
    provider: str = "anthropic"
    model: str = "claude-3-5-sonnet-latest"
    api_key: str = ""
    api_base: str = ""
    max_tokens: int = 4096
    temperature: Optional[float] = 0.7
    timeout_seconds: float = 120.0


@dataclass
class OrchestratorConfig:
    max_iterations: int = 10
    prompt_context_chars: int = 12000
    history_max_messages: int = 50
    history_max_tokens: int = 100000
    max_observer_events: int = 1000


@dataclass
class EmbeddingConfig:
    model_name: str = "all-MiniLM-L6-v2"
    batch_size: int = 32
    cache_ttl_seconds: float = 24 * 60 * 60


@dataclass
class SearchConfig:
    min_score: float = 0.2
    keyword_bonus: float = 0.15
    passage_chars: int = 500
    max_passages: int = 500
    snippet_radius: int = 100
    coverage_threshold: float = 0.5

    def as_settings(self) -> Dict[str, Any]:
        return dict(self.__dict__)


@dataclass
class AppConfig:
    model: ModelConfig = field(default_factory=ModelConfig)
    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig)
    embeddings: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    verbose: bool = False


def _resolve(candidate: str) -> Path:
    path = Path(candidate)
    if path.exists():
        return path
    alt = Path(__file__).resolve().parents[1] / candidate
    if alt.exists():
        return alt
    return path


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a mapping: {path}")
    return data


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        base_value = merged.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(base_value, value)
        else:
            merged[key] = value
    return merged


def resolve_env(value: Any) -> Any:
    """Replace ``${NAME}`` strings with environment values, recursively."""
    if isinstance(value, dict):
        return {k: resolve_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_env(v) for v in value]
    if isinstance(value, str):
        match = _ENV_REF.match(value.strip())
        if match and os.environ.get(match.group(1)):
            return os.environ[match.group(1)]
    return value


def load_raw_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Load the raw configuration mapping.

    With the default path, ``config/config.yaml`` is loaded first and
    ``config/config.local.yaml`` overlays it; either may be absent. An
    explicit path must exist and is loaded as-is.
    """
    if Path(config_path).name == "config.local.yaml":
        base = _load_yaml(_resolve("config/config.yaml"))
        local = _load_yaml(_resolve(config_path))
        return resolve_env(_deep_merge(base, local))

    target = _resolve(config_path)
    if not target.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    return resolve_env(_load_yaml(target))


def _section(data: Dict[str, Any], name: str, cls):
    raw = data.get(name) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    known = set(cls.__dataclass_fields__)
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"Unknown key(s) in '{name}': {', '.join(unknown)}")
    try:
        return cls(**raw)
    except TypeError as exc:
        raise ConfigError(f"Invalid '{name}' section: {exc}") from exc


def parse_config(data: Dict[str, Any]) -> AppConfig:
    config = AppConfig(
        model=_section(data, "model", ModelConfig),
        orchestrator=_section(data, "orchestrator", OrchestratorConfig),
        embeddings=_section(data, "embeddings", EmbeddingConfig),
        search=_section(data, "search", SearchConfig),
        verbose=bool(data.get("verbose", False)),
    )
    _validate(config)
    return config


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> AppConfig:
    """Load and validate the application configuration."""
    return parse_config(load_raw_config(config_path))


def _validate(config: AppConfig) -> None:
    problems = []
    if config.orchestrator.max_iterations < 1:
        problems.append("orchestrator.max_iterations must be >= 1")
    if config.orchestrator.max_observer_events < 1:
        problems.append("orchestrator.max_observer_events must be >= 1")
    if config.model.timeout_seconds <= 0:
        problems.append("model.timeout_seconds must be > 0")
    if config.model.max_tokens < 1:
        problems.append("model.max_tokens must be >= 1")
    if config.embeddings.batch_size < 1:
        problems.append("embeddings.batch_size must be >= 1")
    if config.embeddings.cache_ttl_seconds <= 0:
        problems.append("embeddings.cache_ttl_seconds must be > 0")
    if not 0 <= config.search.min_score <= 1:
        problems.append("search.min_score must be between 0 and 1")
    if problems:
        raise ConfigError("Invalid configuration: " + "; ".join(problems))
