"""Process wiring: builds the shared cache, embeddings, registry and orchestrator."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .agent import ResumeAssistant
from .config import AppConfig
from .core.cache import VectorCache
from .core.embeddings import EmbeddingProvider
from .core.observability import AgentObserver
from .core.orchestrator import ToolCallOrchestrator
from .core.session import SessionContextStore
from .prompts import build_system_prompt
from .providers import create_provider
from .providers.base import ChatProvider
from .tools import build_registry
from .tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


def create_assistant(
    config: Optional[AppConfig] = None,
    *,
    provider: Optional[ChatProvider] = None,
    cache: Optional[VectorCache] = None,
    registry: Optional[ToolRegistry] = None,
    model_factory: Optional[Callable[[str], Any]] = None,
    observer: Optional[AgentObserver] = None,
) -> ResumeAssistant:
    """
    Build a ready-to-use assistant from configuration.

    Every argument besides *config* overrides one component; tests pass a
    scripted provider and a fake embedding model here.
    """
    config = config or AppConfig()

    if provider is None:
        provider = create_provider(
            provider=config.model.provider,
            api_key=config.model.api_key,
            model=config.model.model,
            api_base=config.model.api_base,
        )

    cache = cache or VectorCache(ttl_seconds=config.embeddings.cache_ttl_seconds)
    embeddings = EmbeddingProvider(
        cache=cache,
        model_name=config.embeddings.model_name,
        batch_size=config.embeddings.batch_size,
        model_factory=model_factory,
    )
    session = SessionContextStore()
    registry = registry or build_registry()
    observer = observer or AgentObserver(
        verbose=config.verbose, max_events=config.orchestrator.max_observer_events
    )
    prompt_chars = config.orchestrator.prompt_context_chars

    orchestrator = ToolCallOrchestrator(
        provider,
        registry,
        session=session,
        embeddings=embeddings,
        system_prompt=lambda conversation_id: build_system_prompt(session, conversation_id, prompt_chars),
        model_name=config.model.model,
        max_iterations=config.orchestrator.max_iterations,
        max_output_tokens=config.model.max_tokens,
        temperature=config.model.temperature,
        model_timeout_seconds=config.model.timeout_seconds,
        tool_settings=config.search.as_settings(),
        observer=observer,
    )
    logger.info(
        "Assistant ready: provider=%s model=%s tools=%s",
        config.model.provider,
        config.model.model,
        ", ".join(registry.names()),
    )
    return ResumeAssistant(
        orchestrator,
        session,
        history_max_messages=config.orchestrator.history_max_messages,
        history_max_tokens=config.orchestrator.history_max_tokens,
    )
