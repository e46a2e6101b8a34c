"""Core runtime: cache, embeddings, session state, history and the tool loop.

The orchestrator is imported from :mod:`tailr_agent.core.orchestrator`
directly; it depends on the tools package.
"""

from .cache import VectorCache, normalize_key
from .embeddings import BatchEmbeddingResult, EmbeddingProvider, EmbeddingResult
from .errors import (
    BatchPartialFailure,
    ConfigError,
    EmbeddingError,
    EmbeddingInitFailure,
    ModelCommunicationFailure,
    TailrError,
    ToolExecutionFailure,
    ToolInputValidationError,
    ToolLoopExceeded,
    UnknownTool,
    VersionConflict,
)
from .history import HistoryManager
from .observability import AgentObserver
from .session import ContentType, ContextUpdate, SessionContextStore

__all__ = [
    "AgentObserver",
    "BatchEmbeddingResult",
    "BatchPartialFailure",
    "ConfigError",
    "ContentType",
    "ContextUpdate",
    "EmbeddingError",
    "EmbeddingInitFailure",
    "EmbeddingProvider",
    "EmbeddingResult",
    "HistoryManager",
    "ModelCommunicationFailure",
    "SessionContextStore",
    "TailrError",
    "ToolExecutionFailure",
    "ToolInputValidationError",
    "ToolLoopExceeded",
    "UnknownTool",
    "VectorCache",
    "VersionConflict",
    "normalize_key",
]
