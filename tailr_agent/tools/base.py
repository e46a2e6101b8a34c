"""Base tool class and the values handed to every tool."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from tailr_agent.providers.types import ToolDefinition

if TYPE_CHECKING:
    from tailr_agent.core.embeddings import EmbeddingProvider
    from tailr_agent.core.session import SessionContextStore


@dataclass
class ToolResult:
    """Result from a tool execution."""

    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def ok(cls, **data: Any) -> "ToolResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, **data: Any) -> "ToolResult":
        return cls(success=False, data=data, error=error)

    def to_payload(self) -> Any:
        if self.success:
            return self.data
        return {"error": self.error, **self.data} if self.data else {"error": self.error}


@dataclass
class UploadedFile:
    """A plain-text document supplied with a chat turn."""

    id: str
    name: str
    content: str
    type: str = "text/plain"
    size: int = 0
    uploaded_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if not self.size:
            self.size = len(self.content.encode("utf-8"))


@dataclass
class ToolContext:
    """Everything a tool may read or write while it runs."""

    conversation_id: str
    files: Sequence[UploadedFile] = ()
    session: Optional["SessionContextStore"] = None
    embeddings: Optional["EmbeddingProvider"] = None
    settings: Dict[str, Any] = field(default_factory=dict)

    def setting(self, key: str, default: Any = None) -> Any:
        return self.settings.get(key, default)


class BaseTool(ABC):
    """Base class for all tools.

    Subclasses point ``definition`` at their declaration in
    :mod:`tailr_agent.tools.definitions` and implement :meth:`execute`.
    """

    definition: ToolDefinition

    @property
    def name(self) -> str:
        return self.definition.name

    @abstractmethod
    async def execute(self, input: Dict[str, Any], context: ToolContext) -> ToolResult:
        """Execute the tool with validated input."""

    async def __call__(self, input: Dict[str, Any], context: ToolContext) -> ToolResult:
        return await self.execute(input, context)


def require_session(context: ToolContext) -> "SessionContextStore":
    if context.session is None:
        raise RuntimeError("No session store available")
    return context.session


def require_embeddings(context: ToolContext) -> "EmbeddingProvider":
    if context.embeddings is None:
        raise RuntimeError("No embedding provider available")
    return context.embeddings


__all__: List[str] = [
    "BaseTool",
    "ToolContext",
    "ToolDefinition",
    "ToolResult",
    "UploadedFile",
    "require_embeddings",
    "require_session",
]
