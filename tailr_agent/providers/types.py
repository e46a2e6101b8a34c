"""Provider-agnostic message, content-block and response types."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class TextBlock:
    """Plain text produced by the user or the model."""

    text: str
    type: str = field(default="text", init=False)


@dataclass
class ToolUseBlock:
    """A tool-invocation request from the model.

    ``id`` is the correlation identifier echoed back by the matching
    :class:`ToolResultBlock`.
    """

    id: str
    name: str
    input: Dict[str, Any] = field(default_factory=dict)
    type: str = field(default="tool_use", init=False)


@dataclass
class ToolResultBlock:
    """The outcome of a tool invocation, sent back to the model."""

    tool_use_id: str
    name: str
    content: Any = None
    is_error: bool = False
    type: str = field(default="tool_result", init=False)

    def content_text(self) -> str:
        """Render the payload as the string most chat APIs expect."""
        if isinstance(self.content, str):
            return self.content
        try:
            return json.dumps(self.content, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            return str(self.content)


ContentBlock = Union[TextBlock, ToolUseBlock, ToolResultBlock]
MessageContent = Union[str, List[ContentBlock]]


@dataclass
class Message:
    """Provider-agnostic chat message.

    ``content`` is either plain text or an ordered list of content blocks.
    """

    role: str  # "user" | "assistant" | "system"
    content: MessageContent = ""

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(role="user", content=text)

    @classmethod
    def assistant(cls, text: str) -> "Message":
        return cls(role="assistant", content=text)

    @classmethod
    def tool_request(cls, block: ToolUseBlock) -> "Message":
        return cls(role="assistant", content=[block])

    @classmethod
    def tool_result(cls, block: ToolResultBlock) -> "Message":
        return cls(role="user", content=[block])

    def blocks(self) -> List[ContentBlock]:
        if isinstance(self.content, str):
            return [TextBlock(self.content)] if self.content else []
        return list(self.content)

    def text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return "\n".join(b.text for b in self.content if isinstance(b, TextBlock))

    def tool_uses(self) -> List[ToolUseBlock]:
        return [b for b in self.blocks() if isinstance(b, ToolUseBlock)]

    def tool_results(self) -> List[ToolResultBlock]:
        return [b for b in self.blocks() if isinstance(b, ToolResultBlock)]


@dataclass(frozen=True)
class ToolDefinition:
    """Immutable tool declaration: name, description and JSON-schema input spec."""

    name: str
    description: str
    input_schema: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }


@dataclass
class GenerationConfig:
    """Common generation settings passed to providers."""

    system_prompt: str = ""
    max_tokens: int = 4096
    temperature: Optional[float] = 0.7


@dataclass
class LLMResponse:
    """Normalized response from a provider."""

    content: List[ContentBlock] = field(default_factory=list)
    stop_reason: Optional[str] = None
    usage: Optional[Dict[str, int]] = None
    raw: Any = None
    # set when the adapter moved a text preamble behind the tool requests
    reordered: bool = False

    @property
    def text(self) -> str:
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))

    @property
    def tool_uses(self) -> List[ToolUseBlock]:
        return [b for b in self.content if isinstance(b, ToolUseBlock)]
