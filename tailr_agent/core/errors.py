"""Error taxonomy for the assistant.

Every error raised on purpose derives from :class:`TailrError` so callers can
turn any failure of a conversational turn into a chat message with a single
``except`` clause.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class TailrError(Exception):
    """Base class for all assistant errors."""


class ConfigError(TailrError, ValueError):
    """Configuration file is missing or malformed."""


class ModelCommunicationFailure(TailrError):
    """Talking to the language model failed (network, auth, rate limit, timeout).

    Surfaced to the caller; never retried internally. ``transient`` tells the
    caller whether a retry is likely to help.
    """

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.transient = transient


class ToolExecutionFailure(TailrError):
    """A tool handler raised or returned an error payload.

    Recovered inside the orchestrator: converted into an error outcome and fed
    back to the model.
    """

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"Tool '{tool_name}' failed: {message}")
        self.tool_name = tool_name
        self.reason = message


class ToolInputValidationError(ToolExecutionFailure):
    """Tool input did not match the declared schema."""

    def __init__(self, tool_name: str, problems: List[str]):
        super().__init__(tool_name, "invalid input: " + "; ".join(problems))
        self.problems = list(problems)


class UnknownTool(TailrError):
    """The model requested a tool that is not registered. Fatal for the turn."""

    def __init__(self, tool_name: str, tools_used: Optional[List[Dict[str, Any]]] = None):
        super().__init__(f"Unknown tool requested by model: '{tool_name}'")
        self.tool_name = tool_name
        self.tools_used = tools_used or []


class ToolLoopExceeded(TailrError):
    """The model kept requesting tools past the configured iteration bound."""

    def __init__(self, limit: int, tools_used: Optional[List[Dict[str, Any]]] = None):
        super().__init__(f"Tool loop exceeded the maximum of {limit} tool call(s) without a final answer")
        self.limit = limit
        self.tools_used = tools_used or []


class EmbeddingInitFailure(TailrError):
    """The embedding model could not be loaded. The caller decides whether to retry."""


class EmbeddingError(TailrError):
    """A single embedding could not be produced."""


class BatchPartialFailure(TailrError):
    """Some items of a batch failed; successful embeddings are still attached."""

    def __init__(self, message: str, embeddings: Optional[List[Any]] = None):
        super().__init__(message)
        self.embeddings = embeddings or []


class VersionConflict(TailrError):
    """A session content update carried a stale or skipped version number."""

    def __init__(self, content_type: str, expected: int, received: int):
        super().__init__(
            f"Version conflict for {content_type}: expected version {expected}, got {received}"
        )
        self.content_type = content_type
        self.expected = expected
        self.received = received


class JobPostingError(TailrError):
    """A job posting URL could not be fetched or held no description."""


def is_transient_error(error: BaseException) -> bool:
    """
    Determine if an error is transient and a retry by the caller may succeed.

    Args:
        error: Exception to check

    Returns:
        True if error is transient, False otherwise
    """
    if isinstance(error, ModelCommunicationFailure):
        return error.transient

    # Network-related errors
    if isinstance(error, (ConnectionError, TimeoutError)):
        return True

    # Check error message for common transient patterns
    error_msg = str(error).lower()
    transient_patterns = [
        "timeout",
        "timed out",
        "connection",
        "rate limit",
        "overloaded",
        "429",
        "500",
        "503",
        "504",
        "529",
        "eof",
        "broken pipe",
        "temporary",
        "unavailable",
    ]

    return any(pattern in error_msg for pattern in transient_patterns)
