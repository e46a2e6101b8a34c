"""Event log and logging setup for orchestration runs."""

from __future__ import annotations

import json
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_EVENTS = 1000


@dataclass
class AgentEvent:
    """A single event in a run."""

    timestamp: datetime
    event_type: str  # "tool_call", "model_request", "model_response", "error", "ignored_tool_calls", "reordered_response", "step_*"
    data: Dict[str, Any]
    duration_ms: Optional[float] = None
    tokens_used: Optional[int] = None


class AgentObserver:
    """
    Observability layer for tracking orchestration runs.

    Keeps the most recent ``max_events`` events in memory (None keeps all)
    and mirrors them to the ``tailr_agent`` logger. Session stats cover the
    retained window.
    """

    def __init__(
        self,
        conversation_id: Optional[str] = None,
        verbose: bool = False,
        max_events: Optional[int] = DEFAULT_MAX_EVENTS,
    ):
        self.events: Deque[AgentEvent] = deque(maxlen=max_events)
        self.logger = logging.getLogger("tailr_agent")
        self.conversation_id = conversation_id
        self.verbose = verbose
        self._setup_logging()

    def _prefix(self, conversation_id: Optional[str]) -> str:
        use_id = conversation_id or self.conversation_id
        return f"[{use_id}] " if use_id else ""

    def _setup_logging(self):
        """Configure logging format and handlers."""
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
        self.logger.setLevel(logging.INFO if self.verbose else logging.WARNING)

    def log_tool_call(
        self,
        tool_name: str,
        args: Dict[str, Any],
        result: str,
        duration_ms: float,
        success: bool = True,
        conversation_id: Optional[str] = None,
    ):
        """
        Log a tool execution.

        Args:
            tool_name: Name of the tool executed
            args: Input passed to the tool
            result: Serialized result or error message
            duration_ms: Execution time in milliseconds
            success: Whether execution succeeded
        """
        event = AgentEvent(
            timestamp=datetime.now(),
            event_type="tool_call",
            data={
                "tool": tool_name,
                "args": args,
                "result": result[:200],
                "success": success,
            },
            duration_ms=duration_ms,
        )
        self.events.append(event)

        status = "ok" if success else "failed"
        self.logger.info(f"{self._prefix(conversation_id)}Tool {tool_name} {status} ({duration_ms:.2f}ms)")

    def log_model_request(
        self,
        model: str,
        tokens: int,
        duration_ms: float,
        step: int,
        conversation_id: Optional[str] = None,
    ):
        """Log a completed model call with its token usage."""
        event = AgentEvent(
            timestamp=datetime.now(),
            event_type="model_request",
            data={"model": model, "step": step},
            duration_ms=duration_ms,
            tokens_used=tokens,
        )
        self.events.append(event)

        self.logger.info(
            f"{self._prefix(conversation_id)}Model: {model} | Step {step} | {tokens} tokens | {duration_ms:.2f}ms"
        )

    def log_model_response(
        self,
        step: int,
        text: str,
        tool_calls: Optional[List[Dict[str, Any]]] = None,
        conversation_id: Optional[str] = None,
    ):
        """Log the model response details (text + tool requests)."""
        tools = tool_calls or []
        event = AgentEvent(
            timestamp=datetime.now(),
            event_type="model_response",
            data={"step": step, "text": text, "tool_calls": tools},
        )
        self.events.append(event)

        try:
            tools_dump = json.dumps(tools, ensure_ascii=True, default=str)
        except (TypeError, ValueError):
            tools_dump = str(tools)

        prefix = self._prefix(conversation_id)
        self.logger.info(f"{prefix}Model response | Step {step}")
        self.logger.info(f"{prefix}  tools={tools_dump}")
        self.logger.info(f"{prefix}  text={text[:500]}")

    def log_ignored_tool_calls(
        self,
        step: int,
        names: List[str],
        conversation_id: Optional[str] = None,
    ):
        """Record tool requests that were dropped because only the first block is acted on."""
        event = AgentEvent(
            timestamp=datetime.now(),
            event_type="ignored_tool_calls",
            data={"step": step, "tools": list(names)},
        )
        self.events.append(event)
        self.logger.warning(
            f"{self._prefix(conversation_id)}Ignoring {len(names)} additional tool request(s): {', '.join(names)}"
        )

    def log_reordered_response(self, step: int, tool_name: str, conversation_id: Optional[str] = None):
        event = AgentEvent(
            timestamp=datetime.now(),
            event_type="reordered_response",
            data={"step": step, "tool": tool_name},
        )
        self.events.append(event)
        self.logger.info(
            f"{self._prefix(conversation_id)}Text preamble moved behind tool request '{tool_name}' (step {step})"
        )

    def log_error(
        self,
        error_type: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        conversation_id: Optional[str] = None,
    ):
        """
        Log an error event.

        Args:
            error_type: Type of error (e.g., "tool_execution", "model_request")
            message: Error message
            context: Additional context about the error
        """
        event = AgentEvent(
            timestamp=datetime.now(),
            event_type="error",
            data={"error_type": error_type, "message": message, "context": context or {}},
        )
        self.events.append(event)
        self.logger.error(f"{self._prefix(conversation_id)}Error ({error_type}): {message}")

    def log_step_start(self, step: int, user_input: Optional[str] = None, conversation_id: Optional[str] = None):
        event = AgentEvent(
            timestamp=datetime.now(),
            event_type="step_start",
            data={"step": step, "user_input": user_input[:100] if user_input else None},
        )
        self.events.append(event)

        prefix = self._prefix(conversation_id)
        if step == 1 and user_input:
            self.logger.info(f"{prefix}User: {user_input[:100]}...")
        self.logger.info(f"{prefix}Step {step} started")

    def log_step_end(self, step: int, duration_ms: float, conversation_id: Optional[str] = None):
        event = AgentEvent(
            timestamp=datetime.now(), event_type="step_end", data={"step": step}, duration_ms=duration_ms
        )
        self.events.append(event)
        self.logger.info(f"{self._prefix(conversation_id)}Step {step} completed ({duration_ms:.2f}ms)")

    def get_session_stats(self) -> Dict[str, Any]:
        """
        Get aggregated statistics over the retained events.

        Returns:
            Dictionary with session statistics
        """
        tool_calls = [e for e in self.events if e.event_type == "tool_call"]
        failed_tools = sum(1 for e in tool_calls if not e.data.get("success", True))

        return {
            "total_tokens": sum(e.tokens_used or 0 for e in self.events),
            "total_duration_ms": sum(e.duration_ms or 0 for e in self.events if e.event_type != "step_end"),
            "event_count": len(self.events),
            "tool_calls": len(tool_calls),
            "failed_tool_calls": failed_tools,
            "model_requests": sum(1 for e in self.events if e.event_type == "model_request"),
            "ignored_tool_calls": sum(
                len(e.data.get("tools", [])) for e in self.events if e.event_type == "ignored_tool_calls"
            ),
            "reordered_responses": sum(1 for e in self.events if e.event_type == "reordered_response"),
            "errors": sum(1 for e in self.events if e.event_type == "error"),
        }

    def clear(self):
        """Clear all recorded events."""
        self.events.clear()
        self.logger.info("Observer events cleared")
