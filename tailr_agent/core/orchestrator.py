"""Tool-calling loop between the language model and the registered tools."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from tailr_agent.providers.base import ChatProvider
from tailr_agent.providers.types import (
    GenerationConfig,
    LLMResponse,
    Message,
    ToolResultBlock,
    ToolUseBlock,
)
from tailr_agent.tools.base import ToolContext, ToolResult, UploadedFile
from tailr_agent.tools.registry import ToolRegistry

from .embeddings import EmbeddingProvider
from .errors import (
    ModelCommunicationFailure,
    ToolExecutionFailure,
    ToolLoopExceeded,
    UnknownTool,
    is_transient_error,
)
from .observability import AgentObserver
from .session import SessionContextStore

DEFAULT_MAX_ITERATIONS = 10
DEFAULT_MODEL_TIMEOUT_SECONDS = 120.0


class OrchestratorState(str, Enum):
    AWAITING_MODEL = "awaiting_model"
    MODEL_RESPONDED = "model_responded"
    EXECUTING_TOOL = "executing_tool"
    DONE = "done"


@dataclass
class ToolOutcome:
    """Result or error of one tool invocation, correlated by ``tool_use_id``."""

    tool_use_id: str
    tool_name: str
    result: Any = None
    error: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_block(self) -> ToolResultBlock:
        return ToolResultBlock(
            tool_use_id=self.tool_use_id,
            name=self.tool_name,
            content={"error": self.error} if self.is_error else self.result,
            is_error=self.is_error,
        )


@dataclass
class ToolUsage:
    """Audit-trail entry for one executed tool."""

    name: str
    input: Dict[str, Any]
    result: Any = None
    error: Optional[str] = None
    duration_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            return {"name": self.name, "input": self.input, "error": self.error}
        return {"name": self.name, "input": self.input, "result": self.result}


@dataclass
class OrchestrationResult:
    text: str
    conversation: List[Message]
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def tools_used(self) -> List[Dict[str, Any]]:
        return self.meta.get("toolsUsed", [])


class ToolCallOrchestrator:
    """
    Drives one conversational turn.

    The model is called with the whole conversation. When the first content
    block of its response is a tool request, that tool is executed, the request
    and its result are appended to the conversation, and the model is called
    again. Any other first block ends the turn with the response text.

    Only the first block is acted on; further tool requests in the same
    response are logged and dropped. Tools run one at a time.
    """

    def __init__(
        self,
        provider: ChatProvider,
        registry: ToolRegistry,
        *,
        session: Optional[SessionContextStore] = None,
        embeddings: Optional[EmbeddingProvider] = None,
        system_prompt: Optional[Callable[[str], str]] = None,
        model_name: str = "",
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        max_output_tokens: int = 4096,
        temperature: Optional[float] = None,
        model_timeout_seconds: float = DEFAULT_MODEL_TIMEOUT_SECONDS,
        tool_settings: Optional[Dict[str, Any]] = None,
        observer: Optional[AgentObserver] = None,
    ):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.provider = provider
        self.registry = registry
        self.session = session
        self.embeddings = embeddings
        self._system_prompt = system_prompt or (lambda conversation_id: "")
        self.model_name = model_name
        self.max_iterations = max_iterations
        self.max_output_tokens = max_output_tokens
        self.temperature = temperature
        self.model_timeout_seconds = model_timeout_seconds
        self.tool_settings = dict(tool_settings or {})
        self.observer = observer or AgentObserver()

    async def run(
        self,
        conversation: Sequence[Message],
        *,
        conversation_id: str,
        files: Sequence[UploadedFile] = (),
    ) -> OrchestrationResult:
        """Run the loop until the model answers without requesting a tool."""
        messages = list(conversation)
        context = ToolContext(
            conversation_id=conversation_id,
            files=tuple(files),
            session=self.session,
            embeddings=self.embeddings,
            settings=self.tool_settings,
        )
        tools_used: List[ToolUsage] = []
        model_calls = 0
        ignored_calls = 0
        response: Optional[LLMResponse] = None
        pending: Optional[ToolUseBlock] = None
        text = ""

        first_user_text = messages[-1].text() if messages and messages[-1].role == "user" else None
        state = OrchestratorState.AWAITING_MODEL

        while state is not OrchestratorState.DONE:
            if state is OrchestratorState.AWAITING_MODEL:
                model_calls += 1
                self.observer.log_step_start(
                    model_calls, first_user_text if model_calls == 1 else None, conversation_id=conversation_id
                )
                step_start = time.time()
                response = await self._call_model(messages, conversation_id, model_calls)
                self.observer.log_step_end(model_calls, (time.time() - step_start) * 1000, conversation_id)
                state = OrchestratorState.MODEL_RESPONDED

            elif state is OrchestratorState.MODEL_RESPONDED:
                assert response is not None
                if not response.content:
                    self.observer.log_error(
                        "model_response", "Model returned an empty response", {"step": model_calls}, conversation_id
                    )
                    raise ModelCommunicationFailure("Model returned an empty response")

                first = response.content[0]
                extra = [b.name for b in response.content[1:] if isinstance(b, ToolUseBlock)]
                if extra:
                    ignored_calls += len(extra)
                    self.observer.log_ignored_tool_calls(model_calls, extra, conversation_id)

                if isinstance(first, ToolUseBlock):
                    if response.reordered:
                        self.observer.log_reordered_response(model_calls, first.name, conversation_id)
                    if len(tools_used) >= self.max_iterations:
                        self.observer.log_error(
                            "tool_loop",
                            f"Model requested '{first.name}' after {self.max_iterations} tool call(s)",
                            {"step": model_calls},
                            conversation_id,
                        )
                        raise ToolLoopExceeded(self.max_iterations, [u.to_dict() for u in tools_used])
                    pending = first
                    state = OrchestratorState.EXECUTING_TOOL
                else:
                    text = response.text
                    state = OrchestratorState.DONE

            elif state is OrchestratorState.EXECUTING_TOOL:
                assert pending is not None
                outcome = await self._execute_tool(pending, context, tools_used)
                messages.append(Message.tool_request(pending))
                messages.append(Message.tool_result(outcome.to_block()))
                pending = None
                state = OrchestratorState.AWAITING_MODEL

        if text:
            messages.append(Message.assistant(text))

        return OrchestrationResult(
            text=text,
            conversation=messages,
            meta={
                "toolsUsed": [u.to_dict() for u in tools_used],
                "iterations": len(tools_used),
                "modelCalls": model_calls,
                "ignoredToolCalls": ignored_calls,
            },
        )

    def _build_generation_config(self, conversation_id: str) -> GenerationConfig:
        return GenerationConfig(
            system_prompt=self._system_prompt(conversation_id),
            max_tokens=self.max_output_tokens,
            temperature=self.temperature,
        )

    async def _call_model(self, messages: List[Message], conversation_id: str, step: int) -> LLMResponse:
        config = self._build_generation_config(conversation_id)
        tools = self.registry.schemas() or None
        start = time.time()
        try:
            response = await asyncio.wait_for(
                self.provider.generate(list(messages), tools, config),
                timeout=self.model_timeout_seconds,
            )
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError as exc:
            message = f"Model call timed out after {self.model_timeout_seconds:g}s"
            self.observer.log_error("model_request", message, {"step": step}, conversation_id)
            raise ModelCommunicationFailure(message, transient=True) from exc
        except Exception as exc:
            self.observer.log_error(
                "model_request", str(exc), {"model": self.model_name, "step": step}, conversation_id
            )
            raise ModelCommunicationFailure(
                f"Model request failed: {exc}", transient=is_transient_error(exc)
            ) from exc

        usage = response.usage or {}
        tokens = int(usage.get("total_tokens") or (usage.get("input_tokens", 0) + usage.get("output_tokens", 0)))
        self.observer.log_model_request(self.model_name, tokens, (time.time() - start) * 1000, step, conversation_id)
        self.observer.log_model_response(
            step=step,
            text=response.text or "(no text)",
            tool_calls=[{"name": b.name, "args": b.input} for b in response.tool_uses],
            conversation_id=conversation_id,
        )
        return response

    async def _execute_tool(
        self,
        block: ToolUseBlock,
        context: ToolContext,
        tools_used: List[ToolUsage],
    ) -> ToolOutcome:
        """Execute a single tool request. Tool failures become an error outcome."""
        handler = self.registry.lookup(block.name)
        if handler is None:
            self.observer.log_error(
                "unknown_tool", f"Model requested unknown tool '{block.name}'", {"args": block.input}, context.conversation_id
            )
            raise UnknownTool(block.name, [u.to_dict() for u in tools_used])

        start = time.time()
        tool_input = dict(block.input or {})
        try:
            validated = self.registry.validate_input(block.name, tool_input)
            result = await handler(validated, context)
            if isinstance(result, ToolResult):
                if not result.success:
                    raise ToolExecutionFailure(block.name, result.error or "tool reported failure")
                payload = result.data
            else:
                payload = result
            outcome = ToolOutcome(tool_use_id=block.id, tool_name=block.name, result=payload)
        except asyncio.CancelledError:
            raise
        except ToolExecutionFailure as exc:
            outcome = ToolOutcome(tool_use_id=block.id, tool_name=block.name, error=str(exc))
        except Exception as exc:
            failure = ToolExecutionFailure(block.name, str(exc) or type(exc).__name__)
            outcome = ToolOutcome(tool_use_id=block.id, tool_name=block.name, error=str(failure))

        duration_ms = (time.time() - start) * 1000
        tools_used.append(
            ToolUsage(
                name=block.name,
                input=tool_input,
                result=None if outcome.is_error else outcome.result,
                error=outcome.error,
                duration_ms=duration_ms,
            )
        )
        if outcome.is_error:
            self.observer.log_error(
                "tool_execution", outcome.error or "", {"tool": block.name, "args": tool_input}, context.conversation_id
            )
        self.observer.log_tool_call(
            tool_name=block.name,
            args=tool_input,
            result=outcome.to_block().content_text(),
            duration_ms=duration_ms,
            success=not outcome.is_error,
            conversation_id=context.conversation_id,
        )
        return outcome
