"""Anthropic Messages API provider implementation."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from anthropic import AsyncAnthropic

from .types import (
    ContentBlock,
    GenerationConfig,
    LLMResponse,
    Message,
    TextBlock,
    ToolDefinition,
    ToolResultBlock,
    ToolUseBlock,
)


class AnthropicProvider:
    """Provider for Claude models via the ``anthropic`` SDK."""

    def __init__(
        self,
        api_key: str,
        model: str,
        api_base: str = "",
    ) -> None:
        self.model = model
        self.api_base = api_base or ""
        self.client = AsyncAnthropic(api_key=api_key, base_url=api_base or None)

    async def generate(
        self,
        messages: List[Message],
        tools: Optional[List[ToolDefinition]],
        config: GenerationConfig,
    ) -> LLMResponse:
        system_prompt, anthropic_messages = self._to_anthropic_messages(messages, config.system_prompt)
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": anthropic_messages,
            "max_tokens": config.max_tokens if config.max_tokens and config.max_tokens > 0 else 4096,
        }
        if system_prompt:
            kwargs["system"] = system_prompt
        if config.temperature is not None:
            kwargs["temperature"] = config.temperature
        anthropic_tools = self._to_anthropic_tools(tools)
        if anthropic_tools:
            kwargs["tools"] = anthropic_tools

        response = await self.client.messages.create(**kwargs)
        return self._from_anthropic_response(response)

    def _to_anthropic_messages(
        self, messages: List[Message], system_prompt: str
    ) -> Tuple[str, List[Dict[str, Any]]]:
        # The Messages API takes system text out of band.
        system_parts = [system_prompt] if system_prompt else []
        result: List[Dict[str, Any]] = []

        for msg in messages:
            if msg.role == "system":
                text = msg.text()
                if text:
                    system_parts.append(text)
                continue

            role = "assistant" if msg.role == "assistant" else "user"
            if isinstance(msg.content, str):
                result.append({"role": role, "content": msg.content})
                continue

            result.append({"role": role, "content": [self._block_to_dict(b) for b in msg.content]})

        return "\n\n".join(system_parts), result

    def _block_to_dict(self, block: ContentBlock) -> Dict[str, Any]:
        if isinstance(block, ToolUseBlock):
            return {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input or {}}
        if isinstance(block, ToolResultBlock):
            data: Dict[str, Any] = {
                "type": "tool_result",
                "tool_use_id": block.tool_use_id,
                "content": block.content_text(),
            }
            if block.is_error:
                data["is_error"] = True
            return data
        return {"type": "text", "text": block.text}

    def _to_anthropic_tools(self, tools: Optional[List[ToolDefinition]]) -> Optional[List[Dict[str, Any]]]:
        if not tools:
            return None
        return [tool.to_dict() for tool in tools]

    def _from_anthropic_response(self, response: Any) -> LLMResponse:
        blocks: List[ContentBlock] = []
        for item in getattr(response, "content", None) or []:
            item_type = getattr(item, "type", None)
            if item_type == "text":
                blocks.append(TextBlock(text=getattr(item, "text", "") or ""))
            elif item_type == "tool_use":
                raw_input = getattr(item, "input", None)
                blocks.append(
                    ToolUseBlock(
                        id=getattr(item, "id", "") or "",
                        name=getattr(item, "name", "") or "",
                        input=dict(raw_input) if isinstance(raw_input, dict) else {},
                    )
                )
            # thinking / redacted blocks carry nothing the loop acts on

        usage_data = getattr(response, "usage", None)
        usage = None
        if usage_data:
            input_tokens = int(getattr(usage_data, "input_tokens", 0) or 0)
            output_tokens = int(getattr(usage_data, "output_tokens", 0) or 0)
            usage = {
                "prompt_tokens": input_tokens,
                "completion_tokens": output_tokens,
                "total_tokens": input_tokens + output_tokens,
            }

        return LLMResponse(
            content=blocks,
            stop_reason=getattr(response, "stop_reason", None),
            usage=usage,
            raw=response,
        )
