"""OpenAI-compatible provider implementation."""

from __future__ import annotations

import json
import re
import uuid
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

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


class OpenAICompatibleProvider:
    """Provider for OpenAI-compatible chat APIs."""

    def __init__(
        self,
        api_key: str,
        model: str,
        api_base: str = "",
    ) -> None:
        self.model = model
        self.api_base = api_base or ""
        self.client = AsyncOpenAI(api_key=api_key, base_url=api_base or None)
        self._forced_temperature: Optional[float] = None

    async def generate(
        self,
        messages: List[Message],
        tools: Optional[List[ToolDefinition]],
        config: GenerationConfig,
    ) -> LLMResponse:
        openai_messages = self._to_openai_messages(messages, config.system_prompt)
        openai_tools = self._to_openai_tools(tools)
        kwargs = self._build_chat_kwargs(
            messages=openai_messages,
            tools=openai_tools,
            config=config,
        )
        completion = await self._create_with_temperature_retry(kwargs)

        return self._from_openai_completion(completion)

    def _build_chat_kwargs(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]],
        config: GenerationConfig,
    ) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
        }
        if config.max_tokens and config.max_tokens > 0:
            kwargs["max_tokens"] = config.max_tokens
        normalized_temperature = self._normalize_temperature(config.temperature)
        if normalized_temperature is not None:
            kwargs["temperature"] = normalized_temperature
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"
        return kwargs

    def _normalize_temperature(self, temperature: Optional[float]) -> Optional[float]:
        if self._forced_temperature is not None:
            return self._forced_temperature
        return temperature

    async def _create_with_temperature_retry(self, kwargs: Dict[str, Any]):
        try:
            return await self.client.chat.completions.create(**kwargs)
        except Exception as error:
            allowed = self._extract_allowed_temperature(error)
            current = kwargs.get("temperature")
            if allowed is None or current == allowed:
                raise

            retry_kwargs = dict(kwargs)
            retry_kwargs["temperature"] = allowed
            self._forced_temperature = allowed
            return await self.client.chat.completions.create(**retry_kwargs)

    def _extract_allowed_temperature(self, error: Exception) -> Optional[float]:
        message = str(error).lower()
        if "invalid temperature" not in message:
            return None

        # Example: "invalid temperature: only 0.6 is allowed for this model"
        match = re.search(r"only\s+([0-9]+(?:\.[0-9]+)?)\s+is allowed", message)
        if not match:
            return None
        return float(match.group(1))

    def _to_openai_messages(self, messages: List[Message], system_prompt: str) -> List[Dict[str, Any]]:
        result: List[Dict[str, Any]] = []
        if system_prompt:
            result.append({"role": "system", "content": system_prompt})

        for msg in messages:
            if isinstance(msg.content, str):
                result.append({"role": msg.role, "content": msg.content})
                continue

            # Tool results travel as dedicated "tool" messages.
            for block in msg.content:
                if isinstance(block, ToolResultBlock):
                    result.append(
                        {
                            "role": "tool",
                            "tool_call_id": block.tool_use_id or f"tool_{uuid.uuid4().hex}",
                            "content": block.content_text(),
                        }
                    )

            text = "\n".join(b.text for b in msg.content if isinstance(b, TextBlock))
            tool_calls = [
                {
                    "id": block.id or f"tool_{uuid.uuid4().hex}",
                    "type": "function",
                    "function": {
                        "name": block.name,
                        "arguments": json.dumps(block.input or {}),
                    },
                }
                for block in msg.content
                if isinstance(block, ToolUseBlock)
            ]
            if not text and not tool_calls:
                continue

            message: Dict[str, Any] = {"role": msg.role, "content": text}
            if tool_calls:
                message["tool_calls"] = tool_calls
            result.append(message)

        return result

    def _to_openai_tools(self, tools: Optional[List[ToolDefinition]]) -> Optional[List[Dict[str, Any]]]:
        if not tools:
            return None
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.input_schema,
                },
            }
            for tool in tools
        ]

    def _from_openai_completion(self, completion) -> LLMResponse:
        if not completion.choices:
            raise RuntimeError("Empty LLM response: no choices")

        choice = completion.choices[0]
        message = choice.message
        blocks: List[ContentBlock] = []

        text = self._normalize_message_content(getattr(message, "content", ""))
        if text:
            blocks.append(TextBlock(text=text))

        for call in getattr(message, "tool_calls", None) or []:
            function = getattr(call, "function", None)
            if function is None:
                continue
            blocks.append(
                ToolUseBlock(
                    id=getattr(call, "id", None) or f"tool_{uuid.uuid4().hex}",
                    name=getattr(function, "name", "") or "",
                    input=self._safe_parse_args(getattr(function, "arguments", None)),
                )
            )

        # A text preamble would hide the tool request from first-block inspection.
        reordered = False
        if len(blocks) > 1 and isinstance(blocks[0], TextBlock) and getattr(choice, "finish_reason", None) == "tool_calls":
            blocks = blocks[1:] + blocks[:1]
            reordered = True

        usage_data = getattr(completion, "usage", None)
        usage = None
        if usage_data:
            usage = {
                "prompt_tokens": int(getattr(usage_data, "prompt_tokens", 0) or 0),
                "completion_tokens": int(getattr(usage_data, "completion_tokens", 0) or 0),
                "total_tokens": int(getattr(usage_data, "total_tokens", 0) or 0),
            }

        return LLMResponse(
            content=blocks,
            stop_reason=getattr(choice, "finish_reason", None),
            usage=usage,
            raw=completion,
            reordered=reordered,
        )

    def _normalize_message_content(self, content: Any) -> str:
        if content is None:
            return ""
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            text_chunks: List[str] = []
            for item in content:
                if isinstance(item, str):
                    text_chunks.append(item)
                elif isinstance(item, dict):
                    text_chunks.append(str(item.get("text", "")))
                else:
                    text_chunks.append(str(getattr(item, "text", "") or ""))
            return "".join(text_chunks)
        return str(content)

    def _safe_parse_args(self, arguments: Any) -> Dict[str, Any]:
        if not arguments:
            return {}
        if isinstance(arguments, dict):
            return arguments
        try:
            parsed = json.loads(arguments)
        except (TypeError, ValueError):
            return {}
        return parsed if isinstance(parsed, dict) else {}
