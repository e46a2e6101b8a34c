"""Gemini provider implementation."""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Dict, List, Optional, cast

from google import genai
from google.genai import types

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


class GeminiProvider:
    """Google Gemini provider using google-genai SDK."""

    def __init__(
        self,
        api_key: str,
        model: str,
        api_base: str = "",
    ) -> None:
        self.model = model
        # google-genai does not expose a stable api_base option; keep for future use
        _ = api_base
        self.client = genai.Client(api_key=api_key)

    async def generate(
        self,
        messages: List[Message],
        tools: Optional[List[ToolDefinition]],
        config: GenerationConfig,
    ) -> LLMResponse:
        contents = self._to_gemini_contents(messages)
        gemini_tools = self._to_gemini_tools(tools)

        response = await asyncio.to_thread(
            self.client.models.generate_content,
            model=self.model,
            contents=contents,
            config=types.GenerateContentConfig(
                system_instruction=config.system_prompt if config.system_prompt else None,
                tools=cast(Any, gemini_tools),
                max_output_tokens=config.max_tokens,
                temperature=config.temperature,
            ),
        )

        return self._from_gemini_response(response)

    def _from_gemini_response(self, response) -> LLMResponse:
        if not response.candidates:
            raise RuntimeError("Empty LLM response: no candidates")

        candidate = response.candidates[0]
        parts = candidate.content.parts if candidate.content else []
        blocks: List[ContentBlock] = []

        for part in parts or []:
            if part.function_call:
                blocks.append(
                    ToolUseBlock(
                        # Gemini does not assign call ids; mint one so results can be paired.
                        id=getattr(part.function_call, "id", None) or f"tool_{uuid.uuid4().hex}",
                        name=part.function_call.name,
                        input=dict(part.function_call.args) if part.function_call.args else {},
                    )
                )
            elif part.text:
                blocks.append(TextBlock(text=part.text))

        return LLMResponse(
            content=blocks,
            stop_reason=str(getattr(candidate, "finish_reason", "") or "") or None,
            raw=response,
        )

    def _to_gemini_contents(self, messages: List[Message]) -> List[types.Content]:
        contents: List[types.Content] = []
        for msg in messages:
            if msg.role == "system":
                # system text is passed through system_instruction
                continue
            role = "model" if msg.role == "assistant" else "user"

            parts: List[types.Part] = []
            for block in msg.blocks():
                if isinstance(block, ToolUseBlock):
                    parts.append(types.Part.from_function_call(name=block.name, args=block.input or {}))
                elif isinstance(block, ToolResultBlock):
                    response = block.content if isinstance(block.content, dict) else {"result": block.content}
                    if block.is_error:
                        response = {"error": block.content_text()}
                    parts.append(types.Part.from_function_response(name=block.name, response=response))
                elif block.text:
                    parts.append(types.Part.from_text(text=block.text))

            if parts:
                contents.append(types.Content(role=role, parts=parts))
        return contents

    def _to_gemini_tools(self, tools: Optional[List[ToolDefinition]]) -> Optional[List[types.Tool]]:
        if not tools:
            return None
        declarations = [self._to_gemini_declaration(tool) for tool in tools]
        return [types.Tool(function_declarations=declarations)]

    def _to_gemini_declaration(self, tool: ToolDefinition) -> types.FunctionDeclaration:
        properties: Dict[str, types.Schema] = {}
        required = tool.input_schema.get("required", [])

        for prop_name, prop_def in tool.input_schema.get("properties", {}).items():
            properties[prop_name] = self._to_gemini_schema(prop_def or {})

        return types.FunctionDeclaration(
            name=tool.name,
            description=tool.description,
            parameters=types.Schema(
                type=types.Type.OBJECT,
                properties=properties,
                required=required,
            ),
        )

    def _to_gemini_schema(self, schema_def: Dict[str, Any]) -> types.Schema:
        type_name = str(schema_def.get("type", "string") or "string").lower()
        type_map = {
            "string": types.Type.STRING,
            "integer": types.Type.INTEGER,
            "number": types.Type.NUMBER,
            "boolean": types.Type.BOOLEAN,
            "object": types.Type.OBJECT,
            "array": types.Type.ARRAY,
        }
        gemini_type = type_map.get(type_name, types.Type.STRING)

        kwargs: Dict[str, Any] = {
            "type": gemini_type,
            "description": schema_def.get("description", ""),
        }

        enum_values = schema_def.get("enum")
        if isinstance(enum_values, list) and enum_values:
            kwargs["enum"] = [str(v) for v in enum_values]

        if gemini_type == types.Type.OBJECT:
            props: Dict[str, types.Schema] = {}
            for prop_name, prop_def in (schema_def.get("properties") or {}).items():
                if isinstance(prop_def, dict):
                    props[prop_name] = self._to_gemini_schema(prop_def)
            kwargs["properties"] = props

        if gemini_type == types.Type.ARRAY:
            items = schema_def.get("items")
            if isinstance(items, dict):
                kwargs["items"] = self._to_gemini_schema(items)

        return types.Schema(**kwargs)
