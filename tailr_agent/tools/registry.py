"""Tool registry: name -> (definition, handler), plus input validation."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError, ValidationError

from tailr_agent.core.errors import ToolInputValidationError
from tailr_agent.providers.types import ToolDefinition

from .base import BaseTool, ToolContext, ToolResult

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Dict[str, Any], ToolContext], Awaitable[Union[ToolResult, Dict[str, Any]]]]


@dataclass
class RegisteredTool:
    definition: ToolDefinition
    handler: ToolHandler
    validator: Optional[Draft202012Validator] = None


class ToolRegistry:
    """
    Registered tools, populated once at startup.

    After :meth:`freeze` the registry is read-only and can be shared by any
    number of concurrent orchestration runs.
    """

    def __init__(self) -> None:
        self._tools: Dict[str, RegisteredTool] = {}
        self._frozen = False

    def register(self, definition: ToolDefinition, handler: ToolHandler) -> None:
        if self._frozen:
            raise RuntimeError(f"Cannot register '{definition.name}': registry is frozen")
        if definition.name in self._tools:
            raise ValueError(f"Tool already registered: {definition.name}")
        validator = None
        if definition.input_schema:
            try:
                Draft202012Validator.check_schema(definition.input_schema)
            except SchemaError as exc:
                raise ValueError(f"Invalid input schema for tool '{definition.name}': {exc.message}") from exc
            validator = Draft202012Validator(definition.input_schema)
        self._tools[definition.name] = RegisteredTool(definition=definition, handler=handler, validator=validator)
        logger.debug("Registered tool %s", definition.name)

    def register_tool(self, tool: BaseTool) -> None:
        self.register(tool.definition, tool.execute)

    def freeze(self) -> "ToolRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lookup(self, name: str) -> Optional[ToolHandler]:
        entry = self._tools.get(name)
        return entry.handler if entry else None

    def get_definition(self, name: str) -> Optional[ToolDefinition]:
        entry = self._tools.get(name)
        return entry.definition if entry else None

    def schemas(self) -> List[ToolDefinition]:
        return [entry.definition for entry in self._tools.values()]

    def names(self) -> List[str]:
        return list(self._tools.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def validate_input(self, name: str, data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Check tool input against the declared schema.

        Returns a copy with schema defaults filled in. Every problem found is
        reported together in one ToolInputValidationError.
        """
        entry = self._tools.get(name)
        if entry is None:
            raise KeyError(f"Tool not found: {name}")

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ToolInputValidationError(name, [f"input must be an object, got {type(data).__name__}"])

        schema = entry.definition.input_schema or {}
        properties: Dict[str, Any] = schema.get("properties", {}) or {}
        required = schema.get("required", []) or []
        # models send null for optional arguments they mean to omit
        validated = {
            key: copy.deepcopy(value)
            for key, value in data.items()
            if value is not None or key in required
        }
        problems: List[str] = []

        for key in required:
            value = validated.get(key)
            if value is None:
                problems.append(f"missing required field '{key}'")
            elif isinstance(value, str) and not value.strip():
                problems.append(f"required field '{key}' is empty")

        if entry.validator is not None:
            for err in sorted(entry.validator.iter_errors(validated), key=lambda e: _location(e.path)):
                # top-level required fields are reported above
                if err.validator == "required" and not err.path:
                    continue
                if len(err.path) == 1 and err.path[0] in required and validated.get(err.path[0]) is None:
                    continue
                problems.append(_describe(err))

        if problems:
            raise ToolInputValidationError(name, problems)

        for key, prop in properties.items():
            if key not in validated and isinstance(prop, dict) and "default" in prop:
                validated[key] = copy.deepcopy(prop["default"])

        return validated


def _location(path: Iterable[Any]) -> str:
    location = ""
    for part in path:
        if isinstance(part, int):
            location += f"[{part}]"
        else:
            location += f".{part}" if location else str(part)
    return location


def _describe(err: ValidationError) -> str:
    location = _location(err.path)
    if not location:
        return err.message
    return f"field '{location}': {err.message}"
