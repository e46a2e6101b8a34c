from __future__ import annotations

import pytest

from tailr_agent.core.errors import ToolInputValidationError
from tailr_agent.providers.types import ToolDefinition
from tailr_agent.tools import build_registry
from tailr_agent.tools.registry import ToolRegistry

ECHO = ToolDefinition(
    name="echo",
    description="Echo the input",
    input_schema={
        "type": "object",
        "properties": {
            "text": {"type": "string"},
            "times": {"type": "integer", "default": 1, "minimum": 1, "maximum": 3},
            "mode": {"type": "string", "enum": ["loud", "quiet"]},
            "tags": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["text"],
        "additionalProperties": False,
    },
)


async def _echo(data, context):
    return {"echo": data["text"] * data["times"]}


@pytest.fixture
def registry() -> ToolRegistry:
    reg = ToolRegistry()
    reg.register(ECHO, _echo)
    return reg


def test_lookup_and_definitions(registry):
    assert registry.lookup("echo") is _echo
    assert registry.lookup("missing") is None
    assert registry.get_definition("echo") is ECHO
    assert registry.schemas() == [ECHO]
    assert "echo" in registry
    assert len(registry) == 1


def test_duplicate_registration_rejected(registry):
    with pytest.raises(ValueError, match="already registered"):
        registry.register(ECHO, _echo)


def test_frozen_registry_rejects_registration(registry):
    registry.freeze()
    assert registry.frozen
    with pytest.raises(RuntimeError):
        registry.register(ToolDefinition("other", "", {"type": "object"}), _echo)


def test_validate_applies_defaults_without_mutating_input(registry):
    data = {"text": "hi"}
    validated = registry.validate_input("echo", data)

    assert validated == {"text": "hi", "times": 1}
    assert data == {"text": "hi"}


def test_validate_reports_every_problem(registry):
    with pytest.raises(ToolInputValidationError) as exc_info:
        registry.validate_input("echo", {"times": 9, "mode": "shouty", "tags": ["a", 2], "extra": True})

    problems = exc_info.value.problems
    assert "missing required field 'text'" in problems
    assert "field 'times': 9 is greater than the maximum of 3" in problems
    assert any(p.startswith("field 'mode': 'shouty' is not one of") for p in problems)
    assert "field 'tags[1]': 2 is not of type 'string'" in problems
    assert any("'extra' was unexpected" in p for p in problems)
    assert str(exc_info.value).startswith("Tool 'echo' failed: invalid input")


def test_validate_enforces_nested_and_length_constraints():
    reg = ToolRegistry()
    reg.register(
        ToolDefinition(
            name="lookup",
            description="",
            input_schema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "minLength": 3},
                    "tags": {"type": "array", "maxItems": 1},
                    "opts": {
                        "type": "object",
                        "properties": {"k": {"type": "integer"}},
                        "required": ["k"],
                    },
                },
            },
        ),
        _echo,
    )

    with pytest.raises(ToolInputValidationError) as exc_info:
        reg.validate_input("lookup", {"query": "ab", "tags": ["a", "b"], "opts": {"k": "not-int"}})

    problems = exc_info.value.problems
    assert any(p.startswith("field 'query': 'ab'") for p in problems)
    assert any(p.startswith("field 'tags': ['a', 'b']") for p in problems)
    assert "field 'opts.k': 'not-int' is not of type 'integer'" in problems

    with pytest.raises(ToolInputValidationError, match="'k' is a required property"):
        reg.validate_input("lookup", {"opts": {}})


def test_validate_drops_null_optional_fields(registry):
    assert registry.validate_input("echo", {"text": "hi", "mode": None}) == {"text": "hi", "times": 1}


def test_register_rejects_malformed_schema():
    with pytest.raises(ValueError, match="Invalid input schema"):
        ToolRegistry().register(ToolDefinition("bad", "", {"type": "no-such-type"}), _echo)


def test_validate_rejects_blank_required_string(registry):
    with pytest.raises(ToolInputValidationError, match="required field 'text' is empty"):
        registry.validate_input("echo", {"text": "   "})


def test_validate_rejects_bool_for_integer(registry):
    with pytest.raises(ToolInputValidationError, match="field 'times': True is not of type 'integer'"):
        registry.validate_input("echo", {"text": "x", "times": True})


def test_validate_unknown_tool_raises_key_error(registry):
    with pytest.raises(KeyError):
        registry.validate_input("nope", {})


def test_default_registry_has_all_tools():
    registry = build_registry()

    assert registry.frozen
    assert set(registry.names()) == {
        "searchContext",
        "generateResumeSection",
        "optimizeForATS",
        "findContent",
        "replaceContent",
    }
    assert registry.validate_input("searchContext", {"query": "python"})["maxResults"] == 5
