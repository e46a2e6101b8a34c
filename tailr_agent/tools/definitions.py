"""Declarations of the tools offered to the model."""

from __future__ import annotations

from typing import List

from tailr_agent.providers.types import ToolDefinition

RESUME_SECTION_TYPES = ["summary", "experience", "skills", "education", "projects", "certifications"]
ATS_FOCUS_SECTIONS = ["summary", "experience", "skills", "education", "projects"]

SEARCH_CONTEXT = ToolDefinition(
    name="searchContext",
    description=(
        "Search the uploaded documents, the current resume and the job description for passages "
        "relevant to a question. Use this when the user refers to content in their files or you "
        "need specific details before answering."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "What to look for (e.g. 'kubernetes experience', 'required certifications')",
            },
            "maxResults": {
                "type": "integer",
                "description": "Maximum number of passages to return",
                "default": 5,
                "minimum": 1,
                "maximum": 20,
            },
        },
        "required": ["query"],
    },
)

GENERATE_RESUME_SECTION = ToolDefinition(
    name="generateResumeSection",
    description=(
        "Gather what is needed to write or rewrite one resume section: the section's guidance, "
        "its current text, and the job keywords it should reflect."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "sectionType": {
                "type": "string",
                "description": "The resume section to generate",
                "enum": RESUME_SECTION_TYPES,
            },
            "context": {
                "type": "string",
                "description": "Specific goals or facts the section should cover",
            },
        },
        "required": ["sectionType", "context"],
    },
)

OPTIMIZE_FOR_ATS = ToolDefinition(
    name="optimizeForATS",
    description=(
        "Compare the resume with the job description using semantic similarity. Returns the overall "
        "fit score, requirements the resume covers or misses, matched and missing keywords, and "
        "concrete suggestions."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "jobDescription": {
                "type": "string",
                "description": "Job description text; defaults to the one stored for this conversation",
            },
            "focusSections": {
                "type": "array",
                "description": "Resume sections to analyse; defaults to all",
                "items": {"type": "string", "enum": ATS_FOCUS_SECTIONS},
            },
        },
        "required": [],
    },
)

FIND_CONTENT = ToolDefinition(
    name="findContent",
    description=(
        "Find elements of the resume whose text contains a phrase. Returns each element's id, class, "
        "content and surrounding context. Call this before replaceContent to get the elementId."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "contentPattern": {
                "type": "string",
                "description": "Text to look for (case-insensitive)",
            },
            "description": {
                "type": "string",
                "description": "Why this content is being looked up",
            },
        },
        "required": ["contentPattern", "description"],
    },
)

REPLACE_CONTENT = ToolDefinition(
    name="replaceContent",
    description=(
        "Replace the content of one resume element, identified by the elementId returned from "
        "findContent. Creates a new resume version."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "elementId": {
                "type": "string",
                "description": "Element id or locator returned by findContent",
            },
            "newContent": {
                "type": "string",
                "description": "New inner content (text or HTML) for the element",
            },
            "nextStep": {
                "type": "string",
                "description": "What you plan to do next, shown to the user",
            },
        },
        "required": ["elementId", "newContent"],
    },
)

ALL_TOOLS: List[ToolDefinition] = [
    SEARCH_CONTEXT,
    GENERATE_RESUME_SECTION,
    OPTIMIZE_FOR_ATS,
    FIND_CONTENT,
    REPLACE_CONTENT,
]
