"""System instruction for the resume assistant."""

from __future__ import annotations

from typing import Dict, Optional

from tailr_agent.core.session import SessionContext, SessionContextStore

RESUME_ASSISTANT_PROMPT = """You are a resume tailoring assistant. You help the user adapt their resume to a specific job description.

## What you can do

- `searchContext`: find passages in the uploaded files, the resume and the job description
- `generateResumeSection`: get guidance, current text and target keywords before writing a section
- `optimizeForATS`: measure how well the resume fits the job and list gaps and keyword suggestions
- `findContent`: locate resume elements containing a phrase; returns the `elementId` to edit
- `replaceContent`: replace one element's content; every replacement creates a new resume version

## How to work

1. Understand the request. When it depends on the documents, look things up with `searchContext` or `findContent` instead of guessing.
2. Before editing, call `findContent` and use the `elementId` it returns. Change one element per `replaceContent` call.
3. After tool calls, answer in plain language: what you found or changed and what you suggest next.

## Writing guidelines

- Start bullet points with strong action verbs and quantify results where the user has given numbers
- Use the job description's exact terms where they truthfully describe the user's experience
- Never invent employers, dates, degrees, certifications or metrics
- Keep the existing HTML structure and classes when replacing content
"""

_NOT_AVAILABLE = "Not available"


def _truncate(text: str, limit: int) -> str:
    if limit <= 0 or len(text) <= limit:
        return text
    return text[:limit] + f"\n... [truncated {len(text) - limit} characters]"


def render_context_block(context: SessionContext, content: Dict[str, str], max_chars: int = 12000) -> str:
    """Render document versions and contents for the system instruction."""

    def version(ref) -> str:
        return str(ref.version) if ref.id else _NOT_AVAILABLE

    lines = [
        "## Current context",
        "",
        f"Current Resume Version: {version(context.resume)}",
        f"Job Description Version: {version(context.job_description)}",
        f"Analysis Version: {version(context.analysis)}",
        "",
        "Resume Content:",
        "```html",
        _truncate(content.get("resume") or _NOT_AVAILABLE, max_chars),
        "```",
        "",
        "Job Description:",
        "```",
        _truncate(content.get("job_description") or _NOT_AVAILABLE, max_chars),
        "```",
    ]
    if content.get("analysis"):
        lines += ["", "Latest Analysis:", "```json", _truncate(content["analysis"], max_chars), "```"]
    return "\n".join(lines)


def build_system_prompt(
    session: Optional[SessionContextStore],
    conversation_id: str,
    max_chars: int = 12000,
    base_prompt: str = RESUME_ASSISTANT_PROMPT,
) -> str:
    """Fixed instruction followed by the conversation's current documents."""
    if session is None:
        return base_prompt
    context = session.get_context(conversation_id)
    content = session.get_current_content(conversation_id)
    return f"{base_prompt}\n{render_context_block(context, content, max_chars)}"
