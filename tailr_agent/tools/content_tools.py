"""findContent / replaceContent: locate and edit elements of the resume HTML."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from tailr_agent.core.session import ContentType, ContextUpdate

from .base import BaseTool, ToolContext, ToolResult, require_session
from .definitions import FIND_CONTENT, REPLACE_CONTENT

logger = logging.getLogger(__name__)

_SKIP_TAGS = {"html", "head", "script", "style", "title", "meta"}
_LOCATOR_STEP = re.compile(r"^([a-z][a-z0-9]*)\[(\d+)\]$")
CONTEXT_CHARS = 200


def _text(element: Tag) -> str:
    return " ".join(element.get_text(" ").split())


def _root(soup: BeautifulSoup) -> Tuple[Tag, str]:
    if soup.body is not None:
        return soup.body, "@body"
    return soup, "@doc"


def element_locator(element: Tag, soup: BeautifulSoup) -> str:
    """Stable positional path such as ``@body/div[1]/p[2]`` (1-based among same-tag siblings)."""
    root, prefix = _root(soup)
    steps: List[str] = []
    current = element
    while current is not None and current is not root:
        parent = current.parent
        if parent is None:
            break
        same_tag = parent.find_all(current.name, recursive=False)
        position = next(i for i, sibling in enumerate(same_tag, 1) if sibling is current)
        steps.append(f"{current.name}[{position}]")
        current = parent
    return "/".join([prefix] + list(reversed(steps)))


def resolve_element(soup: BeautifulSoup, element_id: str) -> Optional[Tag]:
    """Find an element by its ``id`` attribute or by a positional locator."""
    if not element_id.startswith("@"):
        found = soup.find(id=element_id)
        return found if isinstance(found, Tag) else None

    root, prefix = _root(soup)
    steps = element_id.split("/")
    if steps[0] != prefix:
        return None
    current: Tag = root
    for step in steps[1:]:
        match = _LOCATOR_STEP.match(step)
        if not match:
            return None
        children = current.find_all(match.group(1), recursive=False)
        index = int(match.group(2)) - 1
        if index < 0 or index >= len(children):
            return None
        current = children[index]
    return current if current is not soup else None


def find_innermost(soup: BeautifulSoup, pattern: str) -> List[Tag]:
    """Elements whose text contains *pattern* (case-insensitive) and none of whose children do."""
    needle = " ".join(pattern.split()).lower()
    root, _ = _root(soup)
    candidates = [root] + [el for el in root.find_all(True) if el.name not in _SKIP_TAGS]
    matches: List[Tag] = []
    for element in candidates:
        if element is soup or needle not in _text(element).lower():
            continue
        if any(needle in _text(child).lower() for child in element.find_all(True, recursive=False)):
            continue
        matches.append(element)
    return matches


class FindContentTool(BaseTool):
    definition = FIND_CONTENT

    async def execute(self, input: Dict[str, Any], context: ToolContext) -> ToolResult:
        session = require_session(context)
        stored = session.get_content(context.conversation_id, ContentType.RESUME)
        if stored is None or not stored.content.strip():
            return ToolResult.fail("No resume stored for this conversation")

        soup = BeautifulSoup(stored.content, "html.parser")
        pattern = input["contentPattern"]
        matches = []
        for element in find_innermost(soup, pattern):
            parent = element.parent if isinstance(element.parent, Tag) and element.parent.name != "[document]" else element
            surrounding = _text(parent)
            matches.append(
                {
                    "elementId": element.get("id") or element_locator(element, soup),
                    "elementClass": " ".join(element.get("class") or []),
                    "tag": element.name,
                    "content": _text(element),
                    "context": surrounding[:CONTEXT_CHARS],
                }
            )

        logger.info("findContent '%s': %d match(es)", pattern, len(matches))
        return ToolResult.ok(
            matches=matches,
            totalMatches=len(matches),
            description=input.get("description", ""),
            resumeVersion=stored.version,
            message=f"Found {len(matches)} element(s) containing '{pattern}'" if matches else f"No content matching '{pattern}' found in the resume",
        )


class ReplaceContentTool(BaseTool):
    definition = REPLACE_CONTENT

    async def execute(self, input: Dict[str, Any], context: ToolContext) -> ToolResult:
        session = require_session(context)
        stored = session.get_content(context.conversation_id, ContentType.RESUME)
        if stored is None or not stored.content.strip():
            return ToolResult.fail("No resume stored for this conversation")

        element_id = input["elementId"]
        new_content = input["newContent"]
        soup = BeautifulSoup(stored.content, "html.parser")
        element = resolve_element(soup, element_id)
        if element is None:
            return ToolResult.fail(f"Element '{element_id}' not found in resume", elementId=element_id)

        old_content = element.decode_contents()
        element.clear()
        fragment = BeautifulSoup(new_content, "html.parser")
        for node in list(fragment.contents):
            element.append(node.extract())

        version = session.get_context(context.conversation_id).resume.version + 1
        session.update_content(
            context.conversation_id,
            ContextUpdate(type=ContentType.RESUME, content=str(soup), version=version),
        )
        logger.info("replaceContent %s -> resume v%d", element_id, version)

        return ToolResult.ok(
            success=True,
            summary=f"Updated <{element.name}> '{element_id}' (resume version {version})",
            elementId=element_id,
            oldContent=old_content,
            newContent=new_content,
            nextStep=input.get("nextStep"),
            version=version,
        )
