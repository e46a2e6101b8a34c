"""Versioned per-conversation documents: resume, job description and analysis."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .errors import VersionConflict

logger = logging.getLogger(__name__)


class ContentType(str, Enum):
    RESUME = "resume"
    JOB_DESCRIPTION = "job_description"
    ANALYSIS = "analysis"


@dataclass
class VersionRef:
    """Pointer to the stored content for one field. Version 0 means nothing stored."""

    id: str = ""
    version: int = 0


@dataclass
class VersionedContent:
    id: str
    content: str
    version: int
    timestamp: float


@dataclass
class SessionContext:
    conversation_id: str
    resume: VersionRef = field(default_factory=VersionRef)
    job_description: VersionRef = field(default_factory=VersionRef)
    analysis: VersionRef = field(default_factory=VersionRef)
    last_updated: float = field(default_factory=time.time)

    def ref(self, content_type: ContentType) -> VersionRef:
        return getattr(self, ContentType(content_type).value)


@dataclass
class ContextUpdate:
    """A proposed new version of one document."""

    type: ContentType
    content: str
    version: int


@dataclass
class ContextChange:
    """Record of an accepted update."""

    type: ContentType
    version: int
    previous_version: int
    timestamp: float


class SessionContextStore:
    """In-memory store of conversation contexts and their content versions.

    Example:
        store = SessionContextStore()
        ctx = store.get_context("c1")
        store.update_content("c1", ContextUpdate(ContentType.RESUME, html, ctx.resume.version + 1))
        store.get_current_content("c1")["resume"]
    """

    def __init__(self):
        self._contexts: Dict[str, SessionContext] = {}
        self._content: Dict[str, VersionedContent] = {}
        self._history: Dict[str, List[ContextChange]] = {}

    def get_context(self, conversation_id: str) -> SessionContext:
        """Return the context for a conversation, creating an empty one on first access."""
        context = self._contexts.get(conversation_id)
        if context is None:
            context = SessionContext(conversation_id=conversation_id)
            self._contexts[conversation_id] = context
        return context

    def update_content(self, conversation_id: str, update: ContextUpdate) -> SessionContext:
        """
        Store a new version of one document.

        The update must carry exactly the current version plus one. Anything
        else raises VersionConflict and leaves the context untouched.
        """
        content_type = ContentType(update.type)
        context = self.get_context(conversation_id)
        ref = context.ref(content_type)

        expected = ref.version + 1
        if update.version != expected:
            raise VersionConflict(content_type.value, expected, update.version)

        content_id = f"{conversation_id}-{content_type.value}"
        now = time.time()
        self._content[content_id] = VersionedContent(
            id=content_id,
            content=update.content,
            version=update.version,
            timestamp=now,
        )
        setattr(context, content_type.value, VersionRef(id=content_id, version=update.version))
        context.last_updated = now

        self._history.setdefault(conversation_id, []).append(
            ContextChange(type=content_type, version=update.version, previous_version=ref.version, timestamp=now)
        )
        logger.info("Stored %s v%d for conversation %s", content_type.value, update.version, conversation_id)
        return context

    def get_content(self, conversation_id: str, content_type: ContentType) -> Optional[VersionedContent]:
        ref = self.get_context(conversation_id).ref(content_type)
        if not ref.id:
            return None
        return self._content.get(ref.id)

    def get_current_content(self, conversation_id: str) -> Dict[str, str]:
        """Current text of every document; empty string where nothing is stored."""
        current: Dict[str, str] = {}
        for content_type in ContentType:
            stored = self.get_content(conversation_id, content_type)
            current[content_type.value] = stored.content if stored else ""
        return current

    def is_context_current(self, conversation_id: str) -> bool:
        """True when every document of the conversation has stored content."""
        context = self.get_context(conversation_id)
        return all(context.ref(t).id in self._content for t in ContentType)

    def clear_context(self, conversation_id: str) -> None:
        """
        Detach the conversation from its stored documents.

        Version counters are kept so the next update of each field continues
        from the last version. Stored content and history are kept as well.
        """
        context = self._contexts.get(conversation_id)
        if context is None:
            return
        for content_type in ContentType:
            ref = context.ref(content_type)
            setattr(context, content_type.value, VersionRef(id="", version=ref.version))
        context.last_updated = time.time()

    def get_history(self, conversation_id: str) -> List[ContextChange]:
        return list(self._history.get(conversation_id, []))
