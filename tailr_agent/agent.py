"""ResumeAssistant - conversation-level facade over the tool-calling loop."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from .core.errors import TailrError
from .core.history import HistoryManager
from .core.orchestrator import ToolCallOrchestrator
from .core.session import ContentType, ContextUpdate, SessionContextStore
from .providers.types import Message
from .tools.base import UploadedFile

logger = logging.getLogger(__name__)


@dataclass
class ChatReply:
    """What one chat turn produced."""

    text: str
    tools_used: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[TailrError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ResumeAssistant:
    """Keeps per-conversation history and files, and runs turns through the orchestrator.

    Failures of a turn never propagate out of :meth:`chat`; they come back as an
    ``"Error: ..."`` reply that is also recorded in the history.
    """

    def __init__(
        self,
        orchestrator: ToolCallOrchestrator,
        session: SessionContextStore,
        history_max_messages: int = 50,
        history_max_tokens: int = 100000,
    ):
        self.orchestrator = orchestrator
        self.session = session
        self.history_max_messages = history_max_messages
        self.history_max_tokens = history_max_tokens
        self._histories: Dict[str, HistoryManager] = {}
        self._files: Dict[str, List[UploadedFile]] = {}

    def _history(self, conversation_id: str) -> HistoryManager:
        history = self._histories.get(conversation_id)
        if history is None:
            history = HistoryManager(max_messages=self.history_max_messages, max_tokens=self.history_max_tokens)
            self._histories[conversation_id] = history
        return history

    async def chat(
        self,
        conversation_id: str,
        text: str,
        files: Sequence[UploadedFile] = (),
    ) -> ChatReply:
        """Run one user turn and return the assistant's reply."""
        history = self._history(conversation_id)
        history.add_message(Message.user(text))
        all_files = list(self._files.get(conversation_id, [])) + list(files)

        try:
            result = await self.orchestrator.run(
                history.get_history(),
                conversation_id=conversation_id,
                files=all_files,
            )
        except TailrError as exc:
            logger.warning("Turn failed for conversation %s: %s", conversation_id, exc)
            message = f"Error: {exc}"
            history.add_message(Message.assistant(message))
            return ChatReply(text=message, tools_used=list(getattr(exc, "tools_used", [])), error=exc)

        history.replace(result.conversation)
        return ChatReply(text=result.text, tools_used=result.tools_used)

    def upload(
        self,
        conversation_id: str,
        name: str,
        content: str,
        type: str = "text/plain",
        file_id: Optional[str] = None,
    ) -> UploadedFile:
        uploaded = UploadedFile(id=file_id or uuid.uuid4().hex[:12], name=name, content=content, type=type)
        self._files.setdefault(conversation_id, []).append(uploaded)
        return uploaded

    def files(self, conversation_id: str) -> List[UploadedFile]:
        return list(self._files.get(conversation_id, []))

    def set_document(self, conversation_id: str, content_type: Union[ContentType, str], content: str) -> int:
        """Store a new version of the resume, job description or analysis. Returns the version."""
        content_type = ContentType(content_type)
        version = self.session.get_context(conversation_id).ref(content_type).version + 1
        self.session.update_content(
            conversation_id, ContextUpdate(type=content_type, content=content, version=version)
        )
        return version

    def history(self, conversation_id: str) -> List[Message]:
        return self._history(conversation_id).get_history()

    def reset(self, conversation_id: str) -> None:
        """Forget the conversation's messages and files, and detach its documents."""
        self._histories.pop(conversation_id, None)
        self._files.pop(conversation_id, None)
        self.session.clear_context(conversation_id)

    def stats(self) -> Dict[str, Any]:
        stats = dict(self.orchestrator.observer.get_session_stats())
        embeddings = self.orchestrator.embeddings
        if embeddings is not None:
            stats["embedding_cache"] = embeddings.cache.get_stats()
        return stats
