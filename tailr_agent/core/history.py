"""Conversation history with automatic pruning."""

from __future__ import annotations

from typing import Iterable, List

from tailr_agent.providers.types import Message, TextBlock, ToolResultBlock, ToolUseBlock


class HistoryManager:
    """Keeps a conversation within message and token limits.

    Pruning never separates a tool request from its result: the model APIs
    reject a result whose request is gone, and a request left without a result.
    """

    def __init__(self, max_messages: int = 50, max_tokens: int = 100000):
        """
        Initialize history manager.

        Args:
            max_messages: Maximum number of messages to keep
            max_tokens: Estimated maximum tokens to keep
        """
        self.max_messages = max_messages
        self.max_tokens = max_tokens
        self._history: List[Message] = []

    def add_message(self, message: Message):
        if message is None:
            return
        self._history.append(message)
        self._prune_if_needed()

    def replace(self, messages: Iterable[Message]):
        """Swap in a conversation returned by the orchestrator, then prune."""
        self._history = [m for m in messages if m is not None]
        self._ensure_valid_sequence()
        self._prune_if_needed()

    def get_history(self) -> List[Message]:
        return list(self._history)

    def clear(self):
        self._history.clear()

    def __len__(self) -> int:
        return len(self._history)

    def _prune_if_needed(self):
        """Prune history if it exceeds limits while preserving request/result pairs."""
        if len(self._history) > self.max_messages:
            self._history = self._history[-self.max_messages :]
            self._ensure_valid_sequence()

        estimated_tokens = sum(self._estimate_tokens(msg) for msg in self._history)
        if estimated_tokens > self.max_tokens:
            while estimated_tokens > self.max_tokens and len(self._history) > 2:
                if self._is_tool_pair(0):
                    estimated_tokens -= self._estimate_tokens(self._history.pop(0))
                    estimated_tokens -= self._estimate_tokens(self._history.pop(0))
                else:
                    estimated_tokens -= self._estimate_tokens(self._history.pop(0))
            self._ensure_valid_sequence()

    def _is_tool_pair(self, index: int) -> bool:
        if index >= len(self._history) - 1:
            return False
        return self._pairs(self._history[index], self._history[index + 1])

    @staticmethod
    def _has_tool_request(msg: Message) -> bool:
        return msg.role == "assistant" and bool(msg.tool_uses())

    @staticmethod
    def _has_tool_result(msg: Message) -> bool:
        return msg.role == "user" and bool(msg.tool_results())

    def _pairs(self, request: Message, result: Message) -> bool:
        if not (self._has_tool_request(request) and self._has_tool_result(result)):
            return False
        request_ids = {b.id for b in request.tool_uses()}
        return all(r.tool_use_id in request_ids for r in result.tool_results())

    def _ensure_valid_sequence(self):
        """Drop orphaned tool results, tool requests that lack their result, and a leading assistant turn."""
        cleaned: List[Message] = []
        i = 0
        while i < len(self._history):
            msg = self._history[i]
            if self._has_tool_request(msg):
                if i + 1 < len(self._history) and self._pairs(msg, self._history[i + 1]):
                    cleaned.extend(self._history[i : i + 2])
                    i += 2
                    continue
                i += 1
                continue
            if self._has_tool_result(msg):
                i += 1
                continue
            cleaned.append(msg)
            i += 1

        # Anthropic and Gemini reject a conversation that opens with the assistant
        start = 0
        while start < len(cleaned) and (cleaned[start].role == "assistant" or self._has_tool_result(cleaned[start])):
            start += 1
        self._history = cleaned[start:]

    def _estimate_tokens(self, message: Message) -> int:
        """
        Estimate token count for a message.

        Uses rough heuristic: 1 token ≈ 4 characters
        """
        total_chars = 0
        for block in message.blocks():
            if isinstance(block, TextBlock):
                total_chars += len(block.text)
            elif isinstance(block, ToolUseBlock):
                total_chars += len(block.name) * 2 + len(str(block.input or {}))
            elif isinstance(block, ToolResultBlock):
                total_chars += len(block.name) * 2 + len(block.content_text())
        return total_chars // 4
