"""Bounded conversation history for the interactive shell."""

from typing import Dict, List

from documenter_constants import DEFAULT_MAX_HISTORY

VALID_ROLES = ("user", "assistant")


class HistoryManager:
    """Stores user/assistant turns; ``get_recent()`` returns the last ``max_history``."""

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY):
        self.max_history = max_history
        self._messages: List[Dict[str, str]] = []

    def add(self, role: str, content: str) -> None:
        if role not in VALID_ROLES:
            raise ValueError(f"Invalid history role: {role}")
        self._messages.append({"role": role, "content": content})

    def get_recent(self) -> List[Dict[str, str]]:
        if self.max_history <= 0:
            return []
        return [dict(m) for m in self._messages[-self.max_history:]]

    def get_all(self) -> List[Dict[str, str]]:
        return [dict(m) for m in self._messages]

    def clear(self) -> None:
        self._messages = []

    def set_max_history(self, max_history: int) -> None:
        self.max_history = max_history

    def __len__(self) -> int:
        return len(self._messages)
