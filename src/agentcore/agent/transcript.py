"""
Append-only conversation transcript.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Union

from ..types import AIMessage, Message, message_from_dict, messages_to_dicts


class Transcript(Sequence[Message]):
    """
    Ordered record of every message exchanged during a run.

    Messages can be appended but never replaced or removed, so the final
    transcript reconstructs the whole conversation. Pass a Transcript into
    ``Agent.run`` to keep it even when the run fails.
    """

    def __init__(self, messages: Iterable[Message] = ()):
        self._messages: List[Message] = list(messages)

    def append(self, message: Message) -> None:
        self._messages.append(message)

    def extend(self, messages: Iterable[Message]) -> None:
        for message in messages:
            self.append(message)

    def __getitem__(self, index: Union[int, slice]) -> Union[Message, List[Message]]:
        return self._messages[index]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def messages(self) -> List[Message]:
        """Return a snapshot copy of the messages."""
        return list(self._messages)

    def last_ai_message(self) -> Optional[AIMessage]:
        for message in reversed(self._messages):
            if isinstance(message, AIMessage):
                return message
        return None

    def to_dicts(self) -> List[Dict[str, Any]]:
        return messages_to_dicts(self._messages)

    @classmethod
    def from_dicts(cls, data: Iterable[Dict[str, Any]]) -> "Transcript":
        return cls(message_from_dict(item) for item in data)

    def __repr__(self) -> str:
        return f"Transcript({len(self._messages)} messages)"


__all__ = ["Transcript"]
