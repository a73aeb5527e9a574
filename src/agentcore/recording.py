"""
Response recording for later replay.

Each call outcome is appended to a JSON-lines file: either the assistant
message or the text of the non-retryable error that ended the call.
``load_records`` reads the file back for ``ReplayProvider``.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .types import AIMessage, ai_message_from_dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordedResponse:
    """One recorded call outcome. Exactly one of ``message`` or ``error`` is set."""

    message: Optional[AIMessage] = None
    error: str = ""
    timestamp: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ai_message": self.message.to_dict() if self.message is not None else None,
            "error": self.error,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecordedResponse":
        raw = data.get("ai_message")
        return cls(
            message=ai_message_from_dict(raw) if raw else None,
            error=data.get("error") or "",
            timestamp=data.get("timestamp") or "",
        )


class ResponseRecorder:
    """Appends call outcomes to a JSONL file. Safe to share between threads."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def record(
        self, message: Optional[AIMessage] = None, error: Optional[BaseException] = None
    ) -> None:
        """
        Append one outcome.

        Write failures are logged and swallowed; a broken recording file must
        not fail the call being recorded.
        """
        entry = RecordedResponse(
            message=message,
            error=str(error) if error is not None else "",
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        line = json.dumps(entry.to_dict(), ensure_ascii=False)
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as handle:
                    handle.write(line + "\n")
            except OSError as exc:
                logger.warning("failed to record response to %s: %s", self.path, exc)


def load_records(path: Union[str, Path]) -> List[RecordedResponse]:
    """
    Read every recorded outcome from ``path``, in file order.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If a line is not valid JSON.
    """
    records: List[RecordedResponse] = []
    with Path(path).open("r", encoding="utf-8") as handle:
        for lineno, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError as exc:
                raise ValueError(f"{path}:{lineno}: invalid record: {exc}") from exc
            records.append(RecordedResponse.from_dict(data))
    return records


__all__ = ["RecordedResponse", "ResponseRecorder", "load_records"]
