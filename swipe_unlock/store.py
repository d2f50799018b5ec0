"""
Message Store Adapter: read/write access to the externally-owned transcript.

The controller only ever touches two fields of a record: ``alternatives``
(read) and ``active_index`` (read/write). Everything else is carried for the
formatting collaborator or for a lossless round-trip of the chat log file.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, Union, runtime_checkable

from .exceptions import TranscriptFormatError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

logger = logging.getLogger("swipe_unlock.store")

_RECORD_KEYS = {"swipes", "swipe_id", "mes", "name", "is_user", "is_system"}


class TranscriptEvent(enum.Enum):
    MESSAGE_RECEIVED = "message_received"
    MESSAGE_SENT = "message_sent"
    CHAT_CHANGED = "chat_changed"


@dataclass
class MessageRecord:
    """One message slot of the transcript and its stored swipes."""

    alternatives: list[str] = field(default_factory=list)
    active_index: int = 0
    name: str = ""
    is_user: bool = False
    is_system: bool = False
    text: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def content_at(self, index: int) -> str:
        if 0 <= index < len(self.alternatives):
            return self.alternatives[index]
        return self.text

    @property
    def content(self) -> str:
        return self.content_at(self.active_index)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MessageRecord:
        swipes = data.get("swipes")
        alternatives = [str(item) for item in swipes] if isinstance(swipes, list) else []
        try:
            active_index = int(data.get("swipe_id") or 0)
        except (TypeError, ValueError):
            active_index = 0
        if alternatives:
            active_index = min(max(active_index, 0), len(alternatives) - 1)
        return cls(
            alternatives=alternatives,
            active_index=active_index,
            name=str(data.get("name") or ""),
            is_user=bool(data.get("is_user", False)),
            is_system=bool(data.get("is_system", False)),
            text=str(data.get("mes") or ""),
            extra={k: v for k, v in data.items() if k not in _RECORD_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "is_user": self.is_user,
            "is_system": self.is_system,
            "mes": self.text,
        }
        if self.alternatives:
            data["swipes"] = list(self.alternatives)
            data["swipe_id"] = self.active_index
        data.update(self.extra)
        return data


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class MessageStore(Protocol):
    """Index-addressable message records plus a structural change notification."""

    def get(self, message_id: int) -> MessageRecord | None: ...

    def subscribe(self, listener: Callable[[TranscriptEvent], None]) -> Callable[[], None]: ...


# ---------------------------------------------------------------------------
# Transcript
# ---------------------------------------------------------------------------


class Transcript:
    """In-memory ordered transcript. Message identity is the record's position."""

    def __init__(
        self,
        records: Iterable[MessageRecord] = (),
        header: dict[str, Any] | None = None,
    ) -> None:
        self.records: list[MessageRecord] = list(records)
        self.header: dict[str, Any] = dict(header or {})
        self._listeners: list[Callable[[TranscriptEvent], None]] = []

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[MessageRecord]:
        return iter(self.records)

    def get(self, message_id: int) -> MessageRecord | None:
        if 0 <= message_id < len(self.records):
            return self.records[message_id]
        return None

    def subscribe(self, listener: Callable[[TranscriptEvent], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, event: TranscriptEvent) -> None:
        """Deliver *event* to every listener; a failing listener does not stop the others."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.warning(
                    "[SwipeUnlock Store] Transcript listener failed on %s.",
                    event.value,
                    exc_info=True,
                )

    def append(self, record: MessageRecord) -> int:
        self.records.append(record)
        event = TranscriptEvent.MESSAGE_SENT if record.is_user else TranscriptEvent.MESSAGE_RECEIVED
        self.notify(event)
        return len(self.records) - 1

    def replace(
        self, records: Iterable[MessageRecord], header: dict[str, Any] | None = None
    ) -> None:
        self.records = list(records)
        if header is not None:
            self.header = dict(header)
        self.notify(TranscriptEvent.CHAT_CHANGED)

    def __repr__(self) -> str:
        return f"Transcript(records={len(self.records)}, listeners={len(self._listeners)})"


# ---------------------------------------------------------------------------
# JSON Lines chat logs
# ---------------------------------------------------------------------------


def _is_header(data: dict[str, Any]) -> bool:
    return "mes" not in data and ("user_name" in data or "chat_metadata" in data)


def load_transcript(path: Union[str, Path]) -> Transcript:
    """Read a JSON Lines chat log; an optional first-line header is kept on ``Transcript.header``."""
    path = Path(path)
    header: dict[str, Any] = {}
    records: list[MessageRecord] = []
    with open(path, encoding="utf-8") as fh:
        for line_number, raw in enumerate(fh, start=1):
            stripped = raw.strip()
            if not stripped:
                continue
            try:
                data = json.loads(stripped)
            except json.JSONDecodeError as exc:
                raise TranscriptFormatError(str(path), line_number, exc.msg) from exc
            if not isinstance(data, dict):
                raise TranscriptFormatError(str(path), line_number, "expected a JSON object")
            if not records and not header and _is_header(data):
                header = data
                continue
            records.append(MessageRecord.from_dict(data))

    logger.debug("[SwipeUnlock Store] Loaded %d messages from %s.", len(records), path)
    return Transcript(records, header=header)


def dump_transcript(transcript: Transcript, path: Union[str, Path]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        if transcript.header:
            fh.write(json.dumps(transcript.header, ensure_ascii=False) + "\n")
        for record in transcript.records:
            fh.write(json.dumps(record.to_dict(), ensure_ascii=False) + "\n")
