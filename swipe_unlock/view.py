"""Host view protocol and the headless MemoryView used by the CLI and tests."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .navigator import DisplayLabel

logger = logging.getLogger("swipe_unlock.view")

LOCK_TITLE = "Unlock swipe navigation"
UNLOCK_TITLE = "Lock swipe navigation"


@runtime_checkable
class TranscriptView(Protocol):
    """Everything the controller needs from the host UI layer."""

    def set_content(self, message_id: int, markup: str) -> None: ...

    def visible_message_ids(self) -> Iterable[int]: ...

    def has_affordance(self, message_id: int) -> bool: ...

    def attach_affordance(self, message_id: int) -> None: ...

    def set_lock_state(self, message_id: int, unlocked: bool, label: DisplayLabel | None) -> None: ...

    def notify(self, level: str, text: str) -> None: ...


@dataclass
class Notice:
    level: str
    text: str


@dataclass
class MemoryView:
    """Headless view that records what a real UI would display."""

    visible: list[int] = field(default_factory=list)
    content: dict[int, str] = field(default_factory=dict)
    affordances: set[int] = field(default_factory=set)
    unlocked: dict[int, DisplayLabel | None] = field(default_factory=dict)
    notices: list[Notice] = field(default_factory=list)

    def set_content(self, message_id: int, markup: str) -> None:
        self.content[message_id] = markup

    def visible_message_ids(self) -> list[int]:
        return list(self.visible)

    def has_affordance(self, message_id: int) -> bool:
        return message_id in self.affordances

    def attach_affordance(self, message_id: int) -> None:
        self.affordances.add(message_id)

    def set_lock_state(self, message_id: int, unlocked: bool, label: DisplayLabel | None) -> None:
        if unlocked:
            self.unlocked[message_id] = label
        else:
            self.unlocked.pop(message_id, None)

    def toggle_title(self, message_id: int) -> str:
        return UNLOCK_TITLE if message_id in self.unlocked else LOCK_TITLE

    def notify(self, level: str, text: str) -> None:
        self.notices.append(Notice(level, text))
        logger.log(logging.WARNING if level == "warning" else logging.INFO, "[SwipeUnlock] %s", text)
