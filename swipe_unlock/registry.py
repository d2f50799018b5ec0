"""
Unlock Registry: the authoritative set of messages in a navigation session.

A message identity appears at most once; absence means the message is in the
default locked state. How many sessions may be open at once is a
:class:`SessionPolicy`, not a hardwired singleton.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from .exceptions import AlreadyOpen, ConflictsWith, NotOpen, ensure_browsable

if TYPE_CHECKING:
    from .store import MessageRecord, MessageStore

logger = logging.getLogger("swipe_unlock.registry")

POLICY_MULTI = "multi"
POLICY_SINGLE = "single"

# (message_id, index, translation_enabled)
RedrawCallback = Callable[[int, int, bool], object]


@dataclass(frozen=True)
class SessionPolicy:
    max_sessions: int | None = None
    close_on_transcript_change: bool = False

    @classmethod
    def multi(cls, close_on_transcript_change: bool = False) -> SessionPolicy:
        return cls(max_sessions=None, close_on_transcript_change=close_on_transcript_change)

    @classmethod
    def single(cls, close_on_transcript_change: bool = True) -> SessionPolicy:
        return cls(max_sessions=1, close_on_transcript_change=close_on_transcript_change)

    @classmethod
    def from_name(cls, name: str, close_on_transcript_change: bool | None = None) -> SessionPolicy:
        if name == POLICY_SINGLE:
            factory = cls.single
        elif name == POLICY_MULTI:
            factory = cls.multi
        else:
            raise ValueError(f"Unknown session policy '{name}'; expected 'multi' or 'single'.")
        if close_on_transcript_change is None:
            return factory()
        return factory(close_on_transcript_change=close_on_transcript_change)


@dataclass
class NavigationSession:
    message_id: int
    original_index: int
    translation_enabled: bool = False
    # The record object snapshotted at open; a different object at the same
    # position belongs to another chat.
    record: MessageRecord | None = field(default=None, repr=False, compare=False)


class UnlockRegistry:
    """Opens and closes navigation sessions over a :class:`MessageStore`."""

    def __init__(
        self,
        store: MessageStore,
        policy: SessionPolicy | None = None,
        redraw: RedrawCallback | None = None,
    ) -> None:
        self.store = store
        self.policy = policy or SessionPolicy.multi()
        self.redraw = redraw
        self._sessions: dict[int, NavigationSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._sessions

    def is_open(self, message_id: int) -> bool:
        return message_id in self._sessions

    def get(self, message_id: int) -> NavigationSession | None:
        return self._sessions.get(message_id)

    def open_ids(self) -> list[int]:
        return list(self._sessions)

    def open(self, message_id: int) -> NavigationSession:
        """Start a session for *message_id*, snapshotting its active index.

        Raises ``AlreadyOpen``, ``ConflictsWith``, ``MessageNotFound``,
        ``NoSwipeData`` or ``SingleSwipeOnly``; the registry is unchanged on
        any of them.
        """
        if message_id in self._sessions:
            raise AlreadyOpen(message_id)

        limit = self.policy.max_sessions
        if limit is not None and len(self._sessions) >= limit:
            raise ConflictsWith(message_id, next(iter(self._sessions)))

        record = ensure_browsable(self.store.get(message_id), message_id)
        session = NavigationSession(
            message_id=message_id, original_index=record.active_index or 0, record=record
        )
        self._sessions[message_id] = session
        logger.info(
            "[SwipeUnlock Registry] Message #%s unlocked (%d swipes, original %d).",
            message_id,
            len(record.alternatives),
            session.original_index + 1,
        )
        return session

    def close(self, message_id: int) -> int:
        """End the session and restore the original index. Returns the restored index."""
        session = self._sessions.pop(message_id, None)
        if session is None:
            raise NotOpen(message_id)

        current = self.store.get(message_id)
        record = session.record if session.record is not None else current
        restored = session.original_index
        if record is not None and record.alternatives:
            restored = min(max(restored, 0), len(record.alternatives) - 1)
            record.active_index = restored

        if current is None or current is not record:
            # Only the snapshotted record is restored; whatever now sits at this
            # position is left alone and not redrawn.
            logger.warning(
                "[SwipeUnlock Registry] Message #%s disappeared while unlocked; display not restored.",
                message_id,
            )
            return restored

        logger.info("[SwipeUnlock Registry] Message #%s locked.", message_id)
        if self.redraw is not None:
            self.redraw(message_id, restored, False)
        return restored

    def record_for(self, message_id: int) -> MessageRecord | None:
        """The session's record, if it is still the one at *message_id* in the store."""
        session = self._sessions.get(message_id)
        if session is None:
            return None
        current = self.store.get(message_id)
        if current is None:
            return None
        if session.record is not None and current is not session.record:
            return None
        return current

    def close_all(self) -> list[int]:
        """Close every session; returns the ids in the order they were opened."""
        closed: list[int] = []
        for message_id in list(self._sessions):
            self.close(message_id)
            closed.append(message_id)
        return closed
