"""
Rejections and recoverable failures raised by the swipe navigation controller.

Every error here is local and recoverable: the controller never terminates on
one, and the registry is left unchanged by any rejection. ``notice`` holds the
short advisory text the host shows to the user.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .store import MessageRecord


class SwipeUnlockError(Exception):
    """Base class for all swipe-unlock rejections."""

    notice = "This action is not available."

    def __init__(self, message_id: int | None = None, message: str | None = None) -> None:
        self.message_id = message_id
        super().__init__(message or self.notice)


class MessageNotFound(SwipeUnlockError):
    notice = "Message not found."


class NoSwipeData(SwipeUnlockError):
    notice = "This message has no alternative content to browse."


class SingleSwipeOnly(SwipeUnlockError):
    notice = "This message has no additional swipes to navigate."


class AlreadyOpen(SwipeUnlockError):
    notice = "This message is already unlocked."


class NotOpen(SwipeUnlockError):
    notice = "This message is not unlocked."


class ConflictsWith(SwipeUnlockError):
    """Raised under a bounded session policy when another message is unlocked."""

    def __init__(self, message_id: int | None, other_id: int) -> None:
        self.other_id = other_id
        self.notice = (
            f"Message #{other_id} is currently unlocked. "
            "Please lock it first before unlocking another message."
        )
        super().__init__(message_id, self.notice)


class TranslationUnavailable(SwipeUnlockError):
    """No translation could be produced. Callers fall back to the raw text."""

    notice = "No translation is available for this swipe."


class FormattingFailure(SwipeUnlockError):
    """The formatting collaborator failed. Rendering degrades to escaped text."""

    notice = "Message formatting failed; showing plain text."


class TranscriptFormatError(ValueError):
    """A chat log file could not be parsed."""

    def __init__(self, path: str, line_number: int, reason: str) -> None:
        self.path = path
        self.line_number = line_number
        super().__init__(f"{path}:{line_number}: {reason}")


def ensure_browsable(record: MessageRecord | None, message_id: int) -> MessageRecord:
    """Return *record* if it can be unlocked, otherwise raise the matching rejection."""
    if record is None:
        raise MessageNotFound(message_id, f"Message #{message_id} is not in the transcript.")
    if not record.alternatives:
        raise NoSwipeData(message_id)
    if len(record.alternatives) == 1:
        raise SingleSwipeOnly(message_id)
    return record
