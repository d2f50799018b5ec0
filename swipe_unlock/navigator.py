"""
Swipe Navigation Controller: the complete interaction surface for the UI layer.

``open``/``close``/``toggle`` manage sessions through the :class:`UnlockRegistry`;
``move`` and ``set_translation`` mutate a session and ask the
:class:`RenderReconciler` to redraw; ``copy_active_text`` and
``current_display_label`` are read-only. No other path mutates the state machine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .exceptions import ConflictsWith, NotOpen, SwipeUnlockError
from .formatting import safe_format, strip_markup
from .registry import NavigationSession, SessionPolicy, UnlockRegistry
from .render import RenderReconciler
from .scanner import DEFAULT_RESCAN_DELAY_SECONDS, PresenceScanner
from .store import TranscriptEvent
from .translation import SqliteTranslationStore, TranslationLookup

if TYPE_CHECKING:
    from .config import SwipeUnlockSettings
    from .formatting import Formatter
    from .scanner import AffordanceHost
    from .store import MessageRecord, MessageStore
    from .translation import TranslationStore
    from .view import TranscriptView

logger = logging.getLogger("swipe_unlock.navigator")

_GUARD_MESSAGES = {
    "swipe": "before swiping the last message.",
    "send": "before sending a new message.",
    "generate": "before generating a new response.",
}


@dataclass(frozen=True)
class DisplayLabel:
    text: str
    is_original: bool
    can_move_back: bool
    can_move_forward: bool


class SwipeNavigator:
    def __init__(
        self,
        store: MessageStore,
        view: TranscriptView,
        translations: TranslationLookup | None = None,
        policy: SessionPolicy | None = None,
        formatter: Formatter | None = None,
    ) -> None:
        self.store = store
        self.view = view
        self.translations = translations
        self.reconciler = RenderReconciler(store, view, translations=translations, formatter=formatter)
        self.registry = UnlockRegistry(store, policy=policy, redraw=self.reconciler.request)
        self.scanner: PresenceScanner | None = None
        self.rescan_delay = DEFAULT_RESCAN_DELAY_SECONDS
        self._unsubscribe = store.subscribe(self._on_transcript_change)

    @classmethod
    def from_settings(
        cls,
        store: MessageStore,
        view: TranscriptView,
        settings: SwipeUnlockSettings,
        translations: TranslationStore | None = None,
        formatter: Formatter | None = None,
    ) -> SwipeNavigator:
        """Build a controller from settings, opening ``settings.translation_db`` if no store is given."""
        if translations is None and settings.translation_db:
            translations = SqliteTranslationStore(settings.translation_db)
        lookup = None
        if translations is not None:
            lookup = TranslationLookup(
                store,
                translations,
                user_name=settings.user_name,
                char_name=settings.char_name,
                dedupe=settings.dedupe_lookups,
            )
        navigator = cls(store, view, translations=lookup, policy=settings.policy(), formatter=formatter)
        navigator.rescan_delay = settings.rescan_delay
        return navigator

    @property
    def policy(self) -> SessionPolicy:
        return self.registry.policy

    def is_open(self, message_id: int) -> bool:
        return self.registry.is_open(message_id)

    def open_ids(self) -> list[int]:
        return self.registry.open_ids()

    def _session_and_record(self, message_id: int) -> tuple[NavigationSession, MessageRecord]:
        session = self.registry.get(message_id)
        if session is None:
            raise NotOpen(message_id)
        record = self.registry.record_for(message_id)
        if record is None:
            raise NotOpen(message_id, f"Message #{message_id} is no longer in the transcript.")
        return session, record

    # ------------------------------------------------------------------
    # Lock state
    # ------------------------------------------------------------------

    def open(self, message_id: int) -> NavigationSession:
        session = self.registry.open(message_id)
        self.view.set_lock_state(message_id, True, self.current_display_label(message_id))
        return session

    def close(self, message_id: int) -> int:
        try:
            return self.registry.close(message_id)
        finally:
            if not self.registry.is_open(message_id):
                self.view.set_lock_state(message_id, False, None)

    def toggle(self, message_id: int) -> bool:
        """Lock-icon handler. Returns whether the message is unlocked afterwards.

        Rejections are surfaced to the user as notices rather than raised.
        """
        try:
            if self.registry.is_open(message_id):
                self.close(message_id)
            else:
                self.open(message_id)
        except SwipeUnlockError as exc:
            level = "warning" if isinstance(exc, ConflictsWith) else "info"
            logger.info("[SwipeUnlock Navigator] Toggle of message #%s rejected: %s", message_id, exc)
            self.view.notify(level, str(exc))
        return self.registry.is_open(message_id)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def move(self, message_id: int, direction: int) -> int | None:
        """Step the active swipe by *direction* (-1 or +1), clamped, never wrapping.

        Returns the new index, or None when there is no session or the index is
        already at the boundary (no mutation, no redraw).
        """
        if direction not in (-1, 1):
            raise ValueError("direction must be -1 or +1")
        session = self.registry.get(message_id)
        record = self.registry.record_for(message_id)
        if session is None or record is None or not record.alternatives:
            return None

        current = record.active_index or 0
        candidate = min(max(current + direction, 0), len(record.alternatives) - 1)
        if candidate == current:
            return None

        record.active_index = candidate
        self.reconciler.request(message_id, candidate, session.translation_enabled)
        self.view.set_lock_state(message_id, True, self.current_display_label(message_id))
        return candidate

    def set_translation(self, message_id: int, enabled: bool) -> bool:
        session = self.registry.get(message_id)
        record = self.registry.record_for(message_id)
        if session is None or record is None:
            return False
        if session.translation_enabled == enabled:
            return False

        session.translation_enabled = enabled
        self.reconciler.request(message_id, record.active_index or 0, enabled)
        return True

    def current_display_label(self, message_id: int) -> DisplayLabel:
        session, record = self._session_and_record(message_id)
        current = record.active_index or 0
        total = len(record.alternatives)
        return DisplayLabel(
            text=f"{current + 1}/{total}",
            is_original=current == session.original_index,
            can_move_back=current > 0,
            can_move_forward=current < total - 1,
        )

    async def copy_active_text(self, message_id: int) -> str:
        """Plain text of the active swipe as displayed, translated when the session has translation on."""
        session, record = self._session_and_record(message_id)
        index = record.active_index or 0
        text: str | None = None
        if session.translation_enabled and self.translations is not None:
            text = await self.translations.lookup(message_id, index)
        if text is None:
            text = record.content_at(index)
        markup = safe_format(
            self.reconciler.formatter, text, record.name, record.is_system, record.is_user, message_id
        )
        return strip_markup(markup)

    # ------------------------------------------------------------------
    # Host integration
    # ------------------------------------------------------------------

    def guard_navigation(self, action: str = "swipe") -> str | None:
        """Check before the host runs its own swipe/send/generate action.

        Returns None when the action may proceed, otherwise the warning that
        was shown to the user.
        """
        open_ids = self.registry.open_ids()
        if not open_ids:
            return None
        suffix = _GUARD_MESSAGES.get(action, f"before running '{action}'.")
        names = ", ".join(f"#{message_id}" for message_id in open_ids)
        noun = "message" if len(open_ids) == 1 else "messages"
        warning = f"Please lock {noun} {names} {suffix}"
        self.view.notify("warning", warning)
        return warning

    def _on_transcript_change(self, event: TranscriptEvent) -> None:
        # After CHAT_CHANGED positions name another chat's records; no session survives it.
        if event is not TranscriptEvent.CHAT_CHANGED and not self.policy.close_on_transcript_change:
            return
        if not len(self.registry):
            return
        for message_id in self.registry.open_ids():
            try:
                self.close(message_id)
            except NotOpen:
                continue
        logger.info("[SwipeUnlock Navigator] Locked all messages after %s.", event.value)

    def attach_scanner(
        self,
        host: AffordanceHost | None = None,
        delay: float | None = None,
    ) -> PresenceScanner:
        """Create, attach and return the presence scanner for this controller."""
        if self.scanner is not None:
            self.scanner.detach()
        self.scanner = PresenceScanner(
            self.store,
            host if host is not None else self.view,
            delay=self.rescan_delay if delay is None else delay,
        )
        self.scanner.attach()
        return self.scanner

    async def drain(self) -> None:
        await self.reconciler.drain()
        if self.scanner is not None:
            await self.scanner.wait_idle()
