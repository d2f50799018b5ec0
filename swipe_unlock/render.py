"""
Render Reconciler: resolves display text for a swipe and applies it to the view.

Rendering may await a translation lookup, so requests for the same message can
complete out of order. Each request is tagged at issuance with a per-message
sequence number; a result is applied only if its number is still the latest
issued for that message. Stale results are dropped on arrival.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from .formatting import Formatter, format_message, safe_format

if TYPE_CHECKING:
    from .store import MessageStore
    from .translation import TranslationLookup

logger = logging.getLogger("swipe_unlock.render")


@runtime_checkable
class ContentSink(Protocol):
    """The visible content region of each message."""

    def set_content(self, message_id: int, markup: str) -> None: ...


class RenderReconciler:
    def __init__(
        self,
        store: MessageStore,
        sink: ContentSink,
        translations: TranslationLookup | None = None,
        formatter: Formatter | None = None,
    ) -> None:
        self.store = store
        self.sink = sink
        self.translations = translations
        self.formatter = formatter or format_message
        self._issued: dict[int, int] = {}
        self._pending: set[asyncio.Task[bool]] = set()

    def _issue(self, message_id: int) -> int:
        sequence = self._issued.get(message_id, 0) + 1
        self._issued[message_id] = sequence
        return sequence

    def latest_sequence(self, message_id: int) -> int:
        return self._issued.get(message_id, 0)

    async def resolve_text(self, message_id: int, index: int, translation_enabled: bool) -> str | None:
        """Translated text when enabled and available, otherwise the raw swipe."""
        record = self.store.get(message_id)
        if record is None:
            return None
        if translation_enabled and self.translations is not None:
            translated = await self.translations.lookup(message_id, index)
            if translated is not None:
                return translated
        return record.content_at(index)

    async def _render(self, message_id: int, index: int, translation_enabled: bool, sequence: int) -> bool:
        text = await self.resolve_text(message_id, index, translation_enabled)

        if sequence != self._issued.get(message_id):
            logger.debug(
                "[SwipeUnlock Render] Discarding stale render #%d for message #%s (latest #%d).",
                sequence,
                message_id,
                self._issued.get(message_id, 0),
            )
            return False

        record = self.store.get(message_id)
        if record is None or text is None:
            logger.warning("[SwipeUnlock Render] Message #%s not found; skipping render.", message_id)
            return False

        markup = safe_format(
            self.formatter, text, record.name, record.is_system, record.is_user, message_id
        )
        self.sink.set_content(message_id, markup)
        return True

    async def render(self, message_id: int, index: int, translation_enabled: bool) -> bool:
        """Render now. Returns True if this request's result was applied."""
        sequence = self._issue(message_id)
        return await self._render(message_id, index, translation_enabled, sequence)

    def request(self, message_id: int, index: int, translation_enabled: bool) -> asyncio.Task[bool] | None:
        """Issue a render from synchronous code.

        On a running loop the render is scheduled as a task and returned.
        Without one the render runs to completion before returning.
        """
        sequence = self._issue(message_id)
        coro = self._render(message_id, index, translation_enabled, sequence)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            try:
                asyncio.run(coro)
            except Exception:
                logger.error("[SwipeUnlock Render] Render task failed.", exc_info=True)
            return None

        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[bool]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "[SwipeUnlock Render] Render task failed.",
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait until every scheduled render has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
