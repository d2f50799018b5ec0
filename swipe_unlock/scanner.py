"""
Presence Scanner: keeps the lock toggle attached to every eligible visible message.

Scans are triggered by the transcript-change subscription and debounced on the
trailing edge: each change restarts a short timer, and a scan only runs once
changes have been quiet for ``delay`` seconds.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .store import MessageStore, TranscriptEvent

logger = logging.getLogger("swipe_unlock.scanner")

DEFAULT_RESCAN_DELAY_SECONDS = 0.05


@runtime_checkable
class AffordanceHost(Protocol):
    def visible_message_ids(self) -> Iterable[int]: ...

    def has_affordance(self, message_id: int) -> bool: ...

    def attach_affordance(self, message_id: int) -> None: ...


class PresenceScanner:
    def __init__(
        self,
        store: MessageStore,
        host: AffordanceHost,
        delay: float = DEFAULT_RESCAN_DELAY_SECONDS,
        on_change: Callable[[TranscriptEvent], None] | None = None,
    ) -> None:
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.store = store
        self.host = host
        self.delay = delay
        self.on_change = on_change
        self._unsubscribe: Callable[[], None] | None = None
        self._scan_task: asyncio.Task[None] | None = None
        self._scan_nonce = 0

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def attach(self) -> list[int]:
        """Subscribe to transcript changes and scan immediately."""
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._handle_event)
        return self.scan()

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._cancel_pending()

    def scan(self) -> list[int]:
        """Attach the affordance to every eligible message lacking one. Idempotent."""
        added: list[int] = []
        for message_id in self.host.visible_message_ids():
            if self.store.get(message_id) is None:
                continue
            if self.host.has_affordance(message_id):
                continue
            self.host.attach_affordance(message_id)
            added.append(message_id)
        if added:
            logger.debug("[SwipeUnlock Scanner] Attached toggle to messages %s.", added)
        return added

    def _handle_event(self, event: TranscriptEvent) -> None:
        if self.on_change is not None:
            self.on_change(event)
        self.schedule_scan()

    def _cancel_pending(self) -> None:
        self._scan_nonce += 1
        task = self._scan_task
        self._scan_task = None
        if task is not None and not task.done():
            task.cancel()

    def schedule_scan(self) -> None:
        """Restart the debounce timer. Without a running loop the scan runs at once."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.scan()
            return

        self._cancel_pending()
        self._scan_task = loop.create_task(self._delayed_scan(self._scan_nonce))

    async def _delayed_scan(self, nonce: int) -> None:
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            return
        if nonce != self._scan_nonce:
            return
        self._scan_task = None
        self.scan()

    async def wait_idle(self) -> None:
        """Wait for a pending debounced scan, if any, to run."""
        while self._scan_task is not None and not self._scan_task.done():
            with contextlib.suppress(asyncio.CancelledError):
                await self._scan_task
