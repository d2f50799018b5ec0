"""
Translation Lookup: best-effort mapping from (message, swipe) to translated text.

Translations live in an external key-value store keyed by the exact source text
after placeholder substitution. A missing store, a missing key, or a failing
store are all normal outcomes: ``lookup`` returns ``None`` and callers fall back
to the raw swipe.
"""

from __future__ import annotations

import asyncio
import logging
import re
import sqlite3
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, Union, runtime_checkable

from .exceptions import TranslationUnavailable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .store import MessageStore

logger = logging.getLogger("swipe_unlock.translation")

_USER_RE = re.compile(r"\{\{user\}\}|<USER>", re.IGNORECASE)
_CHAR_RE = re.compile(r"\{\{char\}\}|<BOT>|<CHAR>", re.IGNORECASE)


def substitute_placeholders(text: str, user_name: str, char_name: str) -> str:
    """Replace speaker placeholders exactly as the formatting collaborator does."""
    text = _USER_RE.sub(lambda _: user_name, text)
    return _CHAR_RE.sub(lambda _: char_name, text)


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


@runtime_checkable
class TranslationStore(Protocol):
    """Async point lookup by exact-match source text."""

    async def get(self, key: str) -> str | None: ...


class MappingTranslationStore:
    """Dictionary-backed store, mostly useful for tests and scripted sessions."""

    def __init__(self, entries: Mapping[str, str] | None = None) -> None:
        self.entries: dict[str, str] = dict(entries or {})

    async def get(self, key: str) -> str | None:
        return self.entries.get(key)

    def __repr__(self) -> str:
        return f"MappingTranslationStore(entries={len(self.entries)})"


class SqliteTranslationStore:
    """sqlite persistence for translations keyed by source text."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._tune_pragmas()
        self._init_schema()

    def _tune_pragmas(self) -> None:
        self.conn.execute("PRAGMA journal_mode = WAL")
        self.conn.execute("PRAGMA synchronous = NORMAL")
        self.conn.execute("PRAGMA temp_store = MEMORY")

    def _init_schema(self) -> None:
        self.conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS translations (
                source_text TEXT PRIMARY KEY,
                translated_text TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            """
        )
        self.conn.commit()

    def close(self) -> None:
        """Close sqlite connection."""
        with self._lock:
            self.conn.close()

    def get_sync(self, key: str) -> str | None:
        with self._lock:
            row = self.conn.execute(
                "SELECT translated_text FROM translations WHERE source_text = ?", (key,)
            ).fetchone()
        return None if row is None else str(row["translated_text"])

    async def get(self, key: str) -> str | None:
        return await asyncio.to_thread(self.get_sync, key)

    def put(self, source_text: str, translated_text: str) -> None:
        """Insert or overwrite the translation for *source_text*."""
        now = datetime.now(UTC).isoformat()
        with self._lock:
            self.conn.execute(
                """
                INSERT INTO translations (source_text, translated_text, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(source_text) DO UPDATE SET
                    translated_text = excluded.translated_text,
                    updated_at = excluded.updated_at
                """,
                (source_text, translated_text, now),
            )
            self.conn.commit()

    def delete(self, source_text: str) -> bool:
        with self._lock:
            cur = self.conn.execute(
                "DELETE FROM translations WHERE source_text = ?", (source_text,)
            )
            self.conn.commit()
        return cur.rowcount > 0

    def count(self) -> int:
        with self._lock:
            row = self.conn.execute("SELECT COUNT(*) AS n FROM translations").fetchone()
        return int(row["n"])

    def __repr__(self) -> str:
        return f"SqliteTranslationStore(path={self.path!r})"


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


class TranslationLookup:
    """Resolves a swipe's translation through a :class:`TranslationStore`.

    With ``dedupe=True`` concurrent lookups of the same key share a single
    in-flight store query. Results are never cached once that query completes.
    """

    def __init__(
        self,
        store: MessageStore,
        translations: TranslationStore | None,
        user_name: str = "User",
        char_name: str = "",
        dedupe: bool = True,
    ) -> None:
        self.store = store
        self.translations = translations
        self.user_name = user_name
        self.char_name = char_name
        self.dedupe = dedupe
        self._inflight: dict[str, asyncio.Task[str | None]] = {}

    def source_key(self, message_id: int, swipe_index: int) -> str:
        """The substituted source text used as the store key."""
        record = self.store.get(message_id)
        if record is None:
            raise TranslationUnavailable(message_id, f"Message #{message_id} not found.")
        if not 0 <= swipe_index < len(record.alternatives):
            raise TranslationUnavailable(
                message_id, f"Swipe {swipe_index} is out of range for message #{message_id}."
            )
        char_name = self.char_name or ("" if record.is_user else record.name)
        return substitute_placeholders(record.alternatives[swipe_index], self.user_name, char_name)

    async def _query(self, key: str) -> str | None:
        if not self.dedupe:
            return await self.translations.get(key)

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self.translations.get(key))
            self._inflight[key] = task
            task.add_done_callback(lambda _t, k=key: self._inflight.pop(k, None))
        return await asyncio.shield(task)

    async def fetch(self, message_id: int, swipe_index: int) -> str:
        """Return the translation or raise :class:`TranslationUnavailable`."""
        if self.translations is None:
            raise TranslationUnavailable(message_id, "No translation store is configured.")
        key = self.source_key(message_id, swipe_index)
        try:
            result = await self._query(key)
        except Exception as exc:
            raise TranslationUnavailable(message_id, f"Translation store failed: {exc}") from exc
        if not result:
            raise TranslationUnavailable(message_id)
        return result

    async def lookup(self, message_id: int, swipe_index: int) -> str | None:
        """Best-effort form of :meth:`fetch`: any failure yields ``None``."""
        try:
            return await self.fetch(message_id, swipe_index)
        except TranslationUnavailable as exc:
            if exc.__cause__ is not None:
                logger.warning(
                    "[SwipeUnlock Translation] Lookup for message #%s swipe %s failed: %s",
                    message_id,
                    swipe_index,
                    exc,
                )
            else:
                logger.debug(
                    "[SwipeUnlock Translation] No translation for message #%s swipe %s.",
                    message_id,
                    swipe_index,
                )
            return None
        except Exception:
            logger.warning(
                "[SwipeUnlock Translation] Unexpected lookup failure for message #%s.",
                message_id,
                exc_info=True,
            )
            return None
