"""
swipe-unlock: browse and compare the stored alternative contents ("swipes") of
historical chat messages without changing the transcript's permanent selection.

The controller tracks per-message unlocked sessions, resolves the active swipe
against an externally-owned transcript, and reconciles best-effort translation
lookups with user navigation so that only the latest render request is shown.
"""

__version__ = "0.1.0"

from .config import SwipeUnlockSettings, load_settings
from .exceptions import (
    AlreadyOpen,
    ConflictsWith,
    FormattingFailure,
    MessageNotFound,
    NoSwipeData,
    NotOpen,
    SingleSwipeOnly,
    SwipeUnlockError,
    TranslationUnavailable,
)
from .navigator import DisplayLabel, SwipeNavigator
from .registry import NavigationSession, SessionPolicy, UnlockRegistry
from .render import RenderReconciler
from .scanner import PresenceScanner
from .store import MessageRecord, Transcript, TranscriptEvent, load_transcript
from .translation import MappingTranslationStore, SqliteTranslationStore, TranslationLookup
from .view import MemoryView

__all__ = [
    "SwipeNavigator",
    "DisplayLabel",
    "UnlockRegistry",
    "NavigationSession",
    "SessionPolicy",
    "RenderReconciler",
    "PresenceScanner",
    "TranslationLookup",
    "MappingTranslationStore",
    "SqliteTranslationStore",
    "MessageRecord",
    "Transcript",
    "TranscriptEvent",
    "load_transcript",
    "MemoryView",
    "SwipeUnlockSettings",
    "load_settings",
    "SwipeUnlockError",
    "MessageNotFound",
    "NoSwipeData",
    "SingleSwipeOnly",
    "AlreadyOpen",
    "NotOpen",
    "ConflictsWith",
    "TranslationUnavailable",
    "FormattingFailure",
]
