import asyncio

import pytest

from swipe_unlock.navigator import SwipeNavigator
from swipe_unlock.registry import SessionPolicy
from swipe_unlock.store import MessageRecord, Transcript
from swipe_unlock.translation import MappingTranslationStore, TranslationLookup
from swipe_unlock.view import MemoryView

# Message ids in the default transcript.
USER_MSG = 0
THREE_SWIPES = 1
SINGLE_SWIPE = 2
SYSTEM_MSG = 3
TWO_SWIPES = 4


class GatedTranslationStore:
    """Translation store whose lookups block until the test releases them."""

    def __init__(self, entries):
        self.entries = dict(entries)
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[str] = []

    def gate(self, key: str) -> asyncio.Event:
        return self.gates.setdefault(key, asyncio.Event())

    async def get(self, key):
        self.calls.append(key)
        await self.gate(key).wait()
        return self.entries.get(key)


class FailingTranslationStore:
    async def get(self, key):
        raise ConnectionError("store offline")


def make_records():
    return [
        MessageRecord(name="Ann", is_user=True, text="Hello there"),
        MessageRecord(alternatives=["A", "B", "C"], active_index=0, name="Bot", text="A"),
        MessageRecord(alternatives=["only"], name="Bot", text="only"),
        MessageRecord(name="System", is_system=True, text="Chat started"),
        MessageRecord(alternatives=["first", "second"], active_index=1, name="Bot", text="second"),
    ]


@pytest.fixture
def transcript():
    return Transcript(make_records(), header={"user_name": "Ann", "character_name": "Bot"})


@pytest.fixture
def view(transcript):
    return MemoryView(visible=list(range(len(transcript))))


@pytest.fixture
def translations():
    return MappingTranslationStore({"B": "B (translated)", "first": "premier"})


@pytest.fixture
def lookup(transcript, translations):
    return TranslationLookup(transcript, translations, user_name="Ann", char_name="Bot")


@pytest.fixture
def navigator(transcript, view, lookup):
    return SwipeNavigator(transcript, view, translations=lookup)


@pytest.fixture
def single_navigator(transcript, view, lookup):
    return SwipeNavigator(transcript, view, translations=lookup, policy=SessionPolicy.single())
