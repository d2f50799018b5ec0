import asyncio
import logging
import time

from swipe_unlock import MemoryView, SwipeNavigator, Transcript, TranslationLookup
from swipe_unlock.store import MessageRecord

logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
logging.getLogger("asyncio").setLevel(logging.WARNING)


class SlowTranslationStore:
    """Remote-ish store whose latency depends on the key."""

    def __init__(self, entries, delays):
        self.entries = entries
        self.delays = delays

    async def get(self, key):
        await asyncio.sleep(self.delays.get(key, 0.0))
        return self.entries.get(key)


async def main():
    transcript = Transcript([MessageRecord(alternatives=["Hello", "Goodbye"], name="Bot", text="Hello")])
    store = SlowTranslationStore(
        entries={"Hello": "Bonjour", "Goodbye": "Au revoir"},
        delays={"Hello": 0.3, "Goodbye": 0.05},
    )
    view = MemoryView(visible=[0])
    navigator = SwipeNavigator(transcript, view, translations=TranslationLookup(transcript, store))

    print("🏁 Two overlapping renders: the first is slow, the second is fast.\n")
    navigator.open(0)
    navigator.set_translation(0, True)  # request 1: "Hello" (slow)
    navigator.move(0, +1)  # request 2: "Goodbye" (fast)

    start = time.perf_counter()
    await navigator.drain()
    elapsed = time.perf_counter() - start

    print(f"\nBoth lookups finished after {elapsed:.2f}s.")
    print(f"Displayed: {view.content[0]!r} (the late 'Bonjour' was discarded)")
    assert view.content[0] == "Au revoir"

    navigator.close(0)
    await navigator.drain()
    print(f"After locking: {view.content[0]!r}")


if __name__ == "__main__":
    asyncio.run(main())
