import asyncio
import logging
import os

from swipe_unlock import MemoryView, SwipeNavigator, TranslationLookup, load_transcript
from swipe_unlock.formatting import strip_markup
from swipe_unlock.translation import SqliteTranslationStore

logging.basicConfig(level=logging.INFO)

CHAT_PATH = "datasets/sample_chat.jsonl"
TRANSLATIONS_PATH = "datasets/translations.db"


async def main():
    if not (os.path.exists(CHAT_PATH) and os.path.exists(TRANSLATIONS_PATH)):
        print("Run `python scripts/generate_datasets.py` first to create the sample data.")
        return

    transcript = load_transcript(CHAT_PATH)
    store = SqliteTranslationStore(TRANSLATIONS_PATH)
    lookup = TranslationLookup(
        transcript,
        store,
        user_name=transcript.header.get("user_name", "User"),
        char_name=transcript.header.get("character_name", ""),
    )
    view = MemoryView(visible=list(range(len(transcript))))
    navigator = SwipeNavigator(transcript, view, translations=lookup)

    message_id = 3
    record = transcript.get(message_id)
    print(f"Translation store: {store.count()} entries\n")

    try:
        navigator.open(message_id)
        navigator.set_translation(message_id, True)
        for index in range(len(record.alternatives)):
            record.active_index = index
            navigator.reconciler.request(message_id, index, True)
            await navigator.drain()
            translated = await lookup.lookup(message_id, index)
            source = "translated" if translated is not None else "fallback to original"
            print(f"  swipe {index + 1}: {strip_markup(view.content[message_id])}  <- {source}")

        print(f"\nCopy button text: {await navigator.copy_active_text(message_id)}")
        navigator.close(message_id)
        await navigator.drain()
    finally:
        store.close()


if __name__ == "__main__":
    asyncio.run(main())
