import asyncio
import os

from swipe_unlock import MemoryView, SwipeNavigator, load_transcript
from swipe_unlock.formatting import strip_markup

CHAT_PATH = "datasets/sample_chat.jsonl"


def show(navigator, view, message_id):
    label = navigator.current_display_label(message_id)
    marker = " (original)" if label.is_original else ""
    buttons = f"[{'<' if label.can_move_back else ' '}|{'>' if label.can_move_forward else ' '}]"
    print(f"  {buttons} swipe {label.text}{marker}: {strip_markup(view.content[message_id])}")


async def main():
    if not os.path.exists(CHAT_PATH):
        print("Run `python scripts/generate_datasets.py` first to create the sample chat.")
        return

    transcript = load_transcript(CHAT_PATH)
    view = MemoryView(visible=list(range(len(transcript))))
    navigator = SwipeNavigator(transcript, view)

    print("Which messages can be unlocked?\n")
    for message_id, record in enumerate(transcript):
        unlocked = navigator.toggle(message_id)
        status = "unlocked" if unlocked else f"rejected ({view.notices[-1].text})"
        print(f"  #{message_id} {record.name or '?':<8} {status}")
        if unlocked:
            navigator.close(message_id)

    message_id = 3
    record = transcript.get(message_id)
    print(f"\nBrowsing message #{message_id} (selected swipe is {record.active_index + 1}):\n")

    navigator.open(message_id)
    await navigator.reconciler.render(message_id, record.active_index, False)
    show(navigator, view, message_id)

    for direction in (+1, +1, +1, -1, -1, -1, -1):
        if navigator.move(message_id, direction) is None:
            print("  (already at the boundary, nothing to do)")
            continue
        await navigator.drain()
        show(navigator, view, message_id)

    restored = navigator.close(message_id)
    await navigator.drain()
    print(f"\nLocked again; selection restored to swipe {restored + 1}.")
    print(f"Displayed text: {strip_markup(view.content[message_id])}")


if __name__ == "__main__":
    asyncio.run(main())
